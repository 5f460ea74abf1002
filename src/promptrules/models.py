"""Pydantic models for prompting rules, context snapshots and action results."""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RuleType(str, Enum):
    """Kind of prompting rule."""

    COMMAND = "COMMAND"
    BEHAVIOR = "BEHAVIOR"
    PREFERENCE = "PREFERENCE"
    WORKFLOW = "WORKFLOW"


class TaskState(str, Enum):
    """Where the current unit of work stands."""

    READY_TO_PROCEED = "ready_to_proceed"
    BLOCKED = "blocked"
    WAITING_FOR_USER = "waiting_for_user"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    PAUSED = "paused"


class ActivityType(str, Enum):
    """What the user is currently doing."""

    CODING = "coding"
    DOCUMENTING = "documenting"
    DEBUGGING = "debugging"
    RESEARCHING = "researching"
    REVIEWING = "reviewing"
    TESTING = "testing"


class PatternType(str, Enum):
    """Context field a pattern is evaluated against."""

    TASK_STATE = "task_state"
    ACTIVITY = "activity"
    FILE_TYPE = "file_type"
    EVENT = "event"
    CUSTOM = "custom"


class PatternOperator(str, Enum):
    """Comparison applied by a context pattern."""

    EQUALS = "equals"
    CONTAINS = "contains"
    MATCHES = "matches"
    NOT_EQUALS = "not_equals"


class ContextPattern(BaseModel):
    """A single predicate over the context snapshot."""

    type: PatternType
    value: str
    operator: PatternOperator = PatternOperator.EQUALS
    # Extension key for custom patterns; ignored by the other pattern types
    key: str | None = None


# ============================================================================
# Rule actions
# ============================================================================


class Handler(BaseModel):
    """Response for one task state inside a contextual_execution action."""

    response: str
    details: str | None = None
    then: str | None = None
    show_progress: bool = False
    show_summary: bool = False


class ContextualExecutionAction(BaseModel):
    type: Literal["contextual_execution"] = "contextual_execution"
    handlers: dict[str, Handler]


class BehaviorAction(BaseModel):
    type: Literal["behavior"] = "behavior"
    steps: list[str]
    options: dict[str, Any] | None = None


class PreferenceAction(BaseModel):
    type: Literal["preference"] = "preference"
    settings: dict[str, Any] = Field(default_factory=dict)


class WorkflowAction(BaseModel):
    type: Literal["workflow"] = "workflow"
    steps: list[str]
    options: dict[str, Any] | None = None


class MacroAction(BaseModel):
    type: Literal["macro"] = "macro"
    steps: list[str]
    options: dict[str, Any] | None = None


class UnknownAction(BaseModel):
    """Stored action payload whose tag or body did not validate.

    Kept so that a bad record still loads; executing it reports an
    unknown action type instead of crashing rule loading.
    """

    model_config = ConfigDict(extra="forbid")

    type: str
    payload: dict[str, Any]


RuleAction = Annotated[
    ContextualExecutionAction | BehaviorAction | PreferenceAction | WorkflowAction | MacroAction,
    Field(discriminator="type"),
]

ACTION_TYPES = frozenset(
    {"contextual_execution", "behavior", "preference", "workflow", "macro"}
)


def _wrap_unknown_action(value: Any) -> Any:
    """Route dicts carrying an unrecognised tag to UnknownAction."""
    if isinstance(value, dict) and value.get("type") not in ACTION_TYPES and "payload" not in value:
        return {"type": str(value.get("type", "")), "payload": value}
    return value


# ============================================================================
# Rules
# ============================================================================


class RuleExample(BaseModel):
    """Illustrative input/context/output triple attached to a rule."""

    input: str
    context: str
    output: str


class RuleCreate(BaseModel):
    """Input for creating a rule."""

    user_id: str
    rule_type: RuleType
    category: str | None = None
    trigger: str
    context_patterns: list[ContextPattern] = Field(default_factory=list)
    action: RuleAction | UnknownAction
    priority: int = 0
    is_active: bool = True
    description: str | None = None
    examples: list[RuleExample] = Field(default_factory=list)

    @field_validator("action", mode="before")
    @classmethod
    def _coerce_action(cls, value: Any) -> Any:
        return _wrap_unknown_action(value)


class Rule(RuleCreate):
    """A stored prompting rule."""

    id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class RuleUpdate(BaseModel):
    """Partial update for a rule. Only fields that are set are applied."""

    rule_type: RuleType | None = None
    category: str | None = None
    trigger: str | None = None
    context_patterns: list[ContextPattern] | None = None
    action: RuleAction | UnknownAction | None = None
    priority: int | None = None
    is_active: bool | None = None
    description: str | None = None
    examples: list[RuleExample] | None = None

    @field_validator("action", mode="before")
    @classmethod
    def _coerce_action(cls, value: Any) -> Any:
        return _wrap_unknown_action(value)

    def changes(self) -> dict[str, Any]:
        """Fields to apply, shared by every rule store.

        Only explicitly set fields are returned. An explicit None is dropped
        for required fields and becomes an empty list for list fields.
        """
        changes: dict[str, Any] = {}
        for field in self.model_fields_set:
            value = getattr(self, field)
            if value is None:
                if field in _REQUIRED_RULE_FIELDS:
                    continue
                if field in _LIST_RULE_FIELDS:
                    value = []
            changes[field] = value
        return changes


_REQUIRED_RULE_FIELDS = frozenset({"rule_type", "trigger", "action", "priority", "is_active"})
_LIST_RULE_FIELDS = frozenset({"context_patterns", "examples"})


class RuleQuery(BaseModel):
    """Filter for querying rules."""

    user_id: str
    rule_type: RuleType | list[RuleType] | None = None
    category: str | None = None
    trigger: str | None = None
    is_active: bool | None = None
    limit: int = Field(default=100, ge=1)
    offset: int = Field(default=0, ge=0)


# ============================================================================
# Context
# ============================================================================


class TodoItem(BaseModel):
    """A todo entry tracked in the context."""

    model_config = ConfigDict(extra="allow")

    id: str | int | None = None
    content: str | None = None
    status: str = "pending"
    completed: bool = False

    @property
    def is_completed(self) -> bool:
        return self.status == "completed" or self.completed

    @property
    def is_in_progress(self) -> bool:
        return self.status == "in_progress"


class Context(BaseModel):
    """Mutable snapshot of the situation a command is interpreted in."""

    # Task
    task_state: TaskState = TaskState.READY_TO_PROCEED
    current_activity: ActivityType | None = None
    todo_list: list[TodoItem] = Field(default_factory=list)
    active_todos: list[TodoItem] = Field(default_factory=list)
    completed_todos: list[TodoItem] = Field(default_factory=list)

    # Files
    working_directory: str | None = None
    active_files: list[str] = Field(default_factory=list)
    recent_files: list[str] = Field(default_factory=list)
    file_types: list[str] = Field(default_factory=list)

    # Version control
    git_branch: str | None = None
    git_status: str | None = None
    has_uncommitted_changes: bool = False
    has_pending_push: bool = False

    # Session
    session_start_time: datetime | None = None
    session_duration: float | None = None  # minutes
    command_history: list[str] = Field(default_factory=list)
    recent_commands: list[str] = Field(default_factory=list)
    last_command: str | None = None

    # Project
    current_project: str | None = None
    active_projects: list[str] = Field(default_factory=list)

    preferences: dict[str, Any] = Field(default_factory=dict)

    # Event flags and custom keys
    extensions: dict[str, Any] = Field(default_factory=dict)


# ============================================================================
# Parsing and results
# ============================================================================


class ParsedCommand(BaseModel):
    """Structured representation of raw user input."""

    raw: str
    trigger: str
    tokens: list[str]
    arguments: list[str] | None = None
    is_shorthand: bool = False


class ActionResult(BaseModel):
    """Outcome of interpreting a command."""

    success: bool
    response: str | None = None
    actions: list[str] | None = None
    next_steps: list[str] | None = None
    error: str | None = None
    metadata: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, dropping unset fields."""
        return self.model_dump(exclude_none=True)
