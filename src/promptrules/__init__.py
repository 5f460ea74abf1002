"""Context-aware interpretation of short commands using prompting rules.

This package implements:
- Rule models and a DuckDB-backed rule store
- Context collection and task-state inference
- Trigger parsing, context-pattern matching and priority resolution
- Action execution and session composition
"""

from .client import PromptingClient
from .config import EngineConfig, get_config, load_config
from .context_engine import ContextEngine
from .executor import ActionExecutor
from .models import (
    ActionResult,
    ActivityType,
    Context,
    ContextPattern,
    ParsedCommand,
    Rule,
    RuleCreate,
    RuleQuery,
    RuleType,
    RuleUpdate,
    TaskState,
)
from .parser import CommandParser
from .rule_store import (
    DuckDBRuleStore,
    InMemoryRuleStore,
    RuleNotFoundError,
    RuleStore,
    create_rule_store,
)
from .session import Session, SessionInitializer

__all__ = [
    "ActionExecutor",
    "ActionResult",
    "ActivityType",
    "CommandParser",
    "Context",
    "ContextEngine",
    "ContextPattern",
    "DuckDBRuleStore",
    "EngineConfig",
    "InMemoryRuleStore",
    "ParsedCommand",
    "PromptingClient",
    "Rule",
    "RuleCreate",
    "RuleNotFoundError",
    "RuleQuery",
    "RuleStore",
    "RuleType",
    "RuleUpdate",
    "Session",
    "SessionInitializer",
    "TaskState",
    "create_rule_store",
    "get_config",
    "load_config",
]
