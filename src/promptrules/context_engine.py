"""Context engine: owns and refreshes the context snapshot of a session."""

import asyncio
import logging
import os
import time
from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from typing import Any

from .inference import infer_activity, infer_task_state
from .models import ActivityType, Context, TaskState, TodoItem
from .providers import FileFacts, FilesystemFactSource, VcsFactSource, VcsFacts

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL_SECONDS = 30.0
DEFAULT_HISTORY_LIMIT = 50
DEFAULT_RECENT_WINDOW = 10

_TODO_FIELDS = frozenset({"todo_list", "active_todos", "completed_todos"})


def _current_directory() -> str | None:
    # getcwd fails once the directory has been removed
    try:
        return os.getcwd()
    except OSError as e:
        logger.debug("Working directory unavailable: %s", e)
        return None


class ContextEngine:
    """Maintain a single authoritative Context and refresh it on demand.

    The snapshot is mutated in place, so references handed out by
    ``get_context()`` stay current. Refreshes are cached for
    ``cache_ttl_seconds``; ``update_context()`` invalidates the cache.

    Fact source failures never propagate: version-control and filesystem fields
    fall back to empty defaults.
    """

    def __init__(
        self,
        initial: Context | dict[str, Any] | None = None,
        *,
        vcs_source: VcsFactSource | None = None,
        fs_source: FilesystemFactSource | None = None,
        cache_enabled: bool = True,
        cache_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        recent_window: int = DEFAULT_RECENT_WINDOW,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the context engine.

        Args:
            initial: Initial context, as a Context or a dict of Context fields
            vcs_source: Optional version-control fact source
            fs_source: Optional filesystem fact source
            cache_enabled: Whether collect() results are cached
            cache_ttl_seconds: Freshness window for cached collections
            history_limit: Maximum number of commands kept in history
            recent_window: Number of commands in the recent window
            clock: Monotonic clock used for the freshness window
        """
        if isinstance(initial, Context):
            self.context = initial
        else:
            self.context = Context.model_validate(initial or {})

        self.vcs_source = vcs_source
        self.fs_source = fs_source
        self.cache_enabled = cache_enabled
        self.cache_ttl_seconds = cache_ttl_seconds
        self.history_limit = history_limit
        self.recent_window = recent_window
        self._clock = clock
        self._last_collected: float | None = None

        self._task_state_explicit = "task_state" in self.context.model_fields_set
        self._activity_explicit = "current_activity" in self.context.model_fields_set

    @property
    def last_collected(self) -> float | None:
        """Clock reading of the last fresh collection, or None."""
        return self._last_collected

    def is_fresh(self) -> bool:
        """Check whether the cached snapshot is still within the freshness window."""
        if not self.cache_enabled or self._last_collected is None:
            return False
        return (self._clock() - self._last_collected) < self.cache_ttl_seconds

    async def collect(self) -> Context:
        """Refresh version-control, file and session facts unless cached.

        Returns:
            The (mutated) context snapshot
        """
        if self.is_fresh():
            return self.context

        await asyncio.gather(
            self._collect_vcs_context(),
            self._collect_file_context(),
            self._collect_session_context(),
        )

        self._last_collected = self._clock()
        return self.context

    async def _collect_vcs_context(self) -> None:
        facts = VcsFacts()
        if self.vcs_source is not None:
            try:
                facts = await self.vcs_source.collect()
            except Exception as e:
                logger.debug("Version-control context unavailable: %s", e)

        context = self.context
        context.git_branch = facts.branch
        context.git_status = facts.status
        context.has_uncommitted_changes = facts.has_uncommitted_changes
        context.has_pending_push = facts.has_pending_push

    async def _collect_file_context(self) -> None:
        facts = None
        if self.fs_source is not None:
            try:
                facts = await self.fs_source.collect()
            except Exception as e:
                logger.debug("File context unavailable: %s", e)
        if facts is None:
            facts = FileFacts(working_directory=_current_directory())

        context = self.context
        context.working_directory = facts.working_directory
        context.recent_files = list(facts.recent_files)
        context.file_types = list(facts.file_types)

    async def _collect_session_context(self) -> None:
        now = datetime.now(UTC)
        if self.context.session_start_time is None:
            self.context.session_start_time = now
        elapsed = now - self.context.session_start_time
        self.context.session_duration = elapsed.total_seconds() / 60

    def update_context(self, **updates: Any) -> None:
        """Merge fields into the context and invalidate the cache.

        Keys that are not Context fields are stored in ``extensions``.
        Touching any todo field goes through ``update_todo_context`` with the
        resulting ``todo_list``, so the active and completed subsets (and the
        task state, unless given in the same call) are always derived from it.

        Raises:
            pydantic.ValidationError: If a known field gets an invalid value
        """
        known = {k: v for k, v in updates.items() if k in Context.model_fields}
        extra = {k: v for k, v in updates.items() if k not in Context.model_fields}

        if known:
            validated = Context.model_validate({**self.context.model_dump(), **known})
            if _TODO_FIELDS & known.keys():
                self.update_todo_context(validated.todo_list)
            for key in known.keys() - _TODO_FIELDS:
                setattr(self.context, key, getattr(validated, key))
        if extra:
            self.context.extensions.update(extra)

        if "task_state" in known:
            self._task_state_explicit = True
        if "current_activity" in known:
            self._activity_explicit = True

        self._last_collected = None

    def set_task_state(self, state: TaskState | str) -> None:
        """Set the task state explicitly.

        Raises:
            ValueError: If state is not a valid TaskState
        """
        self.context.task_state = TaskState(state)
        self._task_state_explicit = True

    def set_activity(self, activity: ActivityType | str | None) -> None:
        """Set the current activity explicitly (None clears it)."""
        self.context.current_activity = ActivityType(activity) if activity is not None else None
        self._activity_explicit = activity is not None

    def record_command(self, command: str) -> None:
        """Append a command to the bounded history and update the recent window."""
        history = self.context.command_history
        history.append(command)
        if len(history) > self.history_limit:
            del history[: len(history) - self.history_limit]

        self.context.last_command = command
        self.context.recent_commands = history[-self.recent_window :]

    def update_todo_context(self, todos: Iterable[TodoItem | dict[str, Any]]) -> None:
        """Replace the todo list and derive the task state from it.

        Any in-progress todo gives IN_PROGRESS; a non-empty, fully completed
        list gives COMPLETED; anything else gives READY_TO_PROCEED.
        """
        items = [t if isinstance(t, TodoItem) else TodoItem.model_validate(t) for t in todos]

        self.context.todo_list = items
        self.context.active_todos = [t for t in items if t.is_in_progress]
        self.context.completed_todos = [t for t in items if t.is_completed]

        if self.context.active_todos:
            self.context.task_state = TaskState.IN_PROGRESS
        elif items and len(self.context.completed_todos) == len(items):
            self.context.task_state = TaskState.COMPLETED
        else:
            self.context.task_state = TaskState.READY_TO_PROCEED
        self._task_state_explicit = True

    def apply_preferences(self, settings: dict[str, Any]) -> None:
        """Merge preference settings into the context."""
        self.context.preferences.update(settings)

    def infer_task_state(self) -> TaskState:
        return infer_task_state(self.context)

    def infer_activity(self) -> ActivityType | None:
        return infer_activity(self.context)

    def auto_infer(self) -> None:
        """Apply inferred task state and activity where none was set explicitly."""
        if not self._task_state_explicit:
            self.context.task_state = self.infer_task_state()
        if not self._activity_explicit:
            self.context.current_activity = self.infer_activity()

    def get_context(self) -> Context:
        """Return the current snapshot without collecting."""
        return self.context

    def clear_cache(self) -> None:
        self._last_collected = None

    def reset(self) -> None:
        """Reset the snapshot to a fresh session, in place."""
        fresh = Context(session_start_time=datetime.now(UTC))
        for name in Context.model_fields:
            setattr(self.context, name, getattr(fresh, name))
        self._task_state_explicit = False
        self._activity_explicit = False
        self._last_collected = None
