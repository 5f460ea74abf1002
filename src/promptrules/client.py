"""High-level client: interpret commands within one prompting rules session."""

import logging
import time
from collections.abc import Iterable
from typing import Any

from .config import EngineConfig, get_config
from .logging_utils import log_info, log_warning, set_session_id
from .metrics import get_metrics_collector, is_metrics_enabled
from .models import ActionResult, TaskState, TodoItem
from .rule_store import RuleStore, create_rule_store
from .session import Session, SessionInitializer

logger = logging.getLogger(__name__)


class PromptingClient:
    """Interpret short commands using a user's prompting rules.

    Example:
        client = PromptingClient(store, user_id="alice")
        await client.initialize_session()
        client.set_task_state("blocked")
        result = await client.process_command("Go")
    """

    def __init__(self, store: RuleStore, user_id: str, config: EngineConfig | None = None) -> None:
        """Initialize the client.

        Args:
            store: Rule store holding the user's rules
            user_id: User whose rules are applied
            config: Engine configuration (defaults are used if None)
        """
        self.store = store
        self.user_id = user_id
        self.config = config or EngineConfig()
        self.session_initializer = SessionInitializer(store, user_id, self.config)
        self._session: Session | None = None

    @classmethod
    def from_config(cls, config: EngineConfig | None = None) -> "PromptingClient":
        """Create a client with the configured rule store and user.

        Raises:
            ValueError: If no user_id is configured
        """
        config = config or get_config()
        if not config.user_id:
            raise ValueError("user_id is not configured (set PROMPTRULES_USER_ID)")
        store = create_rule_store(config.rule_store, config.db_path)
        return cls(store, config.user_id, config)

    async def initialize_session(self) -> Session:
        """Load rules and context. Call this at the start of a session."""
        self._session = await self.session_initializer.initialize()
        return self._session

    async def process_command(self, text: str) -> ActionResult:
        """Interpret a command against the rules and the current context.

        Initializes the session on first use.

        Args:
            text: Raw user input, e.g. "Go" or "ship"

        Returns:
            ActionResult. Unknown commands and failed actions come back with
            success=False and an error message.
        """
        start = time.perf_counter()
        if self._session is None:
            await self.initialize_session()

        session = self._session
        set_session_id(session.session_id)
        parser = session.parser
        context_engine = session.context_engine

        parsed = parser.parse(text)

        await context_engine.collect()
        context_engine.auto_infer()
        context_engine.record_command(text)
        context = context_engine.get_context()

        rule = parser.get_best_match(parsed, context)
        if rule is None:
            log_warning(logger, "No matching rule", trigger=parsed.trigger)
            self._record_metrics(parsed.trigger, "no_match", start)
            return ActionResult(
                success=False,
                error=f'Unknown command: "{text}". No matching rules found.',
            )

        result = await parser.execute_action(rule, context)

        action_type = getattr(rule.action, "type", None)
        log_info(
            logger,
            "Processed command",
            trigger=parsed.trigger,
            rule_id=rule.id,
            action_type=action_type,
            task_state=context.task_state.value,
            success=result.success,
        )
        self._record_metrics(parsed.trigger, "ok" if result.success else "error", start, action_type)
        return result

    def _record_metrics(
        self, trigger: str, status: str, start: float, action_type: str | None = None
    ) -> None:
        if not is_metrics_enabled():
            return
        latency_ms = (time.perf_counter() - start) * 1000
        get_metrics_collector().record_command(trigger, status, latency_ms, action_type)

    def update_todo_context(self, todos: Iterable[TodoItem | dict[str, Any]]) -> None:
        """Update the todo list and the task state derived from it."""
        if self._session is None:
            logger.debug("update_todo_context called before session initialization")
            return
        self._session.context_engine.update_todo_context(todos)

    def set_task_state(self, state: TaskState | str) -> None:
        """Set the current task state explicitly."""
        if self._session is None:
            logger.debug("set_task_state called before session initialization")
            return
        self._session.context_engine.set_task_state(state)

    def get_session_context(self) -> Session | None:
        """Return the current session, or None if not initialized."""
        return self._session

    async def refresh_rules(self) -> None:
        """Reload rules from the store, keeping the current context."""
        if self._session is None:
            return
        self._session = await self.session_initializer.refresh(self._session)
