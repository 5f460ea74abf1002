"""Session initializer: composition root for a prompting rules session."""

import logging
import uuid
from dataclasses import dataclass, field, replace
from typing import Any

from .config import EngineConfig
from .context_engine import ContextEngine
from .models import Context, PreferenceAction, Rule, RuleType
from .parser import CommandParser
from .providers import GitFactSource, RecentFilesFactSource
from .rule_store import RuleStore

logger = logging.getLogger(__name__)


@dataclass
class Session:
    """Everything one user session needs to interpret commands."""

    user_id: str
    rules: list[Rule]
    context: Context
    parser: CommandParser
    context_engine: ContextEngine
    preferences: dict[str, Any]
    command_registry: dict[str, list[Rule]]
    session_id: str = field(default_factory=lambda: str(uuid.uuid4()))


def extract_preferences(rules: list[Rule]) -> dict[str, Any] | None:
    """Return the settings of the first active PREFERENCE rule, or None."""
    for rule in rules:
        if rule.rule_type is RuleType.PREFERENCE and rule.is_active:
            if isinstance(rule.action, PreferenceAction):
                return dict(rule.action.settings)
            return {}
    return None


def build_command_registry(rules: list[Rule]) -> dict[str, list[Rule]]:
    """Group COMMAND rules by lower-cased trigger, keeping load order."""
    registry: dict[str, list[Rule]] = {}
    for rule in rules:
        if rule.rule_type is RuleType.COMMAND:
            registry.setdefault(rule.trigger.lower(), []).append(rule)
    return registry


class SessionInitializer:
    """Load rules and build the context engine and parser for a user."""

    def __init__(self, store: RuleStore, user_id: str, config: EngineConfig | None = None) -> None:
        """Initialize the session initializer.

        Args:
            store: Rule store to load rules from
            user_id: Owner of the session
            config: Engine configuration (defaults are used if None)
        """
        self.store = store
        self.user_id = user_id
        self.config = config or EngineConfig()

    def _create_context_engine(self, preferences: dict[str, Any]) -> ContextEngine:
        config = self.config
        vcs_source = GitFactSource(cwd=config.working_directory) if config.collect_vcs_context else None
        fs_source = (
            RecentFilesFactSource(root=config.working_directory, limit=config.recent_files_limit)
            if config.collect_file_context
            else None
        )
        return ContextEngine(
            {"preferences": preferences},
            vcs_source=vcs_source,
            fs_source=fs_source,
            cache_enabled=config.context_cache_enabled,
            cache_ttl_seconds=config.context_cache_ttl_seconds,
            history_limit=config.command_history_limit,
            recent_window=config.recent_commands_window,
        )

    async def initialize(self) -> Session:
        """Load rules (creating defaults if there are none) and build a session.

        Returns:
            A ready Session
        """
        rules = await self.store.load_rules(self.user_id)

        if not rules:
            logger.info("No rules found for user %s, creating default rules", self.user_id)
            rules = await self.store.create_default_rules(self.user_id)

        preferences = extract_preferences(rules) or {}

        context_engine = self._create_context_engine(preferences)
        context = await context_engine.collect()
        context_engine.auto_infer()

        parser = CommandParser(rules)
        session = Session(
            user_id=self.user_id,
            rules=rules,
            context=context,
            parser=parser,
            context_engine=context_engine,
            preferences=preferences,
            command_registry=build_command_registry(rules),
        )
        logger.info(
            "Initialized session %s for user %s with %d rules",
            session.session_id,
            self.user_id,
            len(rules),
        )
        return session

    async def refresh(self, session: Session) -> Session:
        """Reload rules and rebuild the parser. The context is left untouched.

        Args:
            session: Session to refresh

        Returns:
            Updated Session sharing the same context and context engine
        """
        rules = await self.store.load_rules(self.user_id)
        preferences = extract_preferences(rules)
        if preferences is None:
            preferences = session.preferences

        logger.info("Refreshed session %s: %d rules", session.session_id, len(rules))
        return replace(
            session,
            rules=rules,
            parser=CommandParser(rules),
            preferences=preferences,
            command_registry=build_command_registry(rules),
        )
