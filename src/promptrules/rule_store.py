"""Rule Store interface and implementations.

The session layer only talks to ``RuleStore``. ``DuckDBRuleStore`` keeps
rules in an embedded DuckDB database; ``InMemoryRuleStore`` keeps them in a
dict and is used for tests and ephemeral sessions.
"""

import logging
from abc import ABC, abstractmethod
from datetime import UTC, datetime

import duckdb

from .db import prompting_rules
from .db.connection import init_db
from .default_rules import build_default_rules
from .models import Rule, RuleCreate, RuleQuery, RuleUpdate

logger = logging.getLogger(__name__)


class RuleNotFoundError(LookupError):
    """Raised when a rule id does not exist in the store."""

    def __init__(self, rule_id: int) -> None:
        super().__init__(f"Rule not found: {rule_id}")
        self.rule_id = rule_id


class RuleStore(ABC):
    """Abstract interface for durable rule storage."""

    @abstractmethod
    async def load_rules(self, user_id: str) -> list[Rule]:
        """Load all active rules of a user.

        Args:
            user_id: Owner of the rules

        Returns:
            Active rules, highest priority first, then in creation order
        """
        pass

    @abstractmethod
    async def query_rules(self, query: RuleQuery) -> list[Rule]:
        """Query rules with filters.

        Args:
            query: Filters, limit and offset

        Returns:
            Matching rules, highest priority first
        """
        pass

    @abstractmethod
    async def create_rule(self, rule: RuleCreate) -> Rule:
        """Create a rule and return it with its id."""
        pass

    @abstractmethod
    async def update_rule(self, rule_id: int, update: RuleUpdate) -> Rule:
        """Apply a partial update.

        Raises:
            RuleNotFoundError: If no rule has this id
        """
        pass

    @abstractmethod
    async def deactivate_rule(self, rule_id: int) -> None:
        """Mark a rule inactive.

        Raises:
            RuleNotFoundError: If no rule has this id
        """
        pass

    @abstractmethod
    async def get_rule(self, rule_id: int) -> Rule | None:
        """Get a single rule by id, or None."""
        pass

    async def create_default_rules(self, user_id: str) -> list[Rule]:
        """Persist the default rule set for a user.

        Returns:
            The created rules
        """
        created = []
        for rule in build_default_rules(user_id):
            created.append(await self.create_rule(rule))
        logger.info("Created %d default rules for user %s", len(created), user_id)
        return created


class DuckDBRuleStore(RuleStore):
    """Rule store backed by an embedded DuckDB database."""

    def __init__(self, conn: duckdb.DuckDBPyConnection) -> None:
        """Initialize the store.

        Args:
            conn: Connection to a database with migrations applied
        """
        self.conn = conn

    @classmethod
    def open(cls, db_path: str | None = None) -> "DuckDBRuleStore":
        """Open (and migrate) a database and wrap it in a store."""
        return cls(init_db(db_path))

    async def load_rules(self, user_id: str) -> list[Rule]:
        return prompting_rules.load_active_rules(self.conn, user_id)

    async def query_rules(self, query: RuleQuery) -> list[Rule]:
        return prompting_rules.list_rules(self.conn, query)

    async def create_rule(self, rule: RuleCreate) -> Rule:
        return prompting_rules.create_rule(self.conn, rule)

    async def update_rule(self, rule_id: int, update: RuleUpdate) -> Rule:
        updated = prompting_rules.update_rule(self.conn, rule_id, update)
        if updated is None:
            raise RuleNotFoundError(rule_id)
        return updated

    async def deactivate_rule(self, rule_id: int) -> None:
        if not prompting_rules.deactivate_rule(self.conn, rule_id):
            raise RuleNotFoundError(rule_id)

    async def get_rule(self, rule_id: int) -> Rule | None:
        return prompting_rules.get_rule(self.conn, rule_id)

    def close(self) -> None:
        self.conn.close()


class InMemoryRuleStore(RuleStore):
    """Rule store keeping rules in process memory."""

    def __init__(self, rules: list[Rule] | None = None) -> None:
        self._rules: dict[int, Rule] = {}
        self._next_id = 1
        for rule in rules or []:
            self._insert(rule)

    def _insert(self, rule: Rule) -> Rule:
        if rule.id is None:
            rule = rule.model_copy(update={"id": self._next_id})
        self._rules[rule.id] = rule
        self._next_id = max(self._next_id, rule.id) + 1
        return rule

    def _ordered(self) -> list[Rule]:
        # Ids grow with insertion, so this is creation order within a priority
        return sorted(self._rules.values(), key=lambda r: (-r.priority, r.id))

    async def load_rules(self, user_id: str) -> list[Rule]:
        return [r for r in self._ordered() if r.user_id == user_id and r.is_active]

    async def query_rules(self, query: RuleQuery) -> list[Rule]:
        types = None
        if query.rule_type:
            types = set(query.rule_type if isinstance(query.rule_type, list) else [query.rule_type])

        matched = [
            r
            for r in self._ordered()
            if r.user_id == query.user_id
            and (types is None or r.rule_type in types)
            and (query.category is None or r.category == query.category)
            and (query.trigger is None or r.trigger.lower() == query.trigger.lower())
            and (query.is_active is None or r.is_active == query.is_active)
        ]
        return matched[query.offset : query.offset + query.limit]

    async def create_rule(self, rule: RuleCreate) -> Rule:
        now = datetime.now(UTC)
        # A Rule passed in gets a fresh id and timestamps
        fields = {name: getattr(rule, name) for name in RuleCreate.model_fields}
        return self._insert(Rule(**fields, created_at=now, updated_at=now))

    async def update_rule(self, rule_id: int, update: RuleUpdate) -> Rule:
        existing = self._rules.get(rule_id)
        if existing is None:
            raise RuleNotFoundError(rule_id)

        changes = update.changes()
        changes["updated_at"] = datetime.now(UTC)
        updated = existing.model_copy(update=changes)
        self._rules[rule_id] = updated
        return updated

    async def deactivate_rule(self, rule_id: int) -> None:
        await self.update_rule(rule_id, RuleUpdate(is_active=False))

    async def get_rule(self, rule_id: int) -> Rule | None:
        return self._rules.get(rule_id)


def create_rule_store(backend: str = "duckdb", db_path: str | None = None) -> RuleStore:
    """Create a rule store for the configured backend.

    Args:
        backend: "duckdb" (default) or "memory"
        db_path: DuckDB database path (ignored for "memory")

    Returns:
        A RuleStore instance

    Raises:
        ValueError: If the backend is not supported
    """
    backend = backend.lower()
    if backend == "duckdb":
        logger.info("Using DuckDB rule store at %s", db_path or "default path")
        return DuckDBRuleStore.open(db_path)
    elif backend == "memory":
        logger.info("Using in-memory rule store")
        return InMemoryRuleStore()
    else:
        raise ValueError(f"Unsupported rule store backend: {backend}")
