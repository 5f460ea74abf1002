"""Prompting rules persistence module.

Rules are stored one per row. The nested fields (context patterns, action
payload and examples) are kept as JSON text and validated when read back:
a malformed value degrades to a documented default instead of failing the
whole load.
"""

import json
import logging
from datetime import UTC, datetime
from typing import Any

import duckdb
from pydantic import TypeAdapter, ValidationError

from promptrules.models import (
    ContextPattern,
    Rule,
    RuleAction,
    RuleCreate,
    RuleExample,
    RuleQuery,
    RuleType,
    RuleUpdate,
    UnknownAction,
)

logger = logging.getLogger(__name__)

_PATTERNS_ADAPTER = TypeAdapter(list[ContextPattern])
_ACTION_ADAPTER = TypeAdapter(RuleAction)
_EXAMPLES_ADAPTER = TypeAdapter(list[RuleExample])

_COLUMNS = """
    id, user_id, rule_type, category, command_trigger, context_patterns,
    action_payload, priority, is_active, description, examples, created_at, updated_at
"""

# Model field -> column name, where they differ
_FIELD_COLUMNS = {"trigger": "command_trigger", "action": "action_payload"}


def _now() -> datetime:
    # Stored as naive UTC
    return datetime.now(UTC).replace(tzinfo=None)


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value


def encode_patterns(patterns: list[ContextPattern]) -> str:
    return json.dumps([p.model_dump(mode="json", exclude_none=True) for p in patterns])


def encode_action(action: Any) -> str:
    if isinstance(action, UnknownAction):
        # Store the payload as received so it decodes the same way again
        return json.dumps(action.payload)
    return json.dumps(action.model_dump(mode="json"))


def encode_examples(examples: list[RuleExample]) -> str:
    return json.dumps([e.model_dump(mode="json") for e in examples])


def _load_json(raw: str | None, field: str, rule_id: Any) -> Any:
    if not raw:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning("Rule %s has malformed %s JSON: %s", rule_id, field, e)
        return None


def decode_patterns(raw: str | None, rule_id: Any = None) -> list[ContextPattern]:
    """Decode stored context patterns. Invalid data decodes to an empty list."""
    data = _load_json(raw, "context_patterns", rule_id)
    if data is None:
        return []
    try:
        return _PATTERNS_ADAPTER.validate_python(data)
    except ValidationError as e:
        logger.warning("Rule %s has invalid context patterns, ignoring them: %s", rule_id, e)
        return []


def decode_action(raw: str | None, rule_id: Any = None) -> Any:
    """Decode a stored action payload.

    Invalid data decodes to an UnknownAction carrying whatever was stored.
    """
    data = _load_json(raw, "action_payload", rule_id)
    if not isinstance(data, dict):
        return UnknownAction(type="", payload={})
    try:
        return _ACTION_ADAPTER.validate_python(data)
    except ValidationError as e:
        logger.warning("Rule %s has invalid action payload: %s", rule_id, e)
        return UnknownAction(type=str(data.get("type", "")), payload=data)


def decode_examples(raw: str | None, rule_id: Any = None) -> list[RuleExample]:
    """Decode stored examples. Invalid data decodes to an empty list."""
    data = _load_json(raw, "examples", rule_id)
    if data is None:
        return []
    try:
        return _EXAMPLES_ADAPTER.validate_python(data)
    except ValidationError as e:
        logger.warning("Rule %s has invalid examples, ignoring them: %s", rule_id, e)
        return []


def _row_to_rule(row: tuple) -> Rule:
    rule_id = row[0]
    return Rule(
        id=rule_id,
        user_id=row[1],
        rule_type=RuleType(row[2]),
        category=row[3],
        trigger=row[4],
        context_patterns=decode_patterns(row[5], rule_id),
        action=decode_action(row[6], rule_id),
        priority=row[7],
        is_active=row[8],
        description=row[9],
        examples=decode_examples(row[10], rule_id),
        created_at=_as_utc(row[11]),
        updated_at=_as_utc(row[12]),
    )


def _rows_to_rules(rows: list[tuple]) -> list[Rule]:
    """Convert rows, skipping any that cannot be read as a rule."""
    rules = []
    for row in rows:
        try:
            rules.append(_row_to_rule(row))
        except ValueError as e:
            # pydantic's ValidationError is a ValueError too
            logger.warning("Skipping unreadable rule %s: %s", row[0], e)
    return rules


def _rule_exists(conn: duckdb.DuckDBPyConnection, rule_id: int) -> bool:
    row = conn.execute("SELECT 1 FROM prompting_rules WHERE id = ?", [rule_id]).fetchone()
    return row is not None


def create_rule(conn: duckdb.DuckDBPyConnection, rule: RuleCreate) -> Rule:
    """Insert a new rule.

    Args:
        conn: Database connection.
        rule: Rule to create.

    Returns:
        The stored Rule, with id and timestamps.
    """
    now = _now()
    row = conn.execute(
        """
        INSERT INTO prompting_rules
        (user_id, rule_type, category, command_trigger, context_patterns, action_payload,
         priority, is_active, description, examples, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        RETURNING id
        """,
        [
            rule.user_id,
            rule.rule_type.value,
            rule.category,
            rule.trigger,
            encode_patterns(rule.context_patterns),
            encode_action(rule.action),
            rule.priority,
            rule.is_active,
            rule.description,
            encode_examples(rule.examples),
            now,
            now,
        ],
    ).fetchone()

    # A Rule passed in gets the stored id and timestamps
    fields = rule.model_dump(include=set(RuleCreate.model_fields) - {"action"})
    return Rule(
        id=row[0],
        created_at=_as_utc(now),
        updated_at=_as_utc(now),
        **fields,
        action=rule.action,
    )


def get_rule(conn: duckdb.DuckDBPyConnection, rule_id: int) -> Rule | None:
    """Get a rule by id.

    Args:
        conn: Database connection.
        rule_id: Rule id.

    Returns:
        Rule if found and readable, None otherwise.
    """
    row = conn.execute(
        f"SELECT {_COLUMNS} FROM prompting_rules WHERE id = ?", [rule_id]
    ).fetchone()
    if row is None:
        return None
    rules = _rows_to_rules([row])
    return rules[0] if rules else None


def list_rules(conn: duckdb.DuckDBPyConnection, query: RuleQuery) -> list[Rule]:
    """Query rules with optional filters.

    Args:
        conn: Database connection.
        query: Filters to apply.

    Returns:
        Rules ordered by priority DESC, then by insertion order.
    """
    clauses = ["user_id = ?"]
    params: list[Any] = [query.user_id]

    if query.rule_type:
        types = query.rule_type if isinstance(query.rule_type, list) else [query.rule_type]
        clauses.append(f"rule_type IN ({', '.join('?' for _ in types)})")
        params.extend(t.value for t in types)

    if query.category is not None:
        clauses.append("category = ?")
        params.append(query.category)

    if query.trigger is not None:
        clauses.append("lower(command_trigger) = lower(?)")
        params.append(query.trigger)

    if query.is_active is not None:
        clauses.append("is_active = ?")
        params.append(query.is_active)

    params.extend([query.limit, query.offset])
    rows = conn.execute(
        f"""
        SELECT {_COLUMNS} FROM prompting_rules
        WHERE {' AND '.join(clauses)}
        ORDER BY priority DESC, id ASC
        LIMIT ? OFFSET ?
        """,
        params,
    ).fetchall()
    return _rows_to_rules(rows)


def load_active_rules(conn: duckdb.DuckDBPyConnection, user_id: str) -> list[Rule]:
    """Load every active rule of a user, highest priority first."""
    rows = conn.execute(
        f"""
        SELECT {_COLUMNS} FROM prompting_rules
        WHERE user_id = ? AND is_active = TRUE
        ORDER BY priority DESC, id ASC
        """,
        [user_id],
    ).fetchall()
    return _rows_to_rules(rows)


def update_rule(
    conn: duckdb.DuckDBPyConnection, rule_id: int, update: RuleUpdate
) -> Rule | None:
    """Apply a partial update to a rule.

    Args:
        conn: Database connection.
        rule_id: Rule id.
        update: Fields to change (see RuleUpdate.changes).

    Returns:
        The updated Rule, or None if no rule has this id.
    """
    if not _rule_exists(conn, rule_id):
        return None

    assignments: list[str] = []
    params: list[Any] = []
    for field, value in sorted(update.changes().items()):
        if field == "context_patterns":
            value = encode_patterns(value)
        elif field == "examples":
            value = encode_examples(value)
        elif field == "action":
            value = encode_action(value)
        elif field == "rule_type":
            value = value.value
        assignments.append(f"{_FIELD_COLUMNS.get(field, field)} = ?")
        params.append(value)

    assignments.append("updated_at = ?")
    params.extend([_now(), rule_id])
    conn.execute(
        f"UPDATE prompting_rules SET {', '.join(assignments)} WHERE id = ?",
        params,
    )
    return get_rule(conn, rule_id)


def deactivate_rule(conn: duckdb.DuckDBPyConnection, rule_id: int) -> bool:
    """Mark a rule inactive.

    Returns:
        True if the rule existed, False otherwise.
    """
    if not _rule_exists(conn, rule_id):
        return False

    conn.execute(
        "UPDATE prompting_rules SET is_active = FALSE, updated_at = ? WHERE id = ?",
        [_now(), rule_id],
    )
    return True
