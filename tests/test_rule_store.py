"""Tests for the rule store implementations."""

import pytest

from promptrules.models import (
    ContextPattern,
    MacroAction,
    PatternType,
    Rule,
    RuleCreate,
    RuleQuery,
    RuleType,
    RuleUpdate,
)
from promptrules.rule_store import (
    DuckDBRuleStore,
    InMemoryRuleStore,
    RuleNotFoundError,
    create_rule_store,
)


@pytest.fixture(params=["memory", "duckdb"])
def store(request, db_conn):
    """Run each test against both backends."""
    if request.param == "memory":
        return InMemoryRuleStore()
    return DuckDBRuleStore(db_conn)


def _macro(trigger: str, priority: int = 0, user_id: str = "user-1") -> RuleCreate:
    return RuleCreate(
        user_id=user_id,
        rule_type=RuleType.COMMAND,
        trigger=trigger,
        action=MacroAction(steps=["git_push"]),
        priority=priority,
    )


@pytest.mark.asyncio
async def test_create_and_load(store):
    low = await store.create_rule(_macro("a", priority=1))
    high = await store.create_rule(_macro("b", priority=5))
    tie = await store.create_rule(_macro("c", priority=1))
    await store.create_rule(_macro("x", user_id="user-2"))

    rules = await store.load_rules("user-1")

    assert [r.id for r in rules] == [high.id, low.id, tie.id]
    assert (await store.get_rule(low.id)).trigger == "a"


@pytest.mark.asyncio
async def test_query_rules(store):
    await store.create_rule(_macro("Ship"))
    await store.create_rule(_macro("other"))

    rules = await store.query_rules(RuleQuery(user_id="user-1", trigger="ship"))
    assert [r.trigger for r in rules] == ["Ship"]

    rules = await store.query_rules(RuleQuery(user_id="user-1", rule_type=[]))
    assert len(rules) == 2


@pytest.mark.asyncio
async def test_update_and_deactivate(store):
    rule = await store.create_rule(_macro("ship"))

    updated = await store.update_rule(rule.id, RuleUpdate(priority=9))
    assert updated.priority == 9

    await store.deactivate_rule(rule.id)
    assert await store.load_rules("user-1") == []
    assert (await store.get_rule(rule.id)).is_active is False


@pytest.mark.asyncio
async def test_missing_rule_raises(store):
    with pytest.raises(RuleNotFoundError) as exc_info:
        await store.update_rule(404, RuleUpdate(priority=1))
    assert exc_info.value.rule_id == 404

    with pytest.raises(RuleNotFoundError):
        await store.deactivate_rule(404)

    assert await store.get_rule(404) is None


@pytest.mark.asyncio
async def test_create_default_rules(store):
    created = await store.create_default_rules("user-1")

    assert [r.trigger for r in created] == ["Go", "Go", "Done", "always"]
    assert [r.priority for r in created] == [100, 95, 90, 50]
    assert created[3].rule_type is RuleType.PREFERENCE
    assert len(await store.load_rules("user-1")) == 4


def test_create_rule_store_backends():
    assert isinstance(create_rule_store("memory"), InMemoryRuleStore)

    store = create_rule_store("DuckDB", ":memory:")
    assert isinstance(store, DuckDBRuleStore)
    store.close()

    with pytest.raises(ValueError, match="Unsupported rule store backend"):
        create_rule_store("postgres")


@pytest.mark.asyncio
async def test_update_with_explicit_none(store):
    rule = await store.create_rule(
        _macro("ship", priority=3).model_copy(
            update={
                "context_patterns": [ContextPattern(type=PatternType.EVENT, value="tests_passed")],
                "description": "Push it",
            }
        )
    )

    updated = await store.update_rule(
        rule.id, RuleUpdate(context_patterns=None, description=None, priority=None)
    )

    assert updated.context_patterns == []
    assert updated.description is None
    assert updated.priority == 3
    assert (await store.get_rule(rule.id)).context_patterns == []


@pytest.mark.asyncio
async def test_create_from_stored_rule(store):
    original = await store.create_rule(_macro("ship"))
    copy = Rule(**original.model_dump(exclude={"action"}), action=original.action)

    created = await store.create_rule(copy)

    assert created.id != original.id
    assert created.trigger == "ship"
    assert [r.id for r in await store.load_rules("user-1")] == [original.id, created.id]
