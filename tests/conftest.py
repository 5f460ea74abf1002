"""pytest configuration for promptrules tests."""

import os
import sys
from pathlib import Path

import pytest

# Add src directory to path so tests can import promptrules
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# Use an in-memory database for all tests to ensure test isolation
os.environ["PROMPTRULES_DB_PATH"] = ":memory:"

from promptrules.context_engine import ContextEngine  # noqa: E402
from promptrules.db import init_db  # noqa: E402
from promptrules.models import (  # noqa: E402
    ContextPattern,
    ContextualExecutionAction,
    Handler,
    PatternType,
    Rule,
    RuleType,
)


@pytest.fixture
def test_user_id():
    """Consistent test user ID."""
    return "user-12345678"


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def engine(clock):
    """Context engine with no fact sources."""
    return ContextEngine(clock=clock)


def _make_command_rule(
    trigger: str,
    handlers: dict[str, Handler],
    *,
    task_state: str | None = None,
    priority: int = 0,
    rule_id: int | None = None,
    user_id: str = "user-12345678",
    is_active: bool = True,
) -> Rule:
    """Helper to build a contextual_execution COMMAND rule."""
    patterns = []
    if task_state is not None:
        patterns.append(ContextPattern(type=PatternType.TASK_STATE, value=task_state))
    return Rule(
        id=rule_id,
        user_id=user_id,
        rule_type=RuleType.COMMAND,
        trigger=trigger,
        context_patterns=patterns,
        action=ContextualExecutionAction(handlers=handlers),
        priority=priority,
        is_active=is_active,
    )


@pytest.fixture
def make_rule():
    """Factory fixture for contextual_execution COMMAND rules."""
    return _make_command_rule


@pytest.fixture
def db_conn():
    """In-memory database with migrations applied."""
    conn = init_db(":memory:")
    yield conn
    conn.close()
