"""Context-pattern evaluation.

Patterns compare a value taken from the context snapshot against an expected
string. Both sides are lower-cased before comparison; a missing actual value
compares as the empty string.
"""

import logging
import re
from enum import Enum
from typing import Any

from .models import Context, ContextPattern, PatternOperator, PatternType

logger = logging.getLogger(__name__)


def _as_text(value: Any) -> str:
    """Stringify a context value for comparison."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def compare_values(actual: Any, expected: str, operator: PatternOperator | str) -> bool:
    """Compare an actual context value against an expected string.

    Args:
        actual: Value read from the context (may be None)
        expected: Expected text, or a regular expression for MATCHES
        operator: Comparison operator

    Returns:
        True if the comparison holds. Invalid regular expressions and
        unknown operators evaluate to False.
    """
    actual_text = _as_text(actual).lower()
    expected_text = expected.lower()

    try:
        operator = PatternOperator(operator)
    except ValueError:
        return False

    if operator is PatternOperator.EQUALS:
        return actual_text == expected_text
    if operator is PatternOperator.CONTAINS:
        return expected_text in actual_text
    if operator is PatternOperator.MATCHES:
        # Lower-casing the pattern would turn \D into \d
        try:
            return re.search(expected, actual_text, re.IGNORECASE) is not None
        except re.error as e:
            logger.debug("Invalid pattern regex %r: %s", expected, e)
            return False
    if operator is PatternOperator.NOT_EQUALS:
        return actual_text != expected_text
    return False


def matches_context_pattern(pattern: ContextPattern, context: Context) -> bool:
    """Evaluate one context pattern against a snapshot."""
    operator = pattern.operator

    if pattern.type is PatternType.TASK_STATE:
        return compare_values(context.task_state, pattern.value, operator)

    if pattern.type is PatternType.ACTIVITY:
        return compare_values(context.current_activity, pattern.value, operator)

    if pattern.type is PatternType.FILE_TYPE:
        return any(compare_values(ft, pattern.value, operator) for ft in context.file_types)

    if pattern.type is PatternType.EVENT:
        # Event flags live in the extension map under the pattern's value
        return compare_values(context.extensions.get(pattern.value), "true", operator)

    if pattern.type is PatternType.CUSTOM:
        if pattern.key:
            return compare_values(context.extensions.get(pattern.key), pattern.value, operator)
        return compare_values(context.extensions.get(pattern.value), "true", operator)

    return False


def matches_all(patterns: list[ContextPattern], context: Context) -> bool:
    """Return True if every pattern holds. An empty list always matches."""
    return all(matches_context_pattern(pattern, context) for pattern in patterns)
