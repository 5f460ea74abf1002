"""Heuristic inference of task state and activity from a context snapshot.

These are best guesses used when the caller has not set the values
explicitly. They are pure functions of the snapshot.
"""

import re
from pathlib import PurePath

from .models import ActivityType, Context, TaskState

CODE_EXTENSIONS = frozenset(
    {".py", ".ts", ".tsx", ".js", ".jsx", ".go", ".rs", ".java", ".rb", ".c", ".cpp", ".h"}
)
DOC_EXTENSIONS = frozenset({".md", ".rst", ".txt"})

TEST_FILE_PATTERN = re.compile(
    r"(^test_.+\.py$|.+_test\.(py|go)$|.+\.(test|spec)\.[jt]sx?$)", re.IGNORECASE
)


def infer_task_state(context: Context) -> TaskState:
    """Guess the task state from the last command and the todo list.

    Args:
        context: Context snapshot

    Returns:
        Best-guess TaskState
    """
    if context.last_command and "manual" in context.last_command.lower():
        return TaskState.WAITING_FOR_USER

    if context.active_todos:
        return TaskState.IN_PROGRESS

    if context.todo_list and len(context.completed_todos) == len(context.todo_list):
        return TaskState.COMPLETED

    return TaskState.READY_TO_PROCEED


def looks_like_test_file(path: str) -> bool:
    """Check whether a file name follows a common test naming convention."""
    return bool(TEST_FILE_PATTERN.match(PurePath(path).name))


def infer_activity(context: Context) -> ActivityType | None:
    """Guess the current activity from recently touched files.

    Args:
        context: Context snapshot

    Returns:
        Best-guess ActivityType, or None if nothing suggests one
    """
    file_types = {ft.lower() for ft in context.file_types}

    if any(looks_like_test_file(path) for path in context.recent_files):
        return ActivityType.TESTING

    if file_types & CODE_EXTENSIONS:
        return ActivityType.CODING

    if file_types & DOC_EXTENSIONS:
        return ActivityType.DOCUMENTING

    return None
