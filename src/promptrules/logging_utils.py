"""Structured log lines with secret redaction and the current session id.

Commands are free text typed by a user and may carry tokens, so every
structured value is passed through ``redact_secrets`` before it is logged.
Lines look like ``Processed command | session_id=... | trigger=go``.
"""

import logging
import re
from contextvars import ContextVar
from typing import Any

# Session being served by the current task
_session_id_var: ContextVar[str | None] = ContextVar("session_id", default=None)

SECRET_PATTERNS = [
    (re.compile(r"ghp_[A-Za-z0-9_]+"), "ghp_***REDACTED***"),
    (re.compile(r"github_pat_[A-Za-z0-9_]+"), "github_pat_***REDACTED***"),
    (re.compile(r"sk-[A-Za-z0-9_\-]{16,}"), "sk-***REDACTED***"),
    (re.compile(r"\bpat[A-Za-z0-9]{14}\.[A-Za-z0-9]{20,}"), "pat***REDACTED***"),
]

AUTH_HEADER_PATTERN = re.compile(
    r"((?:Authorization[:\s]+(?:Bearer\s+)?|Bearer\s+))([^\s,;]+)",
    re.IGNORECASE,
)


def redact_secrets(text: Any) -> str:
    """Replace known token formats and authorization values with placeholders.

    Args:
        text: Value to redact (None becomes an empty string)

    Returns:
        Redacted text
    """
    if text is None:
        return ""
    redacted = str(text)
    for pattern, replacement in SECRET_PATTERNS:
        redacted = pattern.sub(replacement, redacted)
    return AUTH_HEADER_PATTERN.sub(r"\1***REDACTED***", redacted)


def set_session_id(session_id: str | None) -> None:
    _session_id_var.set(session_id)


def get_session_id() -> str | None:
    return _session_id_var.get()


def clear_session_id() -> None:
    _session_id_var.set(None)


def format_fields(message: str, fields: dict[str, Any]) -> str:
    """Join a message, the session id (if any) and redacted key=value fields."""
    session_id = get_session_id()
    if session_id:
        fields = {"session_id": session_id, **fields}
    return " | ".join([message, *(f"{k}={redact_secrets(v)}" for k, v in fields.items())])


def log_with_context(logger: logging.Logger, level: int, message: str, **fields: Any) -> None:
    """Emit a structured line at the given level."""
    if logger.isEnabledFor(level):
        logger.log(level, format_fields(message, fields))


def log_info(logger: logging.Logger, message: str, **fields: Any) -> None:
    log_with_context(logger, logging.INFO, message, **fields)


def log_warning(logger: logging.Logger, message: str, **fields: Any) -> None:
    log_with_context(logger, logging.WARNING, message, **fields)
