"""Response templates for contextual_execution handlers.

Handlers name a template symbolically (e.g. ``execute_next_logical_step``);
the name is rendered into user-facing text here. Names that are not in the
table are returned verbatim so rules can carry literal responses.
"""

from collections.abc import Callable

from .models import Context


def explain_user_action(context: Context) -> str:
    """Explain what the user has to do before work can continue."""
    return "Please complete the manual steps as described above and confirm when done."


def explain_blocking_reason(context: Context) -> str:
    """Explain why work is blocked, echoing the last command if known."""
    last = f'Last command: "{context.last_command}". ' if context.last_command else ""
    return (
        "I am currently blocked. "
        + last
        + "Please provide the required input or action to proceed."
    )


def explain_user_action_required(context: Context) -> str:
    return (
        "I cannot proceed automatically. User action is required. "
        + explain_user_action(context)
    )


RESPONSE_TEMPLATES: dict[str, Callable[[Context], str]] = {
    "execute_next_logical_step": lambda context: "Executing the next logical step...",
    "explain_blocking_reason": explain_blocking_reason,
    "cannot_proceed_user_action_required": explain_user_action_required,
    "acknowledge_already_complete": lambda context: "This task is already complete.",
    "explain_what_user_must_do": explain_user_action,
}


def render_response(template: str, context: Context) -> str:
    """Render a template name into response text.

    Args:
        template: Template name, or literal response text
        context: Current context snapshot

    Returns:
        Rendered text, or the template string itself when it is not a known name
    """
    renderer = RESPONSE_TEMPLATES.get(template)
    if renderer is None:
        return template
    return renderer(context)
