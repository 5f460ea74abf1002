"""Default rule set created for users who have no rules yet."""

from .models import (
    ContextPattern,
    ContextualExecutionAction,
    Handler,
    PatternType,
    PreferenceAction,
    RuleCreate,
    RuleType,
)

DEFAULT_PREFERENCES = {
    "verbosity": "concise",
    "use_emojis": False,
    "error_detail_level": "full",
    "proactive_suggestions": True,
    "confirm_destructive_actions": True,
}


def build_default_rules(user_id: str) -> list[RuleCreate]:
    """Build the default rules for a user.

    Two "Go" rules (ready and blocked), one "Done" rule and the default
    communication preferences.

    Args:
        user_id: Owner of the rules

    Returns:
        Rules to create, highest priority first
    """
    return [
        RuleCreate(
            user_id=user_id,
            rule_type=RuleType.COMMAND,
            trigger="Go",
            context_patterns=[ContextPattern(type=PatternType.TASK_STATE, value="ready_to_proceed")],
            action=ContextualExecutionAction(
                handlers={
                    "ready_to_proceed": Handler(
                        response="execute_next_logical_step", show_progress=True
                    ),
                }
            ),
            priority=100,
            description="Execute next step when ready",
        ),
        RuleCreate(
            user_id=user_id,
            rule_type=RuleType.COMMAND,
            trigger="Go",
            context_patterns=[ContextPattern(type=PatternType.TASK_STATE, value="blocked")],
            action=ContextualExecutionAction(
                handlers={
                    "blocked": Handler(
                        response="explain_blocking_reason",
                        details="explain_what_user_must_do",
                    ),
                }
            ),
            priority=95,
            description="Explain blocking reason when blocked",
        ),
        RuleCreate(
            user_id=user_id,
            rule_type=RuleType.COMMAND,
            trigger="Done",
            action=ContextualExecutionAction(
                handlers={
                    "default": Handler(
                        response="acknowledge_already_complete", show_summary=True
                    ),
                }
            ),
            priority=90,
            description="Acknowledge completion",
        ),
        RuleCreate(
            user_id=user_id,
            rule_type=RuleType.PREFERENCE,
            category="communication",
            trigger="always",
            action=PreferenceAction(settings=dict(DEFAULT_PREFERENCES)),
            priority=50,
            description="Default communication preferences",
        ),
    ]
