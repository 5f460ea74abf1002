"""Action executor: turns a matched rule's action into an ActionResult."""

import logging
from typing import Any

from .models import (
    ActionResult,
    BehaviorAction,
    Context,
    ContextualExecutionAction,
    MacroAction,
    PreferenceAction,
    Rule,
    TaskState,
    WorkflowAction,
)
from .templates import render_response

logger = logging.getLogger(__name__)

DEFAULT_HANDLER_KEY = "default"
DEFAULT_VERBOSITY = "concise"


class ActionExecutor:
    """Dispatch on the action tag of a rule.

    Step lists of behavior, workflow and macro actions are returned as opaque
    names; carrying them out is the caller's job.
    """

    def execute(self, rule: Rule, context: Context) -> ActionResult:
        """Execute a rule's action against the current context.

        Args:
            rule: Matched rule
            context: Current context snapshot

        Returns:
            ActionResult. Failures, including unexpected exceptions, are
            reported with success=False rather than raised.
        """
        action = rule.action
        try:
            if isinstance(action, ContextualExecutionAction):
                return self._execute_contextual(action, context)
            if isinstance(action, BehaviorAction):
                return self._execute_behavior(action, context)
            if isinstance(action, MacroAction):
                return self._execute_macro(action)
            if isinstance(action, PreferenceAction):
                # Preferences are merged into the context by the session, not executed
                return ActionResult(success=True, response="Preferences applied")
            if isinstance(action, WorkflowAction):
                return ActionResult(
                    success=True,
                    response="Workflow triggered",
                    actions=list(action.steps),
                )

            action_type = getattr(action, "type", type(action).__name__)
            logger.warning("Rule %s has unknown action type %r", rule.id, action_type)
            return ActionResult(success=False, error=f"Unknown action type: {action_type}")
        except Exception as e:
            logger.exception("Error executing action for rule %s", rule.id)
            return ActionResult(success=False, error=str(e))

    def _execute_contextual(
        self, action: ContextualExecutionAction, context: Context
    ) -> ActionResult:
        task_state = context.task_state or TaskState.READY_TO_PROCEED
        state_key = TaskState(task_state).value

        handler = action.handlers.get(state_key)
        if handler is None:
            # Only rules that declare a "default" handler fall back to it
            handler = action.handlers.get(DEFAULT_HANDLER_KEY)
        if handler is None:
            return ActionResult(success=False, error=f"No handler for task state: {state_key}")

        response = render_response(handler.response, context)
        if handler.details:
            response += "\n\n" + render_response(handler.details, context)

        metadata: dict[str, Any] = {
            "task_state": state_key,
            "handler_used": handler.response,
        }
        if handler.show_progress:
            metadata["show_progress"] = True
        if handler.show_summary:
            metadata["show_summary"] = True

        return ActionResult(
            success=True,
            response=response,
            next_steps=[handler.then] if handler.then else None,
            metadata=metadata,
        )

    def _execute_behavior(self, action: BehaviorAction, context: Context) -> ActionResult:
        options = action.options or {}
        verbosity = (
            options.get("verbosity")
            or context.preferences.get("verbosity")
            or DEFAULT_VERBOSITY
        )
        return ActionResult(
            success=True,
            response="Executing behavior steps",
            actions=list(action.steps),
            metadata={"verbosity": verbosity, "options": action.options},
        )

    def _execute_macro(self, action: MacroAction) -> ActionResult:
        return ActionResult(
            success=True,
            response=f"Executing macro with {len(action.steps)} steps",
            actions=list(action.steps),
            metadata={"options": action.options},
        )
