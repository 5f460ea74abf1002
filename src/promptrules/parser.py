"""Command parser: tokenizes input and resolves it against prompting rules."""

import logging

from .executor import ActionExecutor
from .matching import matches_all
from .models import ActionResult, Context, ParsedCommand, Rule

logger = logging.getLogger(__name__)


class CommandParser:
    """Interpret short commands using a priority-ordered trigger index.

    Rules are filtered to active ones and sorted by descending priority.
    The sort is stable, so rules with equal priority keep the order in
    which they were loaded.
    """

    def __init__(self, rules: list[Rule], executor: ActionExecutor | None = None) -> None:
        """Initialize the parser.

        Args:
            rules: Rules to index
            executor: Optional action executor (a default one is created if None)

        Raises:
            TypeError: If rules is not a list
        """
        self.executor = executor or ActionExecutor()
        self.rules: list[Rule] = []
        self._command_map: dict[str, list[Rule]] = {}
        self.update_rules(rules)

    def update_rules(self, rules: list[Rule]) -> None:
        """Replace the rule set and rebuild the trigger index."""
        if not isinstance(rules, list):
            raise TypeError(f"rules must be a list, got {type(rules).__name__}")

        self.rules = sorted(
            (rule for rule in rules if rule.is_active),
            key=lambda rule: rule.priority,
            reverse=True,
        )
        self._command_map = self._build_command_map()
        logger.debug(
            "Indexed %d active rules under %d triggers", len(self.rules), len(self._command_map)
        )

    def _build_command_map(self) -> dict[str, list[Rule]]:
        command_map: dict[str, list[Rule]] = {}
        for rule in self.rules:
            command_map.setdefault(rule.trigger.lower(), []).append(rule)
        return command_map

    def parse(self, text: str) -> ParsedCommand:
        """Parse raw input into a structured command.

        Args:
            text: Raw user input

        Returns:
            ParsedCommand whose trigger is the lower-cased first token
        """
        tokens = text.split()
        trigger = tokens[0].lower() if tokens else ""
        args = tokens[1:]

        return ParsedCommand(
            raw=text,
            trigger=trigger,
            tokens=tokens,
            arguments=args or None,
            is_shorthand=trigger in self._command_map,
        )

    def match_rules(self, parsed: ParsedCommand, context: Context) -> list[Rule]:
        """Return the rules for the parsed trigger whose patterns all hold.

        Args:
            parsed: Parsed command
            context: Current context snapshot

        Returns:
            Matching rules ordered by descending priority
        """
        candidates = self._command_map.get(parsed.trigger, [])
        matched = [rule for rule in candidates if matches_all(rule.context_patterns, context)]
        return sorted(matched, key=lambda rule: rule.priority, reverse=True)

    def get_best_match(self, parsed: ParsedCommand, context: Context) -> Rule | None:
        """Return the highest-priority matching rule, or None."""
        matches = self.match_rules(parsed, context)
        return matches[0] if matches else None

    async def execute_action(self, rule: Rule, context: Context) -> ActionResult:
        """Execute a rule's action. Never raises."""
        return self.executor.execute(rule, context)

    def is_known_command(self, text: str) -> bool:
        """Check whether the first token of the input is an indexed trigger."""
        tokens = text.split()
        return bool(tokens) and tokens[0].lower() in self._command_map

    def get_rules_for_trigger(self, trigger: str) -> list[Rule]:
        """Return the indexed rules for a trigger (case-insensitive)."""
        return list(self._command_map.get(trigger.lower(), []))

    @property
    def triggers(self) -> list[str]:
        """Indexed trigger keys."""
        return list(self._command_map)
