"""Ordered, id-keyed store of the rules known to an audit session."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Iterator, List, Optional

from .base import Rule

logger = logging.getLogger(__name__)


class DuplicateRuleError(ValueError):
    """Raised by a strict registry when a rule id is registered twice."""


class RuleRegistry:
    """Keep registered rules in registration order.

    Re-registering an id replaces the rule in place, so the original
    position (and therefore output order) is preserved. A strict registry
    refuses duplicates instead.
    """

    def __init__(self, rules: Iterable[Rule] | None = None, *, strict: bool = False) -> None:
        self._rules: Dict[str, Rule] = {}
        self.strict = strict
        if rules:
            self.register_all(rules)

    def register(self, rule: Rule) -> "RuleRegistry":
        rule_id = rule.rule_id
        if not rule_id:
            raise ValueError(f"Rule {type(rule).__name__} does not declare a rule_id")

        if rule_id in self._rules:
            if self.strict:
                raise DuplicateRuleError(f"Rule id already registered: {rule_id}")
            logger.warning(
                "Replacing rule %s (%s) with %s",
                rule_id,
                type(self._rules[rule_id]).__name__,
                type(rule).__name__,
            )

        self._rules[rule_id] = rule
        return self

    def register_all(self, rules: Iterable[Rule]) -> "RuleRegistry":
        for rule in rules:
            self.register(rule)
        return self

    def get(self, rule_id: str) -> Optional[Rule]:
        return self._rules.get(rule_id)

    def all(self) -> List[Rule]:
        return list(self._rules.values())

    def ids(self) -> List[str]:
        return list(self._rules)

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._rules

    def __iter__(self) -> Iterator[Rule]:
        return iter(self.all())

    def __len__(self) -> int:
        return len(self._rules)
