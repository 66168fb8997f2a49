"""Rule evaluation engine.

Rules are folded in ascending priority order into an immutable result. Each
matching rule fills only the output fields that are still unset, so the
first rule to supply a field wins and priority is the only tie-break.
Scanning stops as soon as property, type and category are all set.
"""

import logging
from dataclasses import dataclass, replace
from typing import Any, Iterable, Optional

from rentbook.domain.categories import TransactionType
from rentbook.domain.conditions import matches, parse_conditions
from rentbook.domain.entities import MatchingRule
from rentbook.domain.errors import ConditionParseError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RuleEvaluationResult:
    """Partial classification accumulated from matching rules."""

    property_id: Optional[int] = None
    type: Optional[TransactionType] = None
    category: Optional[str] = None
    matched_rule_ids: tuple[int, ...] = ()

    @property
    def fully_matched(self) -> bool:
        return self.property_id is not None and self.type is not None and bool(self.category)

    def apply(self, rule: MatchingRule) -> "RuleEvaluationResult":
        """Return the result with the rule's outputs filled into unset fields.

        Returns self unchanged when the rule supplies nothing new.
        """
        changes: dict[str, Any] = {}
        if self.property_id is None and rule.property_id is not None:
            changes["property_id"] = rule.property_id
        rule_type = TransactionType.parse(rule.type)
        if self.type is None and rule_type is not None:
            changes["type"] = rule_type
        if not self.category and rule.category:
            changes["category"] = rule.category

        if not changes:
            return self
        return replace(self, matched_rule_ids=self.matched_rule_ids + (rule.id,), **changes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "property_id": self.property_id,
            "type": self.type.value if self.type is not None else None,
            "category": self.category,
            "matched_rule_ids": list(self.matched_rule_ids),
            "fully_matched": self.fully_matched,
        }


def sort_rules(rules: Iterable[MatchingRule]) -> list[MatchingRule]:
    """Order rules by ascending priority, keeping the given order for ties."""
    return sorted(rules, key=lambda rule: rule.priority)


def evaluate_rules(transaction: Any, rules: Iterable[MatchingRule]) -> RuleEvaluationResult:
    """Evaluate matching rules against a bank transaction.

    Args:
        transaction: BankTransaction (or any object with its field attributes)
        rules: Matching rules; global and account rules may be mixed

    Returns:
        RuleEvaluationResult with the accumulated fields and the ids of the
        rules that contributed at least one of them
    """
    result = RuleEvaluationResult()

    for rule in sort_rules(rules):
        if result.fully_matched:
            break
        if not rule.enabled:
            continue

        try:
            condition = parse_conditions(rule.conditions)
        except ConditionParseError as e:
            logger.debug("Skipping matching rule %s: %s", rule.id, e)
            continue

        if matches(transaction, condition):
            result = result.apply(rule)

    return result
