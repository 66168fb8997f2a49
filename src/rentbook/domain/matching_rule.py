"""Matching rule domain service.

Every mutation re-evaluates the pending pool it can affect: an
account-specific rule reprocesses its own account, a global rule
reprocesses every account.
"""

import logging
from dataclasses import replace
from types import SimpleNamespace
from typing import Any, Optional, Union

from rentbook.database.base import Database
from rentbook.domain.categories import TransactionType
from rentbook.domain.conditions import Condition, serialize_conditions, validate_conditions
from rentbook.domain.entities import MatchingRule
from rentbook.domain.errors import (
    DependencyError,
    NotFoundError,
    ValidationError,
    bank_account_not_found,
    property_not_found,
    rule_not_found,
)
from rentbook.domain.reprocessing import ReprocessingService
from rentbook.domain.rule_engine import RuleEvaluationResult, evaluate_rules
from rentbook.utils.amount_parser import parse_amount

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("name", "enabled", "conditions", "property_id", "type", "category")

# (name, conditions, type, category, priority)
DEFAULT_RULES = (
    (
        "Default: Rent",
        {"operator": "AND", "rules": [{"field": "description", "matchType": "contains", "value": "rent"}]},
        TransactionType.INCOME,
        "Rent",
        100,
    ),
    (
        "Default: Security Deposit",
        {"operator": "AND", "rules": [{"field": "description", "matchType": "contains", "value": "deposit"}]},
        TransactionType.INCOME,
        "Security Deposit",
        101,
    ),
    (
        "Default: Maintenance",
        {"operator": "AND", "rules": [{"field": "description", "matchType": "contains", "value": "maintenance"}]},
        TransactionType.EXPENSE,
        "Maintenance",
        102,
    ),
    (
        "Default: Repair",
        {"operator": "AND", "rules": [{"field": "description", "matchType": "contains", "value": "repair"}]},
        TransactionType.EXPENSE,
        "Repair",
        103,
    ),
    (
        "Default: Other Expense",
        {"operator": "AND", "rules": [{"field": "amount", "matchType": "lessThan", "value": 0}]},
        TransactionType.EXPENSE,
        "Other",
        1000,
    ),
)

ConditionsInput = Union[str, dict, Condition]


class MatchingRuleService:
    """Service for managing matching rules."""

    def __init__(self, db: Database, reprocessing_service: Optional[ReprocessingService] = None):
        """Initialize matching rule service.

        Args:
            db: Database instance
            reprocessing_service: Used after every mutation; a default one
                is created when omitted
        """
        self.db = db
        self.reprocessing_service = reprocessing_service or ReprocessingService(db)

    def create_rule(
        self,
        name: str,
        conditions: ConditionsInput,
        bank_account_id: Optional[int] = None,
        property_id: Optional[int] = None,
        type: Optional[Any] = None,
        category: Optional[str] = None,
        enabled: bool = True,
    ) -> tuple[int, dict[str, int]]:
        """Create a matching rule at the end of its scope's priority order.

        Args:
            name: Rule name
            conditions: Condition tree (JSON text, dict or condition node)
            bank_account_id: Owning bank account; None creates a global rule
            property_id: Property the rule assigns
            type: Transaction type the rule assigns ("INCOME"/"EXPENSE", any case)
            category: Category the rule assigns
            enabled: Whether the rule takes part in evaluation

        Returns:
            Tuple of (rule ID, reprocessing summary)

        Raises:
            ValidationError: If name, conditions or type are invalid
            NotFoundError: If the bank account or property doesn't exist
        """
        if not name or not name.strip():
            raise ValidationError("Rule name is required")
        condition = validate_conditions(conditions)
        txn_type = self._validate_type(type)
        if bank_account_id is not None and self.db.get_bank_account(bank_account_id) is None:
            raise NotFoundError(bank_account_not_found(bank_account_id))
        self._validate_property(property_id)

        max_priority = self.db.get_max_rule_priority(bank_account_id)
        priority = 0 if max_priority is None else max_priority + 1

        rule_id = self.db.create_matching_rule(
            name=name.strip(),
            conditions=serialize_conditions(condition),
            priority=priority,
            bank_account_id=bank_account_id,
            property_id=property_id,
            type=txn_type,
            category=category or None,
            enabled=enabled,
        )
        logger.info("Created matching rule %s '%s' at priority %d", rule_id, name, priority)
        return rule_id, self._reprocess_scope(bank_account_id)

    def get_rule(self, rule_id: int) -> Optional[MatchingRule]:
        """Get matching rule by ID."""
        return self.db.get_matching_rule(rule_id)

    def list_rules(
        self, bank_account_id: Optional[int] = None, include_global: bool = True
    ) -> list[MatchingRule]:
        """List matching rules.

        Args:
            bank_account_id: If set, the rules that apply to this account
            include_global: With bank_account_id, also include global rules;
                without it, False lists only the global rules

        Returns:
            Rules in evaluation order
        """
        if bank_account_id is None:
            if include_global:
                return self.db.list_matching_rules()
            return self.db.list_matching_rules(global_only=True)
        if include_global:
            return self.db.get_rules_for_account(bank_account_id)
        return self.db.list_matching_rules(bank_account_id=bank_account_id)

    def update_rule(self, rule_id: int, **changes: Any) -> dict[str, int]:
        """Update a matching rule and reprocess its scope.

        Args:
            rule_id: Rule ID
            **changes: Any of name, enabled, conditions, property_id, type, category

        Returns:
            Reprocessing summary

        Raises:
            NotFoundError: If the rule or property doesn't exist
            ValidationError: If no field is given or a value is invalid
        """
        rule = self._require_rule(rule_id)

        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Cannot update rule fields: {', '.join(sorted(unknown))}")
        if not changes:
            raise ValidationError("At least one field must be provided for update")

        updates = dict(changes)
        if "name" in changes:
            if not changes["name"] or not changes["name"].strip():
                raise ValidationError("Rule name is required")
            updates["name"] = changes["name"].strip()
        if "conditions" in changes:
            updates["conditions"] = serialize_conditions(validate_conditions(changes["conditions"]))
        if "type" in changes:
            updates["type"] = self._validate_type(changes["type"])
        if "property_id" in changes:
            self._validate_property(changes["property_id"])
        if "category" in changes:
            updates["category"] = changes["category"] or None
        if "enabled" in changes:
            updates["enabled"] = bool(changes["enabled"])

        self.db.update_matching_rule(rule_id, updates)
        logger.info("Updated matching rule %s: %s", rule_id, ", ".join(sorted(updates)))
        return self._reprocess_scope(rule.bank_account_id)

    def delete_rule(self, rule_id: int) -> dict[str, int]:
        """Delete a matching rule and reprocess its scope.

        Pending transactions whose fields came only from this rule lose
        them on the reprocessing pass.

        Returns:
            Reprocessing summary

        Raises:
            NotFoundError: If the rule doesn't exist
        """
        rule = self._require_rule(rule_id)
        self.db.delete_matching_rule(rule_id)
        logger.info("Deleted matching rule %s '%s'", rule_id, rule.name)
        return self._reprocess_scope(rule.bank_account_id)

    def reorder_rules(self, rule_ids: list[int]) -> dict[int, dict[str, int]]:
        """Set rule priorities to their positions in rule_ids.

        Only account-specific rules can be reordered; global rule priorities
        are fixed.

        Returns:
            Reprocessing summary per affected bank account

        Raises:
            ValidationError: If rule_ids is empty or has duplicates
            NotFoundError: If any rule doesn't exist
            DependencyError: If any rule is global
        """
        if not rule_ids:
            raise ValidationError("At least one rule ID is required")
        if len(set(rule_ids)) != len(rule_ids):
            raise ValidationError("Rule IDs must not repeat")

        rules = [self._require_rule(rule_id) for rule_id in rule_ids]
        global_ids = [rule.id for rule in rules if rule.is_global]
        if global_ids:
            raise DependencyError(
                f"Cannot reorder global rules: {', '.join(str(rule_id) for rule_id in global_ids)}",
                details=[{"id": rule_id, "reason": "global rule"} for rule_id in global_ids],
            )

        self.db.set_rule_priorities({rule_id: position for position, rule_id in enumerate(rule_ids)})

        summaries = {}
        for rule in rules:
            if rule.bank_account_id not in summaries:
                summaries[rule.bank_account_id] = self._reprocess_scope(rule.bank_account_id)
        return summaries

    def test_rule(self, rule_id: int, sample: dict[str, Any]) -> tuple[bool, RuleEvaluationResult]:
        """Evaluate one rule against a sample transaction without side effects.

        The rule is evaluated even when disabled.

        Args:
            rule_id: Rule ID
            sample: Dict with "description" and optional "amount",
                "counterpartyName", "merchant" and "reference"

        Returns:
            Tuple of (whether the rule matched, the evaluation result)

        Raises:
            NotFoundError: If the rule doesn't exist
            ValidationError: If the sample has no description or a bad amount
        """
        rule = self._require_rule(rule_id)
        if not sample.get("description"):
            raise ValidationError("Sample transaction requires a description")
        try:
            amount = parse_amount(sample["amount"]) if sample.get("amount") is not None else None
        except ValueError as e:
            raise ValidationError(f"Invalid sample amount: {e}")

        transaction = SimpleNamespace(
            description=sample["description"],
            amount=amount,
            counterparty_name=sample.get("counterpartyName"),
            merchant=sample.get("merchant"),
            reference=sample.get("reference"),
        )
        if not rule.enabled:
            rule = replace(rule, enabled=True)
        result = evaluate_rules(transaction, [rule])
        return rule.id in result.matched_rule_ids, result

    def create_default_rules(self) -> int:
        """Create the default global rules that don't exist yet.

        Returns:
            Number of rules created
        """
        existing = {rule.name for rule in self.db.list_matching_rules(global_only=True)}
        created = 0
        for name, conditions, txn_type, category, priority in DEFAULT_RULES:
            if name in existing:
                continue
            self.db.create_matching_rule(
                name=name,
                conditions=serialize_conditions(conditions),
                priority=priority,
                type=txn_type,
                category=category,
            )
            created += 1

        if created:
            logger.info("Created %d default matching rules", created)
            self.reprocessing_service.reprocess()
        return created

    def _require_rule(self, rule_id: int) -> MatchingRule:
        rule = self.db.get_matching_rule(rule_id)
        if rule is None:
            raise NotFoundError(rule_not_found(rule_id))
        return rule

    def _validate_type(self, value: Any) -> Optional[TransactionType]:
        if value is None or value == "":
            return None
        txn_type = TransactionType.parse(value)
        if txn_type is None:
            raise ValidationError(f"Unknown transaction type '{value}'. Use INCOME or EXPENSE")
        return txn_type

    def _validate_property(self, property_id: Optional[int]) -> None:
        if property_id is not None and self.db.get_property(property_id) is None:
            raise NotFoundError(property_not_found(property_id))

    def _reprocess_scope(self, bank_account_id: Optional[int]) -> dict[str, int]:
        return self.reprocessing_service.reprocess(bank_account_id=bank_account_id)
