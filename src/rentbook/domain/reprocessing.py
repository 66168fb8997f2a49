"""Reprocessing and promotion of pending transactions.

Every pass recomputes a pending transaction's classification from scratch
against the rules that currently exist. Incremental patching would never
clear a field whose only supplying rule was edited or deleted.
"""

import logging
from decimal import Decimal
from typing import Any, Mapping, Optional

from rentbook.database.base import Database
from rentbook.domain.categories import LEGAL_CATEGORIES, TransactionType, is_legal_combination
from rentbook.domain.entities import MatchingRule, PendingTransaction, Promotion
from rentbook.domain.errors import (
    NotFoundError,
    bank_account_not_found,
    illegal_type_category,
    pending_not_found,
    property_not_found,
)
from rentbook.domain.rule_engine import RuleEvaluationResult, evaluate_rules

logger = logging.getLogger(__name__)

AUTO_REVIEWER = "rule-engine"


def ledger_amount(bank_amount: Decimal) -> Decimal:
    """Ledger amounts are unsigned; the transaction type carries direction."""
    return abs(bank_amount)


class ReprocessingService:
    """Service for re-evaluating pending transactions and promoting matches."""

    def __init__(
        self,
        db: Database,
        category_table: Mapping[TransactionType, tuple[str, ...]] = LEGAL_CATEGORIES,
        reviewer: str = AUTO_REVIEWER,
    ):
        """Initialize reprocessing service.

        Args:
            db: Database instance
            category_table: Legal categories per transaction type
            reviewer: Identity recorded on automatically promoted items
        """
        self.db = db
        self.category_table = category_table
        self.reviewer = reviewer

    def check_promotion(
        self,
        property_id: Optional[int],
        type_value: Any,
        category: Optional[str],
        bank_amount: Decimal,
    ) -> list[str]:
        """Check the preconditions for creating a ledger transaction.

        The sign of the bank amount must agree with the type: income is
        money received, expenses are money paid out.

        Args:
            property_id: Property the transaction belongs to
            type_value: Transaction type (label or enum member)
            category: Ledger category
            bank_amount: Signed amount as reported by the bank

        Returns:
            Human-readable problems; empty when promotion may proceed
        """
        problems = []
        if property_id is None:
            problems.append("property_id is required")
        elif self.db.get_property(property_id) is None:
            problems.append(property_not_found(property_id))

        txn_type = TransactionType.parse(type_value)
        if txn_type is None:
            problems.append("type is required")
        if not category:
            problems.append("category is required")
        if txn_type is not None and category and not is_legal_combination(
            txn_type, category, self.category_table
        ):
            problems.append(illegal_type_category(txn_type.value, category))

        if bank_amount == 0:
            problems.append(f"Amount must be non-zero, got {bank_amount}")
        elif txn_type == TransactionType.INCOME and bank_amount < 0:
            problems.append(f"Income must be money received, got {bank_amount}")
        elif txn_type == TransactionType.EXPENSE and bank_amount > 0:
            problems.append(f"Expense must be money paid out, got {bank_amount}")
        return problems

    def reprocess(self, bank_account_id: Optional[int] = None) -> dict[str, int]:
        """Re-evaluate all unreviewed pending transactions in scope.

        Args:
            bank_account_id: Limit to one bank account; None means every
                account (used when a global rule changes)

        Returns:
            Dict with counts:
            - processed: pending transactions evaluated
            - approved: pending transactions promoted to the ledger
            - failed: pending transactions that raised an unexpected error

        Raises:
            NotFoundError: If the bank account doesn't exist
        """
        if bank_account_id is not None and self.db.get_bank_account(bank_account_id) is None:
            raise NotFoundError(bank_account_not_found(bank_account_id))

        pending_list = self.db.list_pending_transactions(bank_account_id=bank_account_id, reviewed=False)
        rules_by_account: dict[int, list[MatchingRule]] = {}

        processed = 0
        approved = 0
        failed = 0
        for pending in pending_list:
            try:
                rules = rules_by_account.get(pending.bank_account_id)
                if rules is None:
                    rules = self.db.get_rules_for_account(pending.bank_account_id)
                    rules_by_account[pending.bank_account_id] = rules

                evaluation = self._evaluate(pending, rules)
                processed += 1
                if self._apply(pending, evaluation):
                    approved += 1
            except Exception:
                failed += 1
                logger.exception("Error reprocessing pending transaction %s", pending.id)

        logger.info(
            "Reprocessed %d pending transactions (scope: %s): %d approved, %d failed",
            processed,
            "all accounts" if bank_account_id is None else f"bank account {bank_account_id}",
            approved,
            failed,
        )
        return {"processed": processed, "approved": approved, "failed": failed}

    def process_pending(self, pending_id: int) -> bool:
        """Classify one pending transaction and promote it if possible.

        Returns:
            True if the pending transaction was promoted

        Raises:
            NotFoundError: If the pending transaction doesn't exist
        """
        pending = self.db.get_pending_transaction(pending_id)
        if pending is None:
            raise NotFoundError(pending_not_found(pending_id))
        if pending.is_reviewed:
            return False

        rules = self.db.get_rules_for_account(pending.bank_account_id)
        return self._apply(pending, self._evaluate(pending, rules))

    def _evaluate(self, pending: PendingTransaction, rules: list[MatchingRule]) -> RuleEvaluationResult:
        bank_txn = self.db.get_bank_transaction(pending.bank_transaction_id)
        if bank_txn is None:
            raise NotFoundError(f"Bank transaction {pending.bank_transaction_id} not found")
        return evaluate_rules(bank_txn, rules)

    def _apply(self, pending: PendingTransaction, evaluation: RuleEvaluationResult) -> bool:
        """Promote a fully matched transaction, otherwise store the recomputed fields."""
        if evaluation.fully_matched:
            problems = self.check_promotion(
                evaluation.property_id, evaluation.type, evaluation.category, pending.amount
            )
            if not problems:
                ledger_ids = self.db.promote_pending_transactions(
                    [
                        Promotion(
                            pending_id=pending.id,
                            property_id=evaluation.property_id,
                            type=evaluation.type,
                            category=evaluation.category,
                            amount=ledger_amount(pending.amount),
                            lease_id=pending.lease_id,
                        )
                    ],
                    reviewed_by=self.reviewer,
                )
                logger.info(
                    "Promoted pending transaction %s to ledger transaction %s (rules %s)",
                    pending.id,
                    ledger_ids[0],
                    list(evaluation.matched_rule_ids),
                )
                return True
            logger.warning(
                "Pending transaction %s is fully matched but cannot be promoted: %s",
                pending.id,
                "; ".join(problems),
            )

        changes = {
            "property_id": evaluation.property_id,
            "type": evaluation.type,
            "category": evaluation.category,
        }
        current = {"property_id": pending.property_id, "type": pending.type, "category": pending.category}
        if changes != current:
            self.db.update_pending_transactions([pending.id], changes)
        return False
