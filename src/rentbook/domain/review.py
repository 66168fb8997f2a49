"""Manual review of pending transactions.

Reviewed pending transactions are immutable. Every batch operation
validates all of its members before changing any of them, and a single
failing member rejects the whole batch.
"""

import logging
from typing import Any, Iterable, Mapping, Optional

from rentbook.database.base import Database
from rentbook.domain.categories import (
    LEGAL_CATEGORIES,
    TransactionType,
    is_known_category,
    is_legal_combination,
)
from rentbook.domain.entities import PendingTransaction, Promotion
from rentbook.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    batch_rejected,
    illegal_type_category,
    pending_already_reviewed,
    pending_not_found,
    property_not_found,
)
from rentbook.domain.reprocessing import ReprocessingService, ledger_amount

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("property_id", "lease_id", "type", "category")
REVIEW_STATUSES = {"pending": False, "reviewed": True, "all": None}


class ReviewService:
    """Service for reviewing, approving and rejecting pending transactions."""

    def __init__(
        self,
        db: Database,
        category_table: Mapping[TransactionType, tuple[str, ...]] = LEGAL_CATEGORIES,
    ):
        """Initialize review service.

        Args:
            db: Database instance
            category_table: Legal categories per transaction type
        """
        self.db = db
        self.category_table = category_table
        self.reprocessing_service = ReprocessingService(db, category_table=category_table)

    def list_pending(
        self,
        bank_account_id: Optional[int] = None,
        review_status: str = "pending",
        search: Optional[str] = None,
    ) -> list[PendingTransaction]:
        """List pending transactions.

        Args:
            bank_account_id: Optional bank account filter
            review_status: "pending" (default), "reviewed" or "all"
            search: Optional case-insensitive description search

        Raises:
            ValidationError: If review_status is not recognized
        """
        if review_status not in REVIEW_STATUSES:
            raise ValidationError(
                f"Unknown review status '{review_status}'. "
                f"Supported: {', '.join(REVIEW_STATUSES)}"
            )
        return self.db.list_pending_transactions(
            bank_account_id=bank_account_id,
            reviewed=REVIEW_STATUSES[review_status],
            search=search,
        )

    def count_unreviewed(self) -> int:
        """Count pending transactions awaiting review."""
        return self.db.count_pending_transactions(reviewed=False)

    def get_pending(self, pending_id: int) -> Optional[PendingTransaction]:
        """Get pending transaction by ID."""
        return self.db.get_pending_transaction(pending_id)

    def update_pending(self, pending_id: int, **changes: Any) -> PendingTransaction:
        """Update classification fields of one pending transaction.

        Args:
            pending_id: Pending transaction ID
            **changes: Any of property_id, lease_id, type, category; None clears

        Returns:
            The updated pending transaction
        """
        self.bulk_update([pending_id], **changes)
        return self.db.get_pending_transaction(pending_id)

    def approve(self, pending_id: int, reviewed_by: str) -> int:
        """Approve one pending transaction into the ledger.

        Returns:
            Ledger transaction ID
        """
        return self.bulk_approve([pending_id], reviewed_by)[0]

    def bulk_approve(self, pending_ids: Iterable[int], reviewed_by: str) -> list[int]:
        """Approve several pending transactions into the ledger, all or nothing.

        Every member must be unreviewed, have property, type and category
        set, and pass the promotion preconditions.

        Returns:
            Ledger transaction IDs in request order

        Raises:
            ValidationError: If IDs are empty, reviewed_by is blank, or any
                member is incomplete or fails a precondition
            NotFoundError: If any ID doesn't exist
            ConflictError: If any member was already reviewed
        """
        if not reviewed_by or not reviewed_by.strip():
            raise ValidationError("A reviewer is required to approve transactions")

        pending_list = self._load_mutable(self._normalize_ids(pending_ids), "approve")

        failures = []
        promotions = []
        for pending in pending_list:
            missing = pending.missing_fields
            if missing:
                failures.append(
                    {"id": pending.id, "reason": f"{', '.join(missing)} required before approval"}
                )
                continue

            problems = self.reprocessing_service.check_promotion(
                pending.property_id, pending.type, pending.category, pending.amount
            )
            if problems:
                failures.append({"id": pending.id, "reason": "; ".join(problems)})
                continue

            promotions.append(
                Promotion(
                    pending_id=pending.id,
                    property_id=pending.property_id,
                    type=pending.type,
                    category=pending.category,
                    amount=ledger_amount(pending.amount),
                    lease_id=pending.lease_id,
                )
            )

        if failures:
            raise ValidationError(batch_rejected("approve", failures), details=failures)

        ledger_ids = self.db.promote_pending_transactions(promotions, reviewed_by=reviewed_by)
        logger.info("%s approved %d pending transactions", reviewed_by, len(ledger_ids))
        return ledger_ids

    def bulk_update(self, pending_ids: Iterable[int], **changes: Any) -> int:
        """Apply the same field changes to several pending transactions, all or nothing.

        Returns:
            Number of pending transactions updated

        Raises:
            ValidationError: If no field is given, a value is invalid, or the
                change would leave any member with an illegal type/category pair
            NotFoundError: If any ID or the property doesn't exist
            ConflictError: If any member was already reviewed
        """
        changes = self._validate_changes(changes)
        pending_list = self._load_mutable(self._normalize_ids(pending_ids), "update")

        failures = []
        for pending in pending_list:
            txn_type = changes["type"] if "type" in changes else pending.type
            category = changes["category"] if "category" in changes else pending.category
            if txn_type is not None and category and not is_legal_combination(
                txn_type, category, self.category_table
            ):
                failures.append({"id": pending.id, "reason": illegal_type_category(txn_type.value, category)})
        if failures:
            raise ValidationError(batch_rejected("update", failures), details=failures)

        self.db.update_pending_transactions([p.id for p in pending_list], changes)
        return len(pending_list)

    def bulk_reject(self, pending_ids: Iterable[int]) -> int:
        """Reject several pending transactions, all or nothing.

        Rejected pending transactions are deleted without creating ledger
        transactions. Their bank transactions remain, so the same provider
        records are still recognized as duplicates on the next sync.

        Returns:
            Number of pending transactions rejected
        """
        pending_list = self._load_mutable(self._normalize_ids(pending_ids), "reject")
        self.db.delete_pending_transactions([p.id for p in pending_list])
        logger.info("Rejected %d pending transactions", len(pending_list))
        return len(pending_list)

    def _normalize_ids(self, pending_ids: Iterable[int]) -> list[int]:
        # Remove duplicates while preserving order
        unique_ids = []
        seen = set()
        for pending_id in pending_ids:
            if pending_id not in seen:
                unique_ids.append(pending_id)
                seen.add(pending_id)
        if not unique_ids:
            raise ValidationError("At least one ID is required")
        return unique_ids

    def _load_mutable(self, pending_ids: list[int], action: str) -> list[PendingTransaction]:
        """Load pending transactions, rejecting the batch if any is missing or reviewed."""
        pending_list = []
        missing = []
        reviewed = []
        for pending_id in pending_ids:
            pending = self.db.get_pending_transaction(pending_id)
            if pending is None:
                missing.append({"id": pending_id, "reason": pending_not_found(pending_id)})
            elif pending.is_reviewed:
                reviewed.append({"id": pending_id, "reason": pending_already_reviewed(pending_id)})
            else:
                pending_list.append(pending)

        if reviewed:
            failures = reviewed + missing
            raise ConflictError(batch_rejected(action, failures), details=failures)
        if missing:
            raise NotFoundError(batch_rejected(action, missing), details=missing)
        return pending_list

    def _validate_changes(self, changes: dict[str, Any]) -> dict[str, Any]:
        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")
        if not changes:
            raise ValidationError("At least one field must be provided for update")

        validated = dict(changes)
        property_id = changes.get("property_id")
        if property_id is not None and self.db.get_property(property_id) is None:
            raise NotFoundError(property_not_found(property_id))

        if changes.get("type") is not None:
            txn_type = TransactionType.parse(changes["type"])
            if txn_type is None:
                raise ValidationError(f"Unknown transaction type '{changes['type']}'")
            validated["type"] = txn_type

        category = changes.get("category")
        if category is not None and not is_known_category(category, self.category_table):
            raise ValidationError(f"Unknown category '{category}'")
        return validated
