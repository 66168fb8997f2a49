"""Provider transaction ingestion domain service."""

import logging
from datetime import datetime, UTC
from typing import Any, Iterable, Optional, Union

from rentbook.database.base import Database
from rentbook.domain.entities import BankTransaction, ProviderTransaction
from rentbook.domain.errors import NotFoundError, bank_account_not_found
from rentbook.domain.reprocessing import ReprocessingService
from rentbook.utils.amount_parser import parse_amount
from rentbook.utils.date_parser import parse_timestamp

logger = logging.getLogger(__name__)

ProviderRecord = Union[ProviderTransaction, dict[str, Any]]


class IngestionService:
    """Service for turning provider records into bank transactions."""

    def __init__(self, db: Database, reprocessing_service: Optional[ReprocessingService] = None):
        """Initialize ingestion service.

        Args:
            db: Database instance
            reprocessing_service: Classifies new pending transactions; a
                default one is created when omitted
        """
        self.db = db
        self.reprocessing_service = reprocessing_service or ReprocessingService(db)

    def ingest(self, provider_records: Iterable[ProviderRecord], bank_account_id: int) -> dict[str, Any]:
        """Ingest a batch of provider transactions into one bank account.

        Each record is handled independently: a malformed record is reported
        in ``errors`` and the rest of the batch carries on.

        Args:
            provider_records: ProviderTransaction objects or provider-native dicts
            bank_account_id: Bank account the records belong to

        Returns:
            Dict with ingestion statistics:
            - processed: number of bank transactions created
            - duplicates_skipped: number of exact or fuzzy duplicates skipped
            - errors: list of {"external_id", "reason"} dicts
            - auto_approved: number of new transactions promoted straight
              to the ledger by the current rules

        Raises:
            NotFoundError: If the bank account doesn't exist
        """
        if self.db.get_bank_account(bank_account_id) is None:
            raise NotFoundError(bank_account_not_found(bank_account_id))

        processed = 0
        duplicates_skipped = 0
        auto_approved = 0
        errors = []

        for record in provider_records:
            external_id = _record_external_id(record)
            try:
                provider_txn = (
                    record
                    if isinstance(record, ProviderTransaction)
                    else ProviderTransaction.from_dict(record)
                )
                candidate = self.normalize(provider_txn, bank_account_id)

                duplicate = self.find_duplicate(candidate)
                if duplicate is not None:
                    duplicates_skipped += 1
                    logger.debug(
                        "Skipping %s: duplicate of bank transaction %s",
                        provider_txn.external_id,
                        duplicate.id,
                    )
                    continue

                bank_txn_id = self.db.create_bank_transaction(
                    bank_account_id=bank_account_id,
                    external_id=candidate.external_id,
                    amount=candidate.amount,
                    currency=candidate.currency,
                    description=candidate.description,
                    transaction_date=candidate.transaction_date,
                    counterparty_name=candidate.counterparty_name,
                    reference=candidate.reference,
                    merchant=candidate.merchant,
                    provider_category=candidate.provider_category,
                    settled_date=candidate.settled_date,
                )
                processed += 1
            except Exception as e:
                errors.append({"external_id": external_id, "reason": str(e)})
                logger.warning("Failed to ingest provider transaction %s: %s", external_id, e)
                continue

            # The bank transaction is stored; a classification failure leaves it pending.
            try:
                bank_txn = self.db.get_bank_transaction(bank_txn_id)
                if bank_txn.pending_transaction_id is not None and self.reprocessing_service.process_pending(
                    bank_txn.pending_transaction_id
                ):
                    auto_approved += 1
            except Exception:
                logger.exception("Error classifying bank transaction %s", bank_txn_id)

        logger.info(
            "Ingested %d transactions into bank account %s (%d duplicates, %d errors, %d auto-approved)",
            processed,
            bank_account_id,
            duplicates_skipped,
            len(errors),
            auto_approved,
        )
        return {
            "processed": processed,
            "duplicates_skipped": duplicates_skipped,
            "errors": errors,
            "auto_approved": auto_approved,
        }

    def normalize(self, provider_txn: ProviderTransaction, bank_account_id: int) -> BankTransaction:
        """Convert a provider transaction into an unsaved bank transaction.

        Raises:
            ValueError: If the amount or a timestamp cannot be parsed
        """
        transaction_date = parse_timestamp(provider_txn.created)
        settled_date = parse_timestamp(provider_txn.settled) if provider_txn.settled else None

        return BankTransaction(
            id=0,
            bank_account_id=bank_account_id,
            external_id=provider_txn.external_id,
            amount=parse_amount(provider_txn.amount),
            currency=provider_txn.currency,
            description=provider_txn.description,
            counterparty_name=provider_txn.counterparty_name,
            reference=provider_txn.notes,
            merchant=provider_txn.merchant_name,
            provider_category=provider_txn.category,
            transaction_date=transaction_date,
            settled_date=settled_date,
            imported_at=datetime.now(UTC).replace(tzinfo=None),
        )

    def find_duplicate(self, candidate: BankTransaction) -> Optional[BankTransaction]:
        """Find an existing bank transaction the candidate duplicates.

        Checks the provider ID first, then identical amount and description
        within the same account. The second check ignores dates, so two
        genuinely repeated purchases are treated as one re-import.
        """
        existing = self.db.find_bank_transaction_by_external_id(
            candidate.bank_account_id, candidate.external_id
        )
        if existing is not None:
            return existing
        return self.db.find_bank_transaction_by_amount_description(
            candidate.bank_account_id, candidate.amount, candidate.description
        )


def _record_external_id(record: Any) -> Optional[str]:
    if isinstance(record, ProviderTransaction):
        return record.external_id
    if isinstance(record, dict) and record.get("id") is not None:
        return str(record["id"])
    return None
