"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic so the classification code only
ever sees domain entities.
"""

from rentbook.domain import entities as domain
from rentbook.domain.categories import TransactionType
from rentbook.database.models import (
    BankAccount as ORMBankAccount,
    Property as ORMProperty,
    BankTransaction as ORMBankTransaction,
    MatchingRule as ORMMatchingRule,
    PendingTransaction as ORMPendingTransaction,
    LedgerTransaction as ORMLedgerTransaction,
)


def bank_account_to_domain(orm_account: ORMBankAccount) -> domain.BankAccount:
    """Convert SQLAlchemy BankAccount model to domain BankAccount entity."""
    return domain.BankAccount(
        id=orm_account.id,
        name=orm_account.name,
        provider=orm_account.provider,
        external_account_id=orm_account.external_account_id,
        created_at=orm_account.created_at,
    )


def property_to_domain(orm_property: ORMProperty) -> domain.Property:
    """Convert SQLAlchemy Property model to domain Property entity."""
    return domain.Property(
        id=orm_property.id,
        name=orm_property.name,
        status=orm_property.status,
        created_at=orm_property.created_at,
    )


def bank_transaction_to_domain(orm_txn: ORMBankTransaction) -> domain.BankTransaction:
    """Convert SQLAlchemy BankTransaction model to domain BankTransaction entity."""
    return domain.BankTransaction(
        id=orm_txn.id,
        bank_account_id=orm_txn.bank_account_id,
        external_id=orm_txn.external_id,
        amount=orm_txn.amount,
        currency=orm_txn.currency,
        description=orm_txn.description,
        counterparty_name=orm_txn.counterparty_name,
        reference=orm_txn.reference,
        merchant=orm_txn.merchant,
        provider_category=orm_txn.provider_category,
        transaction_date=orm_txn.transaction_date,
        settled_date=orm_txn.settled_date,
        imported_at=orm_txn.imported_at,
        ledger_transaction_id=orm_txn.ledger_transaction_id,
        pending_transaction_id=orm_txn.pending.id if orm_txn.pending is not None else None,
    )


def matching_rule_to_domain(orm_rule: ORMMatchingRule) -> domain.MatchingRule:
    """Convert SQLAlchemy MatchingRule model to domain MatchingRule entity."""
    return domain.MatchingRule(
        id=orm_rule.id,
        bank_account_id=orm_rule.bank_account_id,
        name=orm_rule.name,
        priority=orm_rule.priority,
        enabled=orm_rule.enabled,
        conditions=orm_rule.conditions,
        property_id=orm_rule.property_id,
        type=TransactionType.parse(orm_rule.type),
        category=orm_rule.category,
        created_at=orm_rule.created_at,
        updated_at=orm_rule.updated_at,
    )


def pending_transaction_to_domain(orm_pending: ORMPendingTransaction) -> domain.PendingTransaction:
    """Convert SQLAlchemy PendingTransaction model to domain PendingTransaction entity."""
    bank_txn = orm_pending.bank_transaction
    return domain.PendingTransaction(
        id=orm_pending.id,
        bank_transaction_id=orm_pending.bank_transaction_id,
        bank_account_id=bank_txn.bank_account_id,
        property_id=orm_pending.property_id,
        type=TransactionType.parse(orm_pending.type),
        category=orm_pending.category,
        lease_id=orm_pending.lease_id,
        transaction_date=orm_pending.transaction_date,
        description=orm_pending.description,
        amount=bank_txn.amount,
        currency=bank_txn.currency,
        created_at=orm_pending.created_at,
        reviewed_at=orm_pending.reviewed_at,
        reviewed_by=orm_pending.reviewed_by,
    )


def ledger_transaction_to_domain(orm_ledger: ORMLedgerTransaction) -> domain.LedgerTransaction:
    """Convert SQLAlchemy LedgerTransaction model to domain LedgerTransaction entity."""
    return domain.LedgerTransaction(
        id=orm_ledger.id,
        property_id=orm_ledger.property_id,
        type=TransactionType.parse(orm_ledger.type),
        category=orm_ledger.category,
        amount=orm_ledger.amount,
        transaction_date=orm_ledger.transaction_date,
        description=orm_ledger.description,
        lease_id=orm_ledger.lease_id,
        bank_transaction_id=orm_ledger.bank_transaction_id,
        is_imported=orm_ledger.is_imported,
        imported_at=orm_ledger.imported_at,
        created_at=orm_ledger.created_at,
    )
