"""Domain model entities for rentbook.

These are pure data classes representing business concepts, independent of
database schema. The store returns these, never ORM rows, so the
classification logic can be exercised without a database.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from rentbook.domain.categories import TransactionType


@dataclass(frozen=True)
class BankAccount:
    """Bank account connected to a banking provider."""

    id: int
    name: str
    provider: str
    external_account_id: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class Property:
    """Property reference that ledger transactions are booked against."""

    id: int
    name: str
    status: str
    created_at: datetime


@dataclass(frozen=True)
class ProviderTransaction:
    """Raw transaction record as received from the banking provider.

    Timestamps are kept as the provider sent them; they are parsed during
    normalization so that a malformed value fails only its own record.
    """

    external_id: str
    account_reference: Optional[str]
    amount: Any
    currency: str
    description: str
    created: Any
    counterparty_name: Optional[str] = None
    merchant_name: Optional[str] = None
    category: Optional[str] = None
    notes: Optional[str] = None
    settled: Any = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProviderTransaction":
        """Build from a provider-native payload.

        Nested ``counterparty``/``merchant`` objects are reduced to their
        ``name``; a plain string merchant is taken as the name. Empty strings
        become None.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Provider record must be an object, got {type(data).__name__}")

        external_id = data.get("id")
        if not external_id:
            raise ValueError("Provider record is missing 'id'")

        return cls(
            external_id=str(external_id),
            account_reference=data.get("account_id"),
            amount=data.get("amount"),
            currency=data.get("currency") or "GBP",
            description=data.get("description") or "",
            created=data.get("created"),
            counterparty_name=_nested_name(data.get("counterparty")),
            merchant_name=_nested_name(data.get("merchant")),
            category=data.get("category") or None,
            notes=data.get("notes") or None,
            settled=data.get("settled") or None,
        )


def _nested_name(value: Any) -> Optional[str]:
    if isinstance(value, dict):
        return value.get("name") or None
    if isinstance(value, str):
        return value or None
    return None


@dataclass(frozen=True)
class BankTransaction:
    """Normalized, persisted form of a provider transaction."""

    id: int
    bank_account_id: int
    external_id: str
    amount: Decimal
    currency: str
    description: str
    counterparty_name: Optional[str]
    reference: Optional[str]
    merchant: Optional[str]
    provider_category: Optional[str]
    transaction_date: datetime
    settled_date: Optional[datetime]
    imported_at: datetime
    ledger_transaction_id: Optional[int] = None
    pending_transaction_id: Optional[int] = None


@dataclass(frozen=True)
class MatchingRule:
    """Priority-ranked classification rule.

    ``conditions`` is the serialized condition tree; it is parsed at
    evaluation time.
    """

    id: int
    bank_account_id: Optional[int]
    name: str
    priority: int
    enabled: bool
    conditions: str
    property_id: Optional[int]
    type: Optional[TransactionType]
    category: Optional[str]
    created_at: datetime
    updated_at: datetime

    @property
    def is_global(self) -> bool:
        return self.bank_account_id is None


@dataclass(frozen=True)
class PendingTransaction:
    """Bank transaction awaiting complete classification or review."""

    id: int
    bank_transaction_id: int
    bank_account_id: int
    property_id: Optional[int]
    type: Optional[TransactionType]
    category: Optional[str]
    lease_id: Optional[int]
    transaction_date: datetime
    description: str
    amount: Decimal
    currency: str
    created_at: datetime
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[str] = None

    @property
    def is_reviewed(self) -> bool:
        return self.reviewed_at is not None

    @property
    def missing_fields(self) -> list[str]:
        """Names of classification fields that are still unset."""
        missing = []
        if self.property_id is None:
            missing.append("property_id")
        if self.type is None:
            missing.append("type")
        if not self.category:
            missing.append("category")
        return missing


@dataclass(frozen=True)
class LedgerTransaction:
    """Permanent financial record."""

    id: int
    property_id: int
    type: TransactionType
    category: str
    amount: Decimal
    transaction_date: datetime
    description: str
    lease_id: Optional[int]
    bank_transaction_id: Optional[int]
    is_imported: bool
    imported_at: Optional[datetime]
    created_at: datetime


@dataclass(frozen=True)
class Promotion:
    """Request to turn a pending transaction into a ledger transaction."""

    pending_id: int
    property_id: int
    type: TransactionType
    category: str
    amount: Decimal
    lease_id: Optional[int] = None
