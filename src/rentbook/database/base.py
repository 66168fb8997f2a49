"""Abstract database interface."""

from abc import ABC, abstractmethod
from typing import Optional, Any, Iterable
from datetime import datetime
from decimal import Decimal

# Import entities directly to avoid circular import through domain/__init__.py
from rentbook.domain.entities import (
    BankAccount,
    Property,
    BankTransaction,
    MatchingRule,
    PendingTransaction,
    LedgerTransaction,
    Promotion,
)


class Database(ABC):
    """Abstract database interface for rentbook.

    Methods documented as atomic must either apply every change or none.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    # Bank account operations
    @abstractmethod
    def create_bank_account(
        self, name: str, provider: str = "monzo", external_account_id: Optional[str] = None
    ) -> int:
        """Create a bank account. Returns bank account ID."""
        pass

    @abstractmethod
    def get_bank_account(self, bank_account_id: int) -> Optional[BankAccount]:
        """Get bank account by ID."""
        pass

    @abstractmethod
    def list_bank_accounts(self) -> list[BankAccount]:
        """List all bank accounts."""
        pass

    # Property operations
    @abstractmethod
    def create_property(self, name: str, status: str = "Active") -> int:
        """Create a property reference. Returns property ID."""
        pass

    @abstractmethod
    def get_property(self, property_id: int) -> Optional[Property]:
        """Get property by ID."""
        pass

    @abstractmethod
    def list_properties(self) -> list[Property]:
        """List all properties."""
        pass

    # Matching rule operations
    @abstractmethod
    def create_matching_rule(
        self,
        name: str,
        conditions: str,
        priority: int,
        bank_account_id: Optional[int] = None,
        property_id: Optional[int] = None,
        type: Optional[str] = None,
        category: Optional[str] = None,
        enabled: bool = True,
    ) -> int:
        """Create a matching rule. Returns rule ID."""
        pass

    @abstractmethod
    def get_matching_rule(self, rule_id: int) -> Optional[MatchingRule]:
        """Get matching rule by ID."""
        pass

    @abstractmethod
    def list_matching_rules(
        self, bank_account_id: Optional[int] = None, global_only: bool = False
    ) -> list[MatchingRule]:
        """List matching rules ordered by priority.

        Args:
            bank_account_id: Only rules owned by this account
            global_only: Only global rules (ignored when bank_account_id is set)
        """
        pass

    @abstractmethod
    def get_rules_for_account(self, bank_account_id: int) -> list[MatchingRule]:
        """Get the rules that apply to an account.

        Account-specific and global rules merged by ascending priority; at
        equal priority account-specific rules come first, then lower IDs.
        """
        pass

    @abstractmethod
    def get_max_rule_priority(self, bank_account_id: Optional[int]) -> Optional[int]:
        """Get highest priority value in a scope (None scope = global rules)."""
        pass

    @abstractmethod
    def update_matching_rule(self, rule_id: int, changes: dict[str, Any]) -> None:
        """Update matching rule columns named in changes."""
        pass

    @abstractmethod
    def set_rule_priorities(self, priorities: dict[int, int]) -> None:
        """Set priorities for several rules. Atomic."""
        pass

    @abstractmethod
    def delete_matching_rule(self, rule_id: int) -> None:
        """Delete a matching rule."""
        pass

    # Bank transaction operations
    @abstractmethod
    def create_bank_transaction(
        self,
        bank_account_id: int,
        external_id: str,
        amount: Decimal,
        currency: str,
        description: str,
        transaction_date: datetime,
        counterparty_name: Optional[str] = None,
        reference: Optional[str] = None,
        merchant: Optional[str] = None,
        provider_category: Optional[str] = None,
        settled_date: Optional[datetime] = None,
        create_pending: bool = True,
    ) -> int:
        """Create a bank transaction and, optionally, its pending transaction.

        Both rows are written atomically. Returns bank transaction ID.
        """
        pass

    @abstractmethod
    def get_bank_transaction(self, bank_transaction_id: int) -> Optional[BankTransaction]:
        """Get bank transaction by ID."""
        pass

    @abstractmethod
    def find_bank_transaction_by_external_id(
        self, bank_account_id: int, external_id: str
    ) -> Optional[BankTransaction]:
        """Find a bank transaction by provider-assigned ID within an account."""
        pass

    @abstractmethod
    def find_bank_transaction_by_amount_description(
        self, bank_account_id: int, amount: Decimal, description: str
    ) -> Optional[BankTransaction]:
        """Find a bank transaction with identical amount and description within an account."""
        pass

    @abstractmethod
    def list_bank_transactions(self, bank_account_id: Optional[int] = None) -> list[BankTransaction]:
        """List bank transactions, optionally filtered by account."""
        pass

    # Pending transaction operations
    @abstractmethod
    def get_pending_transaction(self, pending_id: int) -> Optional[PendingTransaction]:
        """Get pending transaction by ID."""
        pass

    @abstractmethod
    def list_pending_transactions(
        self,
        bank_account_id: Optional[int] = None,
        reviewed: Optional[bool] = False,
        search: Optional[str] = None,
    ) -> list[PendingTransaction]:
        """List pending transactions, newest transaction date first.

        Args:
            bank_account_id: Optional bank account filter
            reviewed: False for unreviewed, True for reviewed, None for both
            search: Optional case-insensitive description substring
        """
        pass

    @abstractmethod
    def count_pending_transactions(self, reviewed: Optional[bool] = False) -> int:
        """Count pending transactions by review state."""
        pass

    @abstractmethod
    def update_pending_transactions(self, pending_ids: Iterable[int], changes: dict[str, Any]) -> None:
        """Apply the same field changes to several pending transactions.

        Atomic. Raises ConflictError, changing nothing, if any row is missing
        or already reviewed when re-read inside the unit.
        """
        pass

    @abstractmethod
    def delete_pending_transactions(self, pending_ids: Iterable[int]) -> None:
        """Delete several unreviewed pending transactions.

        Atomic, with the same review-state check as update.
        """
        pass

    @abstractmethod
    def promote_pending_transactions(
        self, promotions: Iterable[Promotion], reviewed_by: str
    ) -> list[int]:
        """Promote pending transactions into ledger transactions.

        For each promotion: create the ledger transaction, link the bank
        transaction, mark the pending transaction reviewed and delete it.
        Atomic across the whole list. Raises ConflictError, changing
        nothing, if any pending row is missing or already reviewed when
        re-read inside the unit. Returns ledger transaction IDs in order.
        """
        pass

    # Ledger transaction operations
    @abstractmethod
    def get_ledger_transaction(self, ledger_id: int) -> Optional[LedgerTransaction]:
        """Get ledger transaction by ID."""
        pass

    @abstractmethod
    def list_ledger_transactions(self, property_id: Optional[int] = None) -> list[LedgerTransaction]:
        """List ledger transactions, optionally filtered by property."""
        pass
