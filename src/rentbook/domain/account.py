"""Bank account and property reference domain services."""

from typing import Optional

from rentbook.database.base import Database
from rentbook.domain.entities import BankAccount, Property
from rentbook.domain.errors import ConflictError, ValidationError

PROPERTY_STATUSES = ("Active", "Inactive")


class BankAccountService:
    """Service for managing bank accounts."""

    def __init__(self, db: Database):
        """Initialize bank account service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_bank_account(
        self, name: str, provider: str = "monzo", external_account_id: Optional[str] = None
    ) -> int:
        """Create a new bank account.

        Args:
            name: Bank account name
            provider: Banking provider the account syncs from
            external_account_id: Provider-assigned account ID

        Returns:
            Bank account ID

        Raises:
            ValidationError: If name is blank
            ConflictError: If a bank account with the same name exists
        """
        if not name or not name.strip():
            raise ValidationError("Bank account name is required")
        name = name.strip()

        for account in self.db.list_bank_accounts():
            if account.name == name:
                raise ConflictError(f"Bank account with name '{name}' already exists")

        return self.db.create_bank_account(
            name=name, provider=provider, external_account_id=external_account_id
        )

    def get_bank_account(self, bank_account_id: int) -> Optional[BankAccount]:
        """Get bank account by ID."""
        return self.db.get_bank_account(bank_account_id)

    def list_bank_accounts(self) -> list[BankAccount]:
        """List all bank accounts."""
        return self.db.list_bank_accounts()

    def resolve(self, identifier: str) -> int:
        """Resolve a bank account name or ID to an ID.

        Raises:
            ValidationError: If no bank account matches
        """
        identifier = identifier.strip()
        if identifier.isdigit():
            if self.db.get_bank_account(int(identifier)) is not None:
                return int(identifier)
        for account in self.db.list_bank_accounts():
            if account.name == identifier:
                return account.id
        raise ValidationError(f"Bank account '{identifier}' not found")


class PropertyService:
    """Service for managing the property references rules and ledger point at."""

    def __init__(self, db: Database):
        self.db = db

    def create_property(self, name: str, status: str = "Active") -> int:
        """Create a property reference.

        Raises:
            ValidationError: If name is blank or status is unknown
        """
        if not name or not name.strip():
            raise ValidationError("Property name is required")
        if status not in PROPERTY_STATUSES:
            raise ValidationError(
                f"Unknown property status '{status}'. Supported: {', '.join(PROPERTY_STATUSES)}"
            )
        return self.db.create_property(name=name.strip(), status=status)

    def get_property(self, property_id: int) -> Optional[Property]:
        return self.db.get_property(property_id)

    def list_properties(self) -> list[Property]:
        return self.db.list_properties()
