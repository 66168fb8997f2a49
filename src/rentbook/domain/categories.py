"""Ledger transaction types and the legal (type, category) table."""

from enum import Enum
from typing import Mapping, Optional


class TransactionType(str, Enum):
    """Direction of a ledger transaction."""

    INCOME = "Income"
    EXPENSE = "Expense"

    @classmethod
    def parse(cls, value) -> Optional["TransactionType"]:
        """Parse a type label leniently.

        Accepts enum members, "Income"/"Expense" and the rule spelling
        "INCOME"/"EXPENSE" in any case. Returns None for None or an
        unrecognized label.
        """
        if value is None:
            return None
        if isinstance(value, cls):
            return value
        label = str(value).strip().lower()
        for member in cls:
            if member.value.lower() == label:
                return member
        return None


INCOME_CATEGORIES = ("Rent", "Security Deposit", "Late Fee", "Lease Fee")

EXPENSE_CATEGORIES = (
    "Maintenance",
    "Repair",
    "Utilities",
    "Insurance",
    "Property Tax",
    "Management Fee",
    "Legal Fee",
    "Other",
)

LEGAL_CATEGORIES: Mapping[TransactionType, tuple[str, ...]] = {
    TransactionType.INCOME: INCOME_CATEGORIES,
    TransactionType.EXPENSE: EXPENSE_CATEGORIES,
}


def is_legal_combination(
    type_value,
    category: Optional[str],
    table: Mapping[TransactionType, tuple[str, ...]] = LEGAL_CATEGORIES,
) -> bool:
    """Check that category belongs to the given transaction type."""
    txn_type = TransactionType.parse(type_value)
    if txn_type is None or not category:
        return False
    return category in table.get(txn_type, ())


def is_known_category(
    category: str, table: Mapping[TransactionType, tuple[str, ...]] = LEGAL_CATEGORIES
) -> bool:
    """Check that category belongs to any transaction type."""
    return any(category in categories for categories in table.values())
