"""Shared domain error messages and error types."""

from typing import Any, Optional


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling. Batch operations attach a
    ``details`` list naming each offending item.
    """

    def __init__(self, message: str, details: Optional[list[dict[str, Any]]] = None):
        super().__init__(message)
        self.details = details or []


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness or review-state violations."""


class DependencyError(DomainError):
    """Operation blocked due to dependent domain data."""


class ConditionParseError(ValidationError):
    """A serialized condition tree could not be deserialized."""


def bank_account_not_found(bank_account_id: int) -> str:
    """Return message for missing bank account."""
    return f"Bank account {bank_account_id} not found"


def property_not_found(property_id: int) -> str:
    """Return message for missing property."""
    return f"Property {property_id} not found"


def rule_not_found(rule_id: int) -> str:
    """Return message for missing matching rule."""
    return f"Matching rule {rule_id} not found"


def pending_not_found(pending_id: int) -> str:
    """Return message for missing pending transaction."""
    return f"Pending transaction {pending_id} not found"


def pending_already_reviewed(pending_id: int) -> str:
    """Return message for a pending transaction that was already reviewed."""
    return f"Pending transaction {pending_id} has already been reviewed"


def illegal_type_category(type_label: str, category: str) -> str:
    """Return message for a category that does not belong to a type."""
    return f"Category '{category}' is not valid for {type_label} transactions"


def batch_rejected(action: str, failures: list[dict[str, Any]]) -> str:
    """Return message when a bulk operation is rejected as a whole."""
    count = len(failures)
    return (
        f"Cannot {action} transactions: {count} item{'s' if count != 1 else ''} "
        "failed validation. No changes were made."
    )
