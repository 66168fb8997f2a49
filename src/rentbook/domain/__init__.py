"""Domain layer for rentbook application.

Services are imported from their own modules (for example
``rentbook.domain.review.ReviewService``); only entities and errors are
re-exported here so the database layer can import them without a cycle.
"""

from rentbook.domain.categories import TransactionType
from rentbook.domain.errors import (
    DomainError,
    ValidationError,
    NotFoundError,
    ConflictError,
    DependencyError,
)

__all__ = [
    "TransactionType",
    "DomainError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "DependencyError",
]
