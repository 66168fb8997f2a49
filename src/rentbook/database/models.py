"""SQLAlchemy models for rentbook database."""

from datetime import datetime, UTC
from decimal import Decimal
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    ForeignKey,
    DateTime,
    Boolean,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session
from sqlalchemy.types import TypeDecorator

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


class ExactDecimal(TypeDecorator):
    """Decimal stored as text so provider amounts keep every digit.

    Values are written in one canonical form (trailing zeros dropped, at
    least two decimal places) so equal amounts compare equal in queries.
    """

    impl = String
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return canonical_amount(Decimal(str(value)))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Decimal(value)


def canonical_amount(amount: Decimal) -> str:
    """Render an amount as plain text, e.g. 1500 -> "1500.00", 0.10 -> "0.10", 12.3450 -> "12.345"."""
    if amount == 0:
        return "0.00"
    amount = amount.normalize()
    if amount.as_tuple().exponent > -2:
        amount = amount.quantize(Decimal("0.01"))
    return format(amount, "f")


class BankAccount(Base):
    """Bank account model."""

    __tablename__ = "bank_accounts"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    provider = Column(String, nullable=False, default="monzo")
    external_account_id = Column(String, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    # Relationships
    transactions = relationship(
        "BankTransaction", back_populates="bank_account", cascade="all, delete-orphan"
    )
    matching_rules = relationship(
        "MatchingRule", back_populates="bank_account", cascade="all, delete-orphan"
    )


class Property(Base):
    """Property reference model."""

    __tablename__ = "properties"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    status = Column(String, nullable=False, default="Active")
    created_at = Column(DateTime, default=_utcnow, nullable=False)


class BankTransaction(Base):
    """Normalized provider transaction model."""

    __tablename__ = "bank_transactions"

    id = Column(Integer, primary_key=True)
    bank_account_id = Column(Integer, ForeignKey("bank_accounts.id"), nullable=False)
    external_id = Column(String, nullable=False)
    amount = Column(ExactDecimal, nullable=False)
    currency = Column(String, nullable=False, default="GBP")
    description = Column(String, nullable=False)
    counterparty_name = Column(String, nullable=True)
    reference = Column(String, nullable=True)
    merchant = Column(String, nullable=True)
    provider_category = Column(String, nullable=True)
    transaction_date = Column(DateTime, nullable=False)
    settled_date = Column(DateTime, nullable=True)
    imported_at = Column(DateTime, default=_utcnow, nullable=False)
    ledger_transaction_id = Column(Integer, ForeignKey("ledger_transactions.id"), nullable=True)

    # Unique constraint on bank_account_id + external_id
    __table_args__ = (
        UniqueConstraint("bank_account_id", "external_id", name="uq_bank_account_external_id"),
    )

    # Relationships
    bank_account = relationship("BankAccount", back_populates="transactions")
    pending = relationship(
        "PendingTransaction",
        back_populates="bank_transaction",
        uselist=False,
        cascade="all, delete-orphan",
    )


class MatchingRule(Base):
    """Matching rule model. A null bank_account_id makes the rule global."""

    __tablename__ = "matching_rules"

    id = Column(Integer, primary_key=True)
    bank_account_id = Column(Integer, ForeignKey("bank_accounts.id"), nullable=True)
    name = Column(String, nullable=False)
    priority = Column(Integer, nullable=False)
    enabled = Column(Boolean, default=True, nullable=False)
    conditions = Column(Text, nullable=False)
    property_id = Column(Integer, ForeignKey("properties.id"), nullable=True)
    type = Column(String, nullable=True)
    category = Column(String, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    # Relationships
    bank_account = relationship("BankAccount", back_populates="matching_rules")


class PendingTransaction(Base):
    """Bank transaction awaiting classification or review."""

    __tablename__ = "pending_transactions"

    id = Column(Integer, primary_key=True)
    bank_transaction_id = Column(
        Integer, ForeignKey("bank_transactions.id"), nullable=False, unique=True
    )
    property_id = Column(Integer, ForeignKey("properties.id"), nullable=True)
    type = Column(String, nullable=True)
    category = Column(String, nullable=True)
    lease_id = Column(Integer, nullable=True)
    transaction_date = Column(DateTime, nullable=False)
    description = Column(String, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    reviewed_at = Column(DateTime, nullable=True)
    reviewed_by = Column(String, nullable=True)

    # Relationships
    bank_transaction = relationship("BankTransaction", back_populates="pending")


class LedgerTransaction(Base):
    """Permanent ledger transaction model."""

    __tablename__ = "ledger_transactions"

    id = Column(Integer, primary_key=True)
    property_id = Column(Integer, ForeignKey("properties.id"), nullable=False)
    type = Column(String, nullable=False)
    category = Column(String, nullable=False)
    amount = Column(ExactDecimal, nullable=False)
    transaction_date = Column(DateTime, nullable=False)
    description = Column(String, nullable=False)
    lease_id = Column(Integer, nullable=True)
    # Back-reference only; the forward link lives on bank_transactions
    bank_transaction_id = Column(Integer, nullable=True, unique=True)
    is_imported = Column(Boolean, default=False, nullable=False)
    imported_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
