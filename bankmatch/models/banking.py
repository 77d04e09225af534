"""Bank connection, account and transaction models."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bankmatch.database import Base
from bankmatch.models.base import TimestampMixin, UUIDMixin, utcnow, value_enum

if TYPE_CHECKING:
    from bankmatch.models.organization import Organization


class MatchStatus(str, Enum):
    """Classification lifecycle of a bank transaction."""

    UNMATCHED = "unmatched"
    MANUAL = "manual"
    AUTO = "auto"
    IGNORED = "ignored"


class BankConnection(Base, UUIDMixin, TimestampMixin):
    """A bank login of an organization; owns one or more accounts."""

    __tablename__ = "bank_connections"

    organization_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id"), nullable=False, index=True
    )
    bank_name: Mapped[str] = mapped_column(String(255), nullable=False)
    bank_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="active")
    last_sync_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    organization: Mapped[Organization] = relationship("Organization", back_populates="connections")
    accounts: Mapped[list[BankAccount]] = relationship("BankAccount", back_populates="connection")


class BankAccount(Base, UUIDMixin, TimestampMixin):
    """A bank account reachable through a connection."""

    __tablename__ = "bank_accounts"

    connection_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("bank_connections.id"), nullable=False, index=True
    )
    account_name: Mapped[str] = mapped_column(String(255), nullable=False)
    iban: Mapped[str] = mapped_column(String(34), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="EUR")
    balance_cents: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    connection: Mapped[BankConnection] = relationship("BankConnection", back_populates="accounts")
    transactions: Mapped[list[BankTransaction]] = relationship(
        "BankTransaction", back_populates="account"
    )


class BankTransaction(Base, UUIDMixin):
    """One bank-ledger line and its classification state.

    Rows are inserted by the ingestion process in state ``unmatched`` and are
    only ever mutated by the reconciliation engine.
    """

    __tablename__ = "bank_transactions"
    __table_args__ = (
        Index("ix_bank_transactions_account_status", "account_id", "match_status"),
    )

    account_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("bank_accounts.id"), nullable=False, index=True
    )
    external_id: Mapped[str | None] = mapped_column(String(128), nullable=True)

    # Descriptive fields
    counterpart_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    counterpart_iban: Mapped[str | None] = mapped_column(String(34), nullable=True)
    purpose: Mapped[str | None] = mapped_column(Text, nullable=True)
    booking_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    amount_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)  # signed, minor units
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="EUR")
    booking_date: Mapped[date] = mapped_column(Date, nullable=False)
    value_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    # Classification
    match_status: Mapped[MatchStatus] = mapped_column(
        value_enum(MatchStatus, "bank_transaction_match_status_enum"),
        nullable=False,
        default=MatchStatus.UNMATCHED,
    )
    match_confidence: Mapped[float | None] = mapped_column(Float, nullable=True)
    matched_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    matched_by: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)
    matched_tenant_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    matched_lease_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    matched_building_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    transaction_type: Mapped[str | None] = mapped_column(String(64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    account: Mapped[BankAccount] = relationship("BankAccount", back_populates="transactions")

    def __repr__(self) -> str:
        return f"<BankTransaction {self.id} {self.amount_cents} {self.match_status}>"
