"""SQLAlchemy ORM models for the LedgerBot database.

Three tables, all owned by the ledger layer:

- ``group_configs`` — per-group category vocabulary and display name.
- ``group_members`` — per-group, per-user nickname bindings.
- ``transactions`` — the ledger itself.

Column types are portable (``Uuid``, ``JSON``, ``Numeric``) so the same
models run on PostgreSQL in production and SQLite in tests.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import StrEnum

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    Index,
    Numeric,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from ledgerbot.config import settings


class Base(DeclarativeBase):
    """Shared declarative base for all LedgerBot models."""


class TransactionKind(StrEnum):
    """Direction of a ledger entry. Amounts are always stored positive."""

    EXPENSE = "expense"
    INCOME = "income"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _starter_categories() -> list[str]:
    return list(settings.default_categories)


class GroupConfig(Base):
    """Per-group configuration, created on first use."""

    __tablename__ = "group_configs"

    group_id: Mapped[str] = mapped_column(Text, primary_key=True)
    categories: Mapped[list[str]] = mapped_column(
        JSON, nullable=False, default=_starter_categories
    )
    name: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )


class GroupMember(Base):
    """A user's nickname inside one group."""

    __tablename__ = "group_members"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    group_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    nickname: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (
        UniqueConstraint("group_id", "user_id", name="uq_group_members_group_user"),
    )


class Transaction(Base):
    """A single expense or income record.

    Only ``payer_name`` may change after creation (reassign-last-payer).
    ``transaction_date`` is the day the user meant, pinned to noon;
    ``created_at`` is the technical insert time and only orders "latest".
    """

    __tablename__ = "transactions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    group_id: Mapped[str] = mapped_column(Text, nullable=False)
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    payer_name: Mapped[str] = mapped_column(Text, nullable=False, default="unknown")
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    item: Mapped[str] = mapped_column(Text, nullable=False)
    parent_category: Mapped[str] = mapped_column(Text, nullable=False)
    sub_category: Mapped[str] = mapped_column(Text, nullable=False, default="")
    kind: Mapped[str] = mapped_column(Text, nullable=False)
    transaction_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    __table_args__ = (
        CheckConstraint("kind IN ('expense', 'income')", name="ck_transactions_kind"),
        CheckConstraint("amount >= 0", name="ck_transactions_amount"),
        Index("ix_transactions_group_date", "group_id", "transaction_date"),
        Index("ix_transactions_group_created", "group_id", "created_at"),
    )
