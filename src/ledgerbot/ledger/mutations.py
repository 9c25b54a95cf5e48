"""Ledger mutations: record extracted entries, undo, reassign payer.

"Latest" always means the most recently inserted transaction of the group
(by ``created_at``), not the latest logical date.  Undo and reassign read
that row and then act on it without a lock, so two concurrent requests for
the same group may target the same or a stale row.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, time
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import AsyncSession

from ledgerbot.ledger.models import Transaction, TransactionKind
from ledgerbot.ledger.payer import resolve_payer
from ledgerbot.ledger.repository import (
    delete_transaction,
    get_latest_created_transaction,
    save_transaction,
)

if TYPE_CHECKING:
    from ledgerbot.agent.extraction import Entry

logger = logging.getLogger(__name__)

# Logical dates are stored at noon so no timezone shift can move them a day.
NEUTRAL_TIME = time(12, 0)

_CENTS = Decimal("0.01")


def normalize_kind(kind: str | None) -> TransactionKind:
    """Map an extracted kind to a stored one; anything but income is an expense."""
    return TransactionKind.INCOME if kind == TransactionKind.INCOME else TransactionKind.EXPENSE


def to_amount(value: Decimal | float | int | str) -> Decimal:
    """Quantize to two fraction digits as a positive magnitude."""
    return abs(Decimal(str(value))).quantize(_CENTS, rounding=ROUND_HALF_UP)


async def record_entries(
    session: AsyncSession,
    entries: Sequence[Entry],
    *,
    group_id: str,
    user_id: str,
) -> list[Transaction]:
    """Persist extracted entries as transactions, in input order.

    The parent category is not re-checked against the group's current
    vocabulary; it was constrained when the model generated it.

    Args:
        session: Active async database session (caller manages commit).
        entries: Extracted entries.
        group_id: Group the message was sent in.
        user_id: Author of the message.

    Returns:
        The saved :class:`Transaction` rows.
    """
    saved: list[Transaction] = []
    for entry in entries:
        payer_name = await resolve_payer(session, entry.payer, group_id=group_id, user_id=user_id)
        transaction = await save_transaction(
            session,
            group_id=group_id,
            user_id=user_id,
            payer_name=payer_name,
            amount=to_amount(entry.amount),
            item=entry.item,
            parent_category=entry.parent_category,
            sub_category=entry.sub_category,
            kind=normalize_kind(entry.kind).value,
            transaction_date=datetime.combine(entry.entry_date, NEUTRAL_TIME),
        )
        logger.info(
            "Saved transaction %s: %s %s (payer: %s, group: %s)",
            transaction.id,
            transaction.item,
            transaction.amount,
            payer_name,
            group_id,
        )
        saved.append(transaction)
    return saved


async def undo_last(session: AsyncSession, group_id: str) -> Transaction | None:
    """Delete the group's most recently inserted transaction.

    Returns:
        The deleted transaction (detached, attributes still readable), or
        ``None`` when the group has nothing to delete.
    """
    last = await get_latest_created_transaction(session, group_id)
    if last is None:
        logger.warning("Undo requested but group %s has no transactions", group_id)
        return None

    await delete_transaction(session, last)
    logger.info("Deleted latest transaction %s (%s) in group %s", last.id, last.item, group_id)
    return last


async def reassign_last_payer(
    session: AsyncSession,
    group_id: str,
    payer_name: str,
) -> Transaction | None:
    """Overwrite the payer of the group's most recently inserted transaction.

    Returns:
        The updated transaction, or ``None`` when the group has none.
    """
    last = await get_latest_created_transaction(session, group_id)
    if last is None:
        logger.warning("Payer change requested but group %s has no transactions", group_id)
        return None

    last.payer_name = payer_name
    await session.flush()
    logger.info("Changed payer of transaction %s (%s) to %s", last.id, last.item, payer_name)
    return last
