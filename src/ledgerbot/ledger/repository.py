"""Database repository for ledger operations.

Async functions over an :class:`AsyncSession` for the three ledger tables.
Callers own the session and its commit; every write here only flushes.
Higher-level behaviour (payer resolution, undo, monthly windows) lives in
:mod:`ledgerbot.ledger.mutations` and :mod:`ledgerbot.ledger.stats`.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ledgerbot.ledger.models import GroupConfig, GroupMember, Transaction

DEFAULT_NICKNAME = "me"
DEFAULT_GROUP_NAME = "unnamed group"


# ── Group configuration ──────────────────────────────────────────────────────


async def get_group_config(session: AsyncSession, group_id: str) -> GroupConfig | None:
    """Return the stored configuration for *group_id*, or ``None``."""
    return await session.get(GroupConfig, group_id)


async def get_or_create_group_config(session: AsyncSession, group_id: str) -> GroupConfig:
    """Return the group's configuration, creating it with starter categories.

    Args:
        session: Active async database session (caller manages commit).
        group_id: Chat group identifier (or the user id for private chats).

    Returns:
        The existing or newly flushed :class:`GroupConfig`.
    """
    config = await get_group_config(session, group_id)
    if config is None:
        config = GroupConfig(group_id=group_id)
        session.add(config)
        await session.flush()
    return config


async def set_group_name(session: AsyncSession, group_id: str, name: str) -> GroupConfig:
    """Set the display name of a group, creating its configuration if needed."""
    config = await get_or_create_group_config(session, group_id)
    config.name = name
    await session.flush()
    return config


async def get_group_name(session: AsyncSession, group_id: str) -> str:
    """Return the group's display name, or ``"unnamed group"``."""
    config = await get_group_config(session, group_id)
    if config is None or not config.name:
        return DEFAULT_GROUP_NAME
    return config.name


async def set_categories(
    session: AsyncSession,
    group_id: str,
    categories: Sequence[str],
) -> GroupConfig:
    """Replace the group's category vocabulary.

    Labels are stripped and de-duplicated while keeping their order.

    Raises:
        ValueError: If no non-blank label remains. The vocabulary is
            never allowed to become empty.
    """
    cleaned: list[str] = []
    for label in categories:
        label = label.strip()
        if label and label not in cleaned:
            cleaned.append(label)
    if not cleaned:
        raise ValueError("A group needs at least one category.")

    config = await get_or_create_group_config(session, group_id)
    config.categories = cleaned
    await session.flush()
    return config


async def get_group_configs(
    session: AsyncSession,
    group_ids: Sequence[str],
) -> dict[str, GroupConfig]:
    """Load configurations for several groups, keyed by group id."""
    if not group_ids:
        return {}
    stmt = select(GroupConfig).where(GroupConfig.group_id.in_(list(group_ids)))
    result = await session.execute(stmt)
    return {config.group_id: config for config in result.scalars().all()}


# ── Members / nicknames ──────────────────────────────────────────────────────


async def get_member(
    session: AsyncSession,
    group_id: str,
    user_id: str,
) -> GroupMember | None:
    """Return the membership row of *user_id* in *group_id*, if it exists."""
    stmt = select(GroupMember).where(
        GroupMember.group_id == group_id,
        GroupMember.user_id == user_id,
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def set_nickname(
    session: AsyncSession,
    group_id: str,
    user_id: str,
    nickname: str,
) -> GroupMember:
    """Bind *nickname* to a user inside a group.

    The member row is created on first use and updated in place afterwards,
    so there is never more than one row per (group, user).
    """
    member = await get_member(session, group_id, user_id)
    if member is None:
        member = GroupMember(group_id=group_id, user_id=user_id, nickname=nickname)
        session.add(member)
    else:
        member.nickname = nickname
    await session.flush()
    return member


async def get_nickname(session: AsyncSession, group_id: str, user_id: str) -> str:
    """Return the user's nickname in the group, or ``"me"`` if none is set."""
    member = await get_member(session, group_id, user_id)
    return member.nickname if member is not None else DEFAULT_NICKNAME


async def get_group_nicknames(session: AsyncSession, group_id: str) -> list[str]:
    """Return every nickname registered in a group."""
    stmt = (
        select(GroupMember.nickname)
        .where(GroupMember.group_id == group_id)
        .order_by(GroupMember.created_at)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_user_memberships(session: AsyncSession, user_id: str) -> list[GroupMember]:
    """Return all member rows of a user across groups."""
    stmt = select(GroupMember).where(GroupMember.user_id == user_id)
    result = await session.execute(stmt)
    return list(result.scalars().all())


# ── Transactions ─────────────────────────────────────────────────────────────


async def save_transaction(
    session: AsyncSession,
    *,
    group_id: str,
    user_id: str,
    payer_name: str,
    amount: Decimal,
    item: str,
    parent_category: str,
    sub_category: str,
    kind: str,
    transaction_date: datetime,
) -> Transaction:
    """Insert a transaction and flush so ``id`` and ``created_at`` are set.

    Args:
        session: Active async database session (caller manages commit).
        group_id: Group the transaction belongs to.
        user_id: Author of the message that produced it.
        payer_name: Canonical (already resolved) payer display name.
        amount: Positive amount with two fraction digits.
        item: Free-text item label.
        parent_category: One of the group's categories at write time.
        sub_category: Free-text sub category.
        kind: ``'expense'`` or ``'income'``.
        transaction_date: Logical date of the transaction (noon).

    Returns:
        The newly created :class:`Transaction`.
    """
    transaction = Transaction(
        group_id=group_id,
        user_id=user_id,
        payer_name=payer_name,
        amount=amount,
        item=item,
        parent_category=parent_category,
        sub_category=sub_category,
        kind=kind,
        transaction_date=transaction_date,
    )
    session.add(transaction)
    await session.flush()
    return transaction


async def get_latest_created_transaction(
    session: AsyncSession,
    group_id: str,
) -> Transaction | None:
    """Return the group's most recently *inserted* transaction, if any."""
    stmt = (
        select(Transaction)
        .where(Transaction.group_id == group_id)
        .order_by(Transaction.created_at.desc())
        .limit(1)
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def delete_transaction(session: AsyncSession, transaction: Transaction) -> None:
    """Delete *transaction* and flush; the caller commits."""
    await session.delete(transaction)
    await session.flush()


async def get_recent_transactions(
    session: AsyncSession,
    group_id: str,
    limit: int,
) -> list[Transaction]:
    """Return up to *limit* transactions ordered by logical date, newest first."""
    stmt = (
        select(Transaction)
        .where(Transaction.group_id == group_id)
        .order_by(Transaction.transaction_date.desc(), Transaction.created_at.desc())
        .limit(limit)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_kind_totals(
    session: AsyncSession,
    group_id: str,
    *,
    date_from: datetime,
    date_to: datetime,
) -> dict[str, Decimal]:
    """Sum amounts per kind for transactions dated in ``[date_from, date_to)``.

    Returns:
        A dict mapping kind (``'expense'`` / ``'income'``) to its total.
        Kinds without transactions are absent.
    """
    stmt = (
        select(Transaction.kind, func.sum(Transaction.amount))
        .where(
            Transaction.group_id == group_id,
            Transaction.transaction_date >= date_from,
            Transaction.transaction_date < date_to,
        )
        .group_by(Transaction.kind)
    )
    result = await session.execute(stmt)
    return {kind: total or Decimal("0") for kind, total in result.all()}


async def get_payer_totals(
    session: AsyncSession,
    group_id: str,
    *,
    kind: str,
    date_from: datetime,
    date_to: datetime,
) -> list[tuple[str, Decimal]]:
    """Sum amounts of one kind per payer name, largest total first."""
    total = func.sum(Transaction.amount)
    stmt = (
        select(Transaction.payer_name, total)
        .where(
            Transaction.group_id == group_id,
            Transaction.kind == kind,
            Transaction.transaction_date >= date_from,
            Transaction.transaction_date < date_to,
        )
        .group_by(Transaction.payer_name)
        .order_by(total.desc())
    )
    result = await session.execute(stmt)
    return [(payer, amount or Decimal("0")) for payer, amount in result.all()]


async def get_user_last_transaction_dates(
    session: AsyncSession,
    user_id: str,
) -> dict[str, datetime]:
    """Map each group the user wrote transactions in to their latest logical date."""
    stmt = (
        select(Transaction.group_id, func.max(Transaction.transaction_date))
        .where(Transaction.user_id == user_id)
        .group_by(Transaction.group_id)
    )
    result = await session.execute(stmt)
    return {group_id: last_date for group_id, last_date in result.all()}


async def is_user_in_group(session: AsyncSession, user_id: str, group_id: str) -> bool:
    """True if the user has a member row or any transaction in the group."""
    if await get_member(session, group_id, user_id) is not None:
        return True

    stmt = select(func.count(Transaction.id)).where(
        Transaction.user_id == user_id,
        Transaction.group_id == group_id,
    )
    result = await session.execute(stmt)
    return (result.scalar_one() or 0) > 0
