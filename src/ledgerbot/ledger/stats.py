"""Aggregations over a group's ledger.

Every function takes an explicit reference date instead of reading the
clock, so "this month" is decided once by the caller.  Totals are
always derived from the transactions, never stored.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from ledgerbot.ledger.models import Transaction, TransactionKind
from ledgerbot.ledger.repository import (
    DEFAULT_GROUP_NAME,
    DEFAULT_NICKNAME,
    get_group_configs,
    get_kind_totals,
    get_payer_totals,
    get_recent_transactions as _fetch_recent,
    get_user_last_transaction_dates,
    get_user_memberships,
)


class MonthlyStats(BaseModel):
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")


class MemberTotal(BaseModel):
    payer_name: str
    total: Decimal


class GroupSummary(BaseModel):
    group_id: str
    group_name: str
    nickname: str
    last_transaction_date: datetime | None = None


def month_window(reference: date) -> tuple[datetime, datetime]:
    """Return ``[start, end)`` covering the calendar month of *reference*."""
    start = datetime(reference.year, reference.month, 1)
    if reference.month == 12:
        end = datetime(reference.year + 1, 1, 1)
    else:
        end = datetime(reference.year, reference.month + 1, 1)
    return start, end


async def get_monthly_stats(
    session: AsyncSession,
    group_id: str,
    *,
    today: date,
) -> MonthlyStats:
    """Income, expense and balance of the group for the month of *today*."""
    start, end = month_window(today)
    totals = await get_kind_totals(session, group_id, date_from=start, date_to=end)

    income = totals.get(TransactionKind.INCOME.value, Decimal("0"))
    expense = totals.get(TransactionKind.EXPENSE.value, Decimal("0"))
    return MonthlyStats(income=income, expense=expense, balance=income - expense)


async def get_member_monthly_stats(
    session: AsyncSession,
    group_id: str,
    *,
    today: date,
) -> list[MemberTotal]:
    """Expenses of the month of *today* per payer name, largest first."""
    start, end = month_window(today)
    rows = await get_payer_totals(
        session,
        group_id,
        kind=TransactionKind.EXPENSE.value,
        date_from=start,
        date_to=end,
    )
    members = [MemberTotal(payer_name=payer, total=total) for payer, total in rows]
    # SQLite sums numerics as floats; keep strict descending order here too.
    members.sort(key=lambda m: m.total, reverse=True)
    return members


async def get_recent_transactions(
    session: AsyncSession,
    group_id: str,
    limit: int = 5,
) -> list[Transaction]:
    """The *limit* most recent transactions by logical date."""
    return await _fetch_recent(session, group_id, limit)


async def get_user_groups(session: AsyncSession, user_id: str) -> list[GroupSummary]:
    """List every group the user wrote in or has a nickname in.

    Groups are ordered by the user's latest transaction date, newest
    first; groups without any transaction by the user come last.
    """
    last_dates = await get_user_last_transaction_dates(session, user_id)
    memberships = {m.group_id: m.nickname for m in await get_user_memberships(session, user_id)}

    group_ids = list(last_dates)
    group_ids.extend(gid for gid in memberships if gid not in last_dates)
    configs = await get_group_configs(session, group_ids)

    summaries: list[GroupSummary] = []
    for group_id in group_ids:
        config = configs.get(group_id)
        summaries.append(
            GroupSummary(
                group_id=group_id,
                group_name=(config.name if config is not None and config.name else DEFAULT_GROUP_NAME),
                nickname=memberships.get(group_id, DEFAULT_NICKNAME),
                last_transaction_date=last_dates.get(group_id),
            )
        )

    summaries.sort(
        key=lambda s: (s.last_transaction_date is not None, s.last_transaction_date or datetime.min),
        reverse=True,
    )
    return summaries
