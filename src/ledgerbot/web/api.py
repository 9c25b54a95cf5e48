"""Dashboard API handlers.

All routes live under ``/api/`` and therefore require Mini App auth
(:mod:`ledgerbot.web.auth`).  Group-scoped routes additionally check
membership before touching the ledger.
"""

from __future__ import annotations

import json
import logging
from datetime import date
from decimal import Decimal
from typing import Any

from aiohttp import web

from ledgerbot.config import settings
from ledgerbot.ledger.models import Transaction
from ledgerbot.ledger.repository import (
    get_group_name,
    get_or_create_group_config,
    set_categories,
)
from ledgerbot.ledger.stats import (
    get_member_monthly_stats,
    get_monthly_stats,
    get_recent_transactions,
    get_user_groups,
)
from ledgerbot.web.auth import current_user_id, require_group_access

logger = logging.getLogger(__name__)


def _money(value: Decimal) -> float:
    return float(value)


def serialize_transaction(tx: Transaction) -> dict[str, Any]:
    return {
        "id": str(tx.id),
        "item": tx.item,
        "amount": _money(tx.amount),
        "payerName": tx.payer_name,
        "parentCategory": tx.parent_category,
        "subCategory": tx.sub_category,
        "kind": tx.kind,
        "transactionDate": tx.transaction_date.date().isoformat(),
        "createdAt": tx.created_at.isoformat(),
    }


def parse_limit(raw: str | None) -> int:
    """Parse the ``limit`` query parameter, clamped to ``[1, api_max_limit]``.

    Raises:
        web.HTTPBadRequest: If *raw* is not an integer.
    """
    if raw is None or raw == "":
        return settings.api_recent_limit
    try:
        limit = int(raw)
    except ValueError:
        raise web.HTTPBadRequest(reason="limit must be an integer") from None
    return max(1, min(limit, settings.api_max_limit))


async def get_me(request: web.Request) -> web.Response:
    """Profile of the authenticated user with every group they belong to."""
    user = request["user"]
    user_id = current_user_id(request)

    async with request.app["session_factory"]() as session:
        groups = await get_user_groups(session, user_id)

    display_name = " ".join(
        part for part in (user.get("first_name"), user.get("last_name")) if part
    ) or user.get("username", "")
    return web.json_response(
        {
            "userId": user_id,
            "displayName": display_name,
            "groups": [
                {
                    "groupId": g.group_id,
                    "groupName": g.group_name,
                    "nickname": g.nickname,
                    "lastTransactionDate": (
                        g.last_transaction_date.isoformat() if g.last_transaction_date else None
                    ),
                }
                for g in groups
            ],
        }
    )


async def get_transactions(request: web.Request) -> web.Response:
    group_id = request.match_info["group_id"]
    limit = parse_limit(request.query.get("limit"))

    async with request.app["session_factory"]() as session:
        await require_group_access(session, request, group_id)
        transactions = await get_recent_transactions(session, group_id, limit)

    return web.json_response({"data": [serialize_transaction(tx) for tx in transactions]})


async def get_dashboard(request: web.Request) -> web.Response:
    """Group name, this month's overview and spending per member."""
    group_id = request.match_info["group_id"]
    today = date.today()

    async with request.app["session_factory"]() as session:
        await require_group_access(session, request, group_id)
        stats = await get_monthly_stats(session, group_id, today=today)
        members = await get_member_monthly_stats(session, group_id, today=today)
        group_name = await get_group_name(session, group_id)

    return web.json_response(
        {
            "groupName": group_name,
            "overview": {
                "income": _money(stats.income),
                "expense": _money(stats.expense),
                "balance": _money(stats.balance),
            },
            "members": [
                {"payerName": m.payer_name, "total": _money(m.total)} for m in members
            ],
        }
    )


async def get_categories(request: web.Request) -> web.Response:
    group_id = request.match_info["group_id"]

    async with request.app["session_factory"]() as session:
        await require_group_access(session, request, group_id)
        config = await get_or_create_group_config(session, group_id)
        categories = list(config.categories)

    return web.json_response({"categories": categories})


async def put_categories(request: web.Request) -> web.Response:
    """Replace the group's category vocabulary.

    Body: ``{"categories": ["dining", "transport", ...]}``.
    """
    group_id = request.match_info["group_id"]

    try:
        body = await request.json()
    except json.JSONDecodeError:
        raise web.HTTPBadRequest(reason="Invalid JSON") from None

    categories = body.get("categories") if isinstance(body, dict) else None
    if not isinstance(categories, list) or not all(isinstance(c, str) for c in categories):
        raise web.HTTPBadRequest(reason="categories must be a list of strings")

    async with request.app["session_factory"]() as session:
        await require_group_access(session, request, group_id)
        try:
            config = await set_categories(session, group_id, categories)
        except ValueError as exc:
            raise web.HTTPBadRequest(reason=str(exc)) from None
        updated = list(config.categories)

    logger.info("Group %s categories set to %s", group_id, updated)
    return web.json_response({"categories": updated})
