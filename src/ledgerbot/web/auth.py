"""Authentication for the dashboard API.

The dashboard runs as a Telegram Mini App, so every API request carries the
Mini App ``initData`` string in ``Authorization: tma <initData>``.  The
string is signed with the bot token; see
https://core.telegram.org/bots/webapps#validating-data-received-via-the-mini-app

Group access is decided by the ledger's membership check: a user may read
a group if they have a nickname there or wrote any transaction in it.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any
from urllib.parse import parse_qs

from aiohttp import web
from sqlalchemy.ext.asyncio import AsyncSession

from ledgerbot.config import settings
from ledgerbot.ledger.repository import is_user_in_group

logger = logging.getLogger(__name__)

AUTH_SCHEME = "tma"
PROTECTED_PREFIX = "/api/"

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def validate_init_data(
    init_data: str,
    bot_token: str,
    *,
    max_age: int = 0,
    now: float | None = None,
) -> dict[str, Any] | None:
    """Validate Telegram Mini App ``initData`` and return its fields.

    Args:
        init_data: The raw query-string-encoded ``initData``.
        bot_token: Token of the bot that opened the Mini App.
        max_age: Reject data whose ``auth_date`` is older than this many
            seconds (``0`` disables the check).
        now: Current UNIX time, for tests.

    Returns:
        The decoded fields (``user`` parsed from JSON) if the hash matches,
        else ``None``.
    """
    if not init_data or not bot_token:
        return None

    parsed = parse_qs(init_data, keep_blank_values=True)
    received_hash = parsed.pop("hash", [None])[0]
    if not received_hash:
        return None

    data_check_string = "\n".join(f"{key}={parsed[key][0]}" for key in sorted(parsed))
    secret_key = hmac.new(b"WebAppData", bot_token.encode(), hashlib.sha256).digest()
    computed = hmac.new(secret_key, data_check_string.encode(), hashlib.sha256).hexdigest()

    if not hmac.compare_digest(computed, received_hash):
        return None

    fields: dict[str, Any] = {key: values[0] for key, values in parsed.items()}

    if max_age:
        try:
            auth_date = int(fields.get("auth_date", "0"))
        except ValueError:
            return None
        current = time.time() if now is None else now
        if current - auth_date > max_age:
            return None

    user_raw = fields.get("user")
    if user_raw:
        try:
            fields["user"] = json.loads(user_raw)
        except json.JSONDecodeError:
            return None
    return fields


def authenticate(request: web.Request) -> dict[str, Any]:
    """Return the Telegram user of an API request.

    Raises:
        web.HTTPUnauthorized: Missing, malformed or invalid credentials.
    """
    header = request.headers.get("Authorization", "")
    scheme, _, init_data = header.partition(" ")
    if scheme.lower() != AUTH_SCHEME or not init_data:
        raise web.HTTPUnauthorized(reason="Missing Authorization header")

    fields = validate_init_data(
        init_data.strip(),
        settings.telegram_bot_token,
        max_age=settings.init_data_max_age,
    )
    if fields is None:
        logger.warning("Rejected API request with invalid initData: %s", request.path)
        raise web.HTTPUnauthorized(reason="Invalid token")

    user = fields.get("user")
    if not isinstance(user, dict) or not user.get("id"):
        raise web.HTTPUnauthorized(reason="User identity not found")
    return user


@web.middleware
async def auth_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """Attach ``request["user"]`` to every ``/api/`` request or answer 401."""
    if request.path.startswith(PROTECTED_PREFIX):
        request["user"] = authenticate(request)
    return await handler(request)


def current_user_id(request: web.Request) -> str:
    return str(request["user"]["id"])


async def require_group_access(
    session: AsyncSession,
    request: web.Request,
    group_id: str,
) -> None:
    """Raise 403 unless the authenticated user belongs to *group_id*."""
    user_id = current_user_id(request)
    if not await is_user_in_group(session, user_id, group_id):
        logger.warning("User %s denied access to group %s", user_id, group_id)
        raise web.HTTPForbidden(reason="You are not a member of this group")
