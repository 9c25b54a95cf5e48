"""Dashboard API and HTML report served with aiohttp.

- ``/api/...`` — JSON endpoints for the Telegram Mini App dashboard
  (see :mod:`ledgerbot.web.api`), authenticated with Mini App ``initData``.
- ``/web/history/{group_id}`` — HTML history table linked from the chat
  dashboard (see :mod:`ledgerbot.web.report`).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from aiohttp import web

from ledgerbot.web import api, report
from ledgerbot.web.auth import auth_middleware

if TYPE_CHECKING:
    from ledgerbot.bot.intake import SessionFactory


def create_web_app(session_factory: SessionFactory) -> web.Application:
    """Build the aiohttp application.

    Args:
        session_factory: Callable returning an async context manager that
            yields a committed-on-exit :class:`AsyncSession`.
    """
    app = web.Application(middlewares=[auth_middleware])
    app["session_factory"] = session_factory
    app.router.add_get("/api/me", api.get_me)
    app.router.add_get("/api/transactions/{group_id}", api.get_transactions)
    app.router.add_get("/api/dashboard/{group_id}", api.get_dashboard)
    app.router.add_get("/api/groups/{group_id}/categories", api.get_categories)
    app.router.add_put("/api/groups/{group_id}/categories", api.put_categories)
    app.router.add_get("/web/history/{group_id}", report.get_history)
    return app
