"""Process wiring for the Telegram side of LedgerBot.

:func:`run_bot` builds the extractor once, hands it to the aiogram
:class:`Dispatcher` together with the session factory, starts the aiohttp
dashboard server (see :mod:`ledgerbot.web`) and then long-polls Telegram.
"""

from __future__ import annotations

import logging

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiohttp import web

from ledgerbot.agent import create_extractor
from ledgerbot.agent.extraction import EntryExtractor
from ledgerbot.bot.handlers import router as main_router
from ledgerbot.config import settings
from ledgerbot.db.session import engine, get_session
from ledgerbot.web import create_web_app

logger = logging.getLogger(__name__)

BOT_DESCRIPTION = (
    'Group expense ledger. Write "lunch 120" or "taxi 250, Mao paid"; '
    'send "help" for commands.'
)


def create_dispatcher(extractor: EntryExtractor) -> Dispatcher:
    """Dispatcher whose handlers get ``extractor`` and ``session_factory`` injected."""
    dispatcher = Dispatcher(extractor=extractor, session_factory=get_session)
    dispatcher.include_router(main_router)
    return dispatcher


def create_bot() -> Bot:
    """Bot client that sends HTML-formatted messages by default."""
    return Bot(
        token=settings.telegram_bot_token,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML),
    )


async def _start_dashboard_server() -> web.AppRunner:
    runner = web.AppRunner(create_web_app(session_factory=get_session))
    await runner.setup()
    await web.TCPSite(runner, "0.0.0.0", settings.webapp_port).start()
    logger.info("Dashboard server listening on port %d", settings.webapp_port)
    return runner


async def run_bot() -> None:
    """Run until interrupted; invoked from ``__main__.py``."""
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    bot = create_bot()
    dispatcher = create_dispatcher(create_extractor())

    @dispatcher.startup.register
    async def on_startup() -> None:
        await bot.set_my_short_description(BOT_DESCRIPTION)
        logger.info("LedgerBot is polling for updates")

    @dispatcher.shutdown.register
    async def on_shutdown() -> None:
        logger.info("Stopping LedgerBot, closing database connections")
        await engine.dispose()

    runner = await _start_dashboard_server()
    try:
        await dispatcher.start_polling(bot)
    finally:
        await runner.cleanup()
        await bot.session.close()
