"""Telegram message handlers.

Defines an aiogram :class:`Router` that converts each incoming message into
a typed chat event and hands it to the intake pipeline.  Shared
collaborators (``extractor``, ``session_factory``) arrive as dispatcher
workflow data.
"""

from __future__ import annotations

import logging
from datetime import date

from aiogram import Bot, Router
from aiogram.types import Message

from ledgerbot.agent.extraction import EntryExtractor
from ledgerbot.bot.events import MissingSourceIdentityError, build_chat_event
from ledgerbot.bot.intake import IntakeContext, SessionFactory, handle_events
from ledgerbot.bot.replies import TelegramReplier
from ledgerbot.config import settings

logger = logging.getLogger(__name__)

router = Router(name="main")


@router.message()
async def handle_message(
    message: Message,
    bot: Bot,
    extractor: EntryExtractor,
    session_factory: SessionFactory,
) -> None:
    """Build a chat event from *message* and run it through the pipeline."""
    try:
        event = build_chat_event(message)
    except MissingSourceIdentityError as exc:
        logger.warning("Ignoring message without source identity: %s", exc)
        return

    ctx = IntakeContext(
        session_factory=session_factory,
        extractor=extractor,
        replier=TelegramReplier(bot),
        today=date.today(),
        require_digit=settings.require_digit,
    )
    await handle_events([event], ctx)
