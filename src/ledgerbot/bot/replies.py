"""Outbound replies.

The intake pipeline answers through the :class:`Replier` protocol so it
stays independent of the Telegram client; :class:`TelegramReplier` is the
production implementation.
"""

from __future__ import annotations

from typing import Protocol

from aiogram import Bot
from aiogram.types import LinkPreviewOptions, ReplyParameters

from ledgerbot.bot.events import ReplyToken


class Replier(Protocol):
    async def reply(self, token: ReplyToken, text: str) -> None:
        """Send an HTML-formatted *text* answering the message in *token*."""
        ...


class TelegramReplier:
    """Reply through the Bot API, quoting the original message when possible."""

    def __init__(self, bot: Bot) -> None:
        self._bot = bot

    async def reply(self, token: ReplyToken, text: str) -> None:
        await self._bot.send_message(
            chat_id=token.chat_id,
            text=text,
            reply_parameters=ReplyParameters(
                message_id=token.message_id,
                allow_sending_without_reply=True,
            ),
            link_preview_options=LinkPreviewOptions(is_disabled=True),
        )
