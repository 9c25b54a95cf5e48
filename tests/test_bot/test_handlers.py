"""Tests for the aiogram handler, the Telegram replier and bot wiring."""

from __future__ import annotations

from datetime import date
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from ledgerbot.bot import create_dispatcher
from ledgerbot.bot.events import ReplyToken, TextMessageEvent
from ledgerbot.bot.handlers import handle_message
from ledgerbot.bot.replies import TelegramReplier

# ── Helpers ───────────────────────────────────────────────────────────────────


def _make_message(text: str | None = "lunch 120", user_id: int | None = 111) -> MagicMock:
    """Create a minimal mock of an aiogram ``Message`` in a supergroup."""
    msg = MagicMock()
    msg.text = text
    msg.message_id = 5
    msg.content_type = "text"
    msg.chat.id = -100200
    msg.chat.type = "supergroup"
    if user_id is None:
        msg.from_user = None
    else:
        msg.from_user.id = user_id
    return msg


# ── handle_message ───────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_handle_message_builds_event_and_context() -> None:
    bot = MagicMock()
    extractor = MagicMock()
    session_factory = MagicMock()

    with patch("ledgerbot.bot.handlers.handle_events", new_callable=AsyncMock) as mock_handle:
        await handle_message(_make_message(), bot, extractor, session_factory)

    mock_handle.assert_called_once()
    events, ctx = mock_handle.call_args.args
    assert events == [
        TextMessageEvent(
            text="lunch 120",
            group_id="-100200",
            user_id="111",
            reply_token=ReplyToken(chat_id=-100200, message_id=5),
        )
    ]
    assert ctx.extractor is extractor
    assert ctx.session_factory is session_factory
    assert isinstance(ctx.replier, TelegramReplier)
    assert ctx.today == date.today()


@pytest.mark.asyncio
async def test_handle_message_without_sender_is_dropped() -> None:
    with patch("ledgerbot.bot.handlers.handle_events", new_callable=AsyncMock) as mock_handle:
        await handle_message(_make_message(user_id=None), MagicMock(), MagicMock(), MagicMock())

    mock_handle.assert_not_called()


@pytest.mark.asyncio
async def test_handle_message_forwards_unsupported_events() -> None:
    msg = _make_message(text=None)
    msg.content_type = "photo"

    with patch("ledgerbot.bot.handlers.handle_events", new_callable=AsyncMock) as mock_handle:
        await handle_message(msg, MagicMock(), MagicMock(), MagicMock())

    [event] = mock_handle.call_args.args[0]
    assert event.kind == "photo"


# ── TelegramReplier ──────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_telegram_replier_quotes_original_message() -> None:
    bot = MagicMock()
    bot.send_message = AsyncMock()

    await TelegramReplier(bot).reply(ReplyToken(chat_id=-1, message_id=9), "<b>hi</b>")

    kwargs = bot.send_message.call_args.kwargs
    assert kwargs["chat_id"] == -1
    assert kwargs["text"] == "<b>hi</b>"
    assert kwargs["reply_parameters"].message_id == 9
    assert kwargs["reply_parameters"].allow_sending_without_reply is True
    assert kwargs["link_preview_options"].is_disabled is True


# ── Dispatcher wiring ────────────────────────────────────────────────────────


def test_dispatcher_carries_shared_collaborators() -> None:
    extractor = MagicMock()

    dp = create_dispatcher(extractor)

    assert dp["extractor"] is extractor
    assert callable(dp["session_factory"])
