"""Message intake pipeline.

Takes a batch of :data:`~ledgerbot.bot.events.ChatEvent` objects and, for
each text message, either runs the matching command or sends the text
through extraction and records the resulting entries.

Events are handled one after another in delivery order.  Each event gets
its own database sessions; if one fails it is rolled back and logged and
the rest of the batch still runs.  No session is open while the
extraction model is working, and replies go out only after commit.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from ledgerbot.agent import analyze_message
from ledgerbot.agent.extraction import EntryExtractor
from ledgerbot.bot.commands import CommandKind, ParsedCommand, Route, route_text
from ledgerbot.bot.events import ChatEvent, TextMessageEvent
from ledgerbot.bot.formatters import (
    HELP_TEXT,
    NOTHING_TO_DELETE,
    NOTHING_TO_REASSIGN,
    format_dashboard,
    format_group_renamed,
    format_nickname_set,
    format_payer_changed,
    format_saved_transactions,
    format_undo_receipt,
)
from ledgerbot.bot.replies import Replier
from ledgerbot.config import settings
from ledgerbot.ledger.mutations import reassign_last_payer, record_entries, undo_last
from ledgerbot.ledger.repository import get_group_name, set_group_name, set_nickname
from ledgerbot.ledger.stats import (
    get_member_monthly_stats,
    get_monthly_stats,
    get_recent_transactions,
)

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


@dataclass
class IntakeContext:
    """Collaborators shared by every event of a delivery."""

    session_factory: SessionFactory
    extractor: EntryExtractor
    replier: Replier
    today: date
    require_digit: bool = True


@dataclass(frozen=True)
class IntakeOutcome:
    """What one message led to: the route taken and the reply to send, if any."""

    route: Route
    reply: str | None = None


async def handle_events(events: Sequence[ChatEvent], ctx: IntakeContext) -> None:
    """Process a delivery of chat events sequentially, isolating failures.

    A reply is sent only after the event's changes are committed, so a
    failed send never undoes a recorded change.
    """
    logger.info("Received %d chat event(s)", len(events))

    for event in events:
        if not isinstance(event, TextMessageEvent):
            logger.debug("Skipping unsupported event: %s", event)
            continue
        try:
            outcome = await handle_text_event(event, ctx)
            if outcome.reply is not None:
                await ctx.replier.reply(event.reply_token, outcome.reply)
        except Exception:
            logger.exception(
                "Failed to process event from user %s in group %s",
                event.user_id,
                event.group_id,
            )


async def handle_text_event(event: TextMessageEvent, ctx: IntakeContext) -> IntakeOutcome:
    """Route one text message and persist its side effects.

    Every database change is committed before this returns; sending the
    reply is left to the caller.
    """
    decision = route_text(event.text, require_digit=ctx.require_digit)

    if decision.command is not None:
        async with ctx.session_factory() as session:
            reply = await _run_command(decision.command, event, session, ctx)
        logger.info("Handled command %s (group: %s)", decision.command.kind, event.group_id)
        return IntakeOutcome(route=decision.route, reply=reply)

    if decision.route is Route.EXTRACT:
        logger.info("Sending message to extraction (group: %s)", event.group_id)
        return IntakeOutcome(route=decision.route, reply=await _record_from_text(event, ctx))

    return IntakeOutcome(route=decision.route)


async def _record_from_text(event: TextMessageEvent, ctx: IntakeContext) -> str | None:
    result = await analyze_message(
        ctx.session_factory,
        ctx.extractor,
        group_id=event.group_id,
        text=event.text,
        today=ctx.today,
    )
    if not result.has_entries:
        logger.info("Not an accounting message or no entries (group: %s)", event.group_id)
        return None

    async with ctx.session_factory() as session:
        saved = await record_entries(
            session,
            result.entries,
            group_id=event.group_id,
            user_id=event.user_id,
        )
        reply = format_saved_transactions(saved)
    logger.info("Saved %d transaction(s) (group: %s)", len(saved), event.group_id)
    return reply


async def _run_command(
    command: ParsedCommand,
    event: TextMessageEvent,
    session: AsyncSession,
    ctx: IntakeContext,
) -> str:
    if command.kind is CommandKind.SET_NICKNAME:
        await set_nickname(session, event.group_id, event.user_id, command.argument)
        logger.info("User %s is now %r in group %s", event.user_id, command.argument, event.group_id)
        reply = format_nickname_set(command.argument)

    elif command.kind is CommandKind.RENAME_GROUP:
        await set_group_name(session, event.group_id, command.argument)
        logger.info("Group %s renamed to %r", event.group_id, command.argument)
        reply = format_group_renamed(command.argument)

    elif command.kind is CommandKind.REASSIGN_PAYER:
        updated = await reassign_last_payer(session, event.group_id, command.argument)
        reply = format_payer_changed(updated) if updated is not None else NOTHING_TO_REASSIGN

    elif command.kind is CommandKind.UNDO_LAST:
        deleted = await undo_last(session, event.group_id)
        reply = format_undo_receipt(deleted) if deleted is not None else NOTHING_TO_DELETE

    elif command.kind is CommandKind.DASHBOARD:
        reply = await _build_dashboard(event.group_id, session, ctx.today)

    else:
        reply = HELP_TEXT

    return reply


async def _build_dashboard(group_id: str, session: AsyncSession, today: date) -> str:
    stats = await get_monthly_stats(session, group_id, today=today)
    recent = await get_recent_transactions(session, group_id, settings.chat_recent_limit)
    members = await get_member_monthly_stats(session, group_id, today=today)
    group_name = await get_group_name(session, group_id)

    history_url = f"{settings.app_domain.rstrip('/')}/web/history/{group_id}"
    return format_dashboard(
        group_name=group_name,
        stats=stats,
        recent=recent,
        members=members,
        today=today,
        history_url=history_url,
    )
