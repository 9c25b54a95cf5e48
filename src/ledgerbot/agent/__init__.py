"""LLM extraction layer.

Provides entry points for the bot layer:

- :func:`create_extractor` — build the shared :class:`EntryExtractor` once
  at startup (Ollama with paid-API fallback by default).
- :func:`analyze_message` — read the group's current categories and
  nicknames and run extraction for one message.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import TYPE_CHECKING

from ledgerbot.agent.extraction import EntryExtractor, ExtractionResult
from ledgerbot.agent.llm_client import FallbackLLMClient, LLMClient
from ledgerbot.ledger.repository import get_group_nicknames, get_or_create_group_config

if TYPE_CHECKING:
    from ledgerbot.bot.intake import SessionFactory

logger = logging.getLogger(__name__)


def create_extractor(llm_client: LLMClient | None = None) -> EntryExtractor:
    """Build the extractor used for the lifetime of the process."""
    return EntryExtractor(llm_client or FallbackLLMClient())


async def analyze_message(
    session_factory: SessionFactory,
    extractor: EntryExtractor,
    *,
    group_id: str,
    text: str,
    today: date,
) -> ExtractionResult:
    """Run extraction for a group message.

    The group's configuration is created with starter categories if this
    is the first message the group sends.  Categories and nicknames are read
    in a short session of their own that is committed before the model is
    called, so no connection is held while waiting on the model.  A
    concurrent category edit may or may not be seen.

    Args:
        session_factory: Opens the session used to read the group vocabulary.
        extractor: The shared extractor.
        group_id: Group the message was sent in.
        text: The message text.
        today: Reference date for relative date terms.

    Returns:
        The extraction result (never raises for model failures).
    """
    async with session_factory() as session:
        config = await get_or_create_group_config(session, group_id)
        categories = list(config.categories)
        nicknames = await get_group_nicknames(session, group_id)

    logger.debug("Analyzing message for group %s: %r", group_id, text[:100])
    return await extractor.extract(
        text,
        categories=categories,
        nicknames=nicknames,
        today=today,
    )
