"""Payer resolution.

The extraction step reports who paid as either the literal token ``self``
(the message author) or a free-text name.  Only the self-reference is
resolved here; any other name is stored exactly as extracted.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from ledgerbot.ledger.repository import get_nickname

SELF_TOKEN = "self"


def is_self_reference(token: str | None) -> bool:
    """True when *token* means the message author (``self`` or blank)."""
    return not token or token.strip() == "" or token == SELF_TOKEN


async def resolve_payer(
    session: AsyncSession,
    token: str | None,
    *,
    group_id: str,
    user_id: str,
) -> str:
    """Return the canonical payer name for a raw payer token.

    Args:
        session: Active async database session.
        token: Raw payer token from extraction (``'self'``, a name, or empty).
        group_id: Group the message was sent in.
        user_id: Author of the message.

    Returns:
        The author's nickname (``"me"`` if unset) for ``self`` / empty
        tokens, otherwise *token* verbatim.
    """
    if is_self_reference(token):
        return await get_nickname(session, group_id, user_id)
    return token
