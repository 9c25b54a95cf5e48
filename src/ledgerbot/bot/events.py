"""Typed inbound chat events.

Telegram updates are converted at the boundary into one of two event
kinds so the intake pipeline never sees a partially filled record:

- :class:`TextMessageEvent` — a text message with full source identity.
- :class:`UnsupportedEvent` — anything else (stickers, photos, joins...).

:func:`build_chat_event` is the only builder.  A message without a
sender raises :class:`MissingSourceIdentityError`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from aiogram.enums import ChatType
from aiogram.types import Message

GROUP_CHAT_TYPES = frozenset({ChatType.GROUP.value, ChatType.SUPERGROUP.value})


class MissingSourceIdentityError(ValueError):
    """Raised when an update carries no usable group or user identity."""


@dataclass(frozen=True)
class ReplyToken:
    """Where to answer: the chat and the message being replied to."""

    chat_id: int
    message_id: int

    def __str__(self) -> str:
        return f"{self.chat_id}:{self.message_id}"


@dataclass(frozen=True)
class TextMessageEvent:
    text: str
    group_id: str
    user_id: str
    reply_token: ReplyToken


@dataclass(frozen=True)
class UnsupportedEvent:
    kind: str
    reply_token: ReplyToken


ChatEvent = Union[TextMessageEvent, UnsupportedEvent]


def build_chat_event(message: Message) -> ChatEvent:
    """Convert an aiogram :class:`Message` into a :data:`ChatEvent`.

    Group and supergroup chats share one ledger per chat; in any other chat
    the sender's own id stands in as the group id.

    Raises:
        MissingSourceIdentityError: If the message has no sender (e.g. an
            anonymous channel post).
    """
    reply_token = ReplyToken(chat_id=message.chat.id, message_id=message.message_id)

    if message.text is None:
        return UnsupportedEvent(kind=message.content_type, reply_token=reply_token)

    if message.from_user is None:
        raise MissingSourceIdentityError(
            f"message {message.message_id} in chat {message.chat.id} has no sender"
        )

    user_id = str(message.from_user.id)
    if message.chat.type in GROUP_CHAT_TYPES:
        group_id = str(message.chat.id)
    else:
        group_id = user_id

    return TextMessageEvent(
        text=message.text.strip(),
        group_id=group_id,
        user_id=user_id,
        reply_token=reply_token,
    )
