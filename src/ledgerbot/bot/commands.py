"""Chat command classification.

Rules are checked in order and the first match wins:

1. ``call me <nickname>`` — set the author's nickname in this group.
2. ``name group <name>`` — rename the group.
3. ``paid by <name>`` — change the payer of the latest transaction.
4. Exact literals: ``dashboard``, ``help``, ``undo`` / ``undo last``.
5. Anything else is free text for the extraction pipeline; with the
   digit gate on, text without a single digit is ignored.

A prefix must end at a word boundary ("call meat 50" is free text), and a
prefix followed by nothing is not a command and falls through.
Literals are case-sensitive and take no parameters.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class CommandKind(StrEnum):
    SET_NICKNAME = "set_nickname"
    RENAME_GROUP = "rename_group"
    REASSIGN_PAYER = "reassign_payer"
    DASHBOARD = "dashboard"
    HELP = "help"
    UNDO_LAST = "undo_last"


class Route(StrEnum):
    COMMAND = "command"
    EXTRACT = "extract"
    IGNORE = "ignore"


NICKNAME_PREFIX = "call me"
RENAME_PREFIX = "name group"
REASSIGN_PREFIX = "paid by"

PREFIX_COMMANDS: tuple[tuple[str, CommandKind], ...] = (
    (NICKNAME_PREFIX, CommandKind.SET_NICKNAME),
    (RENAME_PREFIX, CommandKind.RENAME_GROUP),
    (REASSIGN_PREFIX, CommandKind.REASSIGN_PAYER),
)

LITERAL_COMMANDS: dict[str, CommandKind] = {
    "dashboard": CommandKind.DASHBOARD,
    "help": CommandKind.HELP,
    "undo": CommandKind.UNDO_LAST,
    "undo last": CommandKind.UNDO_LAST,
}


@dataclass(frozen=True)
class ParsedCommand:
    kind: CommandKind
    argument: str = ""


@dataclass(frozen=True)
class RouteDecision:
    route: Route
    command: ParsedCommand | None = None


def _starts_with_word(text: str, prefix: str) -> bool:
    if not text.startswith(prefix):
        return False
    return len(text) == len(prefix) or text[len(prefix)].isspace()


def parse_command(text: str) -> ParsedCommand | None:
    """Return the command *text* invokes, or ``None`` for free text."""
    for prefix, kind in PREFIX_COMMANDS:
        if _starts_with_word(text, prefix):
            argument = text[len(prefix):].strip()
            if argument:
                return ParsedCommand(kind=kind, argument=argument)

    kind = LITERAL_COMMANDS.get(text.strip())
    if kind is not None:
        return ParsedCommand(kind=kind)
    return None


def has_digit(text: str) -> bool:
    return any(ch.isdigit() for ch in text)


def route_text(text: str, *, require_digit: bool = True) -> RouteDecision:
    """Decide what to do with an inbound message.

    Args:
        text: The message text.
        require_digit: When ``True``, free text without digits is ignored
            instead of paying for an extraction call.
    """
    command = parse_command(text)
    if command is not None:
        return RouteDecision(route=Route.COMMAND, command=command)
    if require_digit and not has_digit(text):
        return RouteDecision(route=Route.IGNORE)
    return RouteDecision(route=Route.EXTRACT)
