"""Tests for chat command classification and routing."""

from __future__ import annotations

import pytest

from ledgerbot.bot.commands import (
    CommandKind,
    ParsedCommand,
    Route,
    RouteDecision,
    has_digit,
    parse_command,
    route_text,
)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("call me Alice", ParsedCommand(CommandKind.SET_NICKNAME, "Alice")),
        ("call me   Mao Mao ", ParsedCommand(CommandKind.SET_NICKNAME, "Mao Mao")),
        ("name group Flat 4B", ParsedCommand(CommandKind.RENAME_GROUP, "Flat 4B")),
        ("paid by Bob", ParsedCommand(CommandKind.REASSIGN_PAYER, "Bob")),
        ("dashboard", ParsedCommand(CommandKind.DASHBOARD)),
        ("help", ParsedCommand(CommandKind.HELP)),
        ("undo", ParsedCommand(CommandKind.UNDO_LAST)),
        ("undo last", ParsedCommand(CommandKind.UNDO_LAST)),
    ],
)
def test_parse_command(text: str, expected: ParsedCommand) -> None:
    assert parse_command(text) == expected


@pytest.mark.parametrize("text", ["Dashboard", "undo 2", "help me", "please undo", "lunch 120"])
def test_literals_are_exact(text: str) -> None:
    assert parse_command(text) is None


def test_first_matching_prefix_wins() -> None:
    # "call me" is checked before "name group".
    assert parse_command("call me name group X") == ParsedCommand(
        CommandKind.SET_NICKNAME, "name group X"
    )


def test_prefix_without_argument_falls_through() -> None:
    assert parse_command("call me") is None
    assert parse_command("name group   ") is None
    assert route_text("call me").route is Route.IGNORE


@pytest.mark.parametrize(
    "text", ["call meat 50", "call mechanic 300", "paid bycycle 80", "name groupie 20"]
)
def test_prefix_must_end_at_word_boundary(text: str) -> None:
    assert parse_command(text) is None
    assert route_text(text) == RouteDecision(route=Route.EXTRACT)


def test_prefix_accepts_any_whitespace_before_argument() -> None:
    assert parse_command("paid by\tBob") == ParsedCommand(CommandKind.REASSIGN_PAYER, "Bob")


def test_prefix_with_digit_argument_is_still_a_command() -> None:
    decision = route_text("call me 007")

    assert decision.route is Route.COMMAND
    assert decision.command == ParsedCommand(CommandKind.SET_NICKNAME, "007")


def test_has_digit() -> None:
    assert has_digit("taxi 120")
    assert has_digit("x٣")
    assert not has_digit("see you tonight")


def test_route_free_text_with_digit_goes_to_extraction() -> None:
    decision = route_text("breakfast 50, taxi 120")

    assert decision.route is Route.EXTRACT
    assert decision.command is None


def test_route_chatter_without_digit_is_ignored() -> None:
    assert route_text("see you tonight").route is Route.IGNORE


def test_route_digit_gate_can_be_disabled() -> None:
    assert route_text("see you tonight", require_digit=False).route is Route.EXTRACT


def test_commands_bypass_digit_gate() -> None:
    assert route_text("dashboard").route is Route.COMMAND
    assert route_text("undo").command == ParsedCommand(CommandKind.UNDO_LAST)
