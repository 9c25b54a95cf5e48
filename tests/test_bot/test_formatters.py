"""Tests for Telegram HTML formatters."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from ledgerbot.bot.formatters import (
    HELP_TEXT,
    format_amount,
    format_dashboard,
    format_group_renamed,
    format_nickname_set,
    format_payer_changed,
    format_saved_transactions,
    format_undo_receipt,
)
from ledgerbot.ledger.models import Transaction
from ledgerbot.ledger.stats import MemberTotal, MonthlyStats


def _tx(**overrides) -> Transaction:
    fields = {
        "group_id": "g1",
        "user_id": "u1",
        "payer_name": "Alice",
        "amount": Decimal("120.00"),
        "item": "taxi",
        "parent_category": "transport",
        "sub_category": "cab",
        "kind": "expense",
        "transaction_date": datetime(2024, 5, 14, 12, 0),
    }
    fields.update(overrides)
    return Transaction(**fields)


def test_format_amount() -> None:
    assert format_amount(Decimal("120.00")) == "120"
    assert format_amount(Decimal("12.50")) == "12.50"
    assert format_amount(Decimal("42000")) == "42,000"
    assert format_amount(Decimal("-120")) == "-120"


def test_saved_transactions_card() -> None:
    text = format_saved_transactions(
        [
            _tx(item="breakfast", amount=Decimal("50")),
            _tx(),
            _tx(item="refund", amount=Decimal("20"), kind="income"),
        ]
    )

    assert "Recorded" in text
    assert "<b>breakfast</b>  -50" in text
    assert "<b>refund</b>  +20" in text
    assert "Net: <b>-$150</b>" in text
    assert "undo" in text


def test_saved_transactions_net_income_is_marked_positive() -> None:
    text = format_saved_transactions(
        [
            _tx(item="salary", amount=Decimal("100"), kind="income"),
            _tx(item="snacks", amount=Decimal("30")),
        ]
    )

    assert "Net: <b>+$70</b>" in text


def test_saved_transactions_escapes_user_text() -> None:
    text = format_saved_transactions([_tx(item="<script>", payer_name="A&B")])

    assert "&lt;script&gt;" in text
    assert "A&amp;B" in text
    assert "<script>" not in text


def test_dashboard_panels() -> None:
    text = format_dashboard(
        group_name="Flat",
        stats=MonthlyStats(income=Decimal("30"), expense=Decimal("150"), balance=Decimal("-120")),
        recent=[_tx()],
        members=[MemberTotal(payer_name="Bob", total=Decimal("120"))],
        today=date(2024, 5, 15),
        history_url="https://example.org/web/history/g1",
    )

    assert "<b>Flat</b>" in text
    assert "May 2024" in text
    assert "Balance: <b>$-120</b>" in text
    assert "Income: $30" in text
    assert "Expense: $150" in text
    assert "05/14 taxi  -120  (Alice)" in text
    assert "Bob: $120" in text
    assert 'href="https://example.org/web/history/g1"' in text


def test_dashboard_empty_group() -> None:
    text = format_dashboard(
        group_name="unnamed group",
        stats=MonthlyStats(),
        recent=[],
        members=[],
        today=date(2024, 5, 15),
    )

    assert "No records yet." in text
    assert "No expenses this month." in text
    assert "href" not in text


def test_undo_receipt() -> None:
    text = format_undo_receipt(_tx())

    assert "Deleted the latest record" in text
    assert "taxi $120" in text
    assert "(Alice paid)" in text


def test_small_confirmations() -> None:
    assert "Bob" in format_payer_changed(_tx(payer_name="Bob"))
    assert "“Mao”" in format_nickname_set("Mao")
    assert "“Trip &lt;2024&gt;”" in format_group_renamed("Trip <2024>")


def test_help_lists_commands() -> None:
    for command in ("dashboard", "undo", "paid by", "call me", "name group", "help"):
        assert command in HELP_TEXT
