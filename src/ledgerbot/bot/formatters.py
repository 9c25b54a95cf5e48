"""Message formatters for Telegram output.

Converts ledger data into Telegram-friendly HTML strings.  User-supplied
text (items, nicknames, group names) is always escaped.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from decimal import Decimal
from html import escape

from ledgerbot.ledger.models import Transaction, TransactionKind
from ledgerbot.ledger.stats import MemberTotal, MonthlyStats

NOTHING_TO_DELETE = "⚠️ There are no records to delete yet."
NOTHING_TO_REASSIGN = "⚠️ There are no records to update yet."

HELP_TEXT = (
    "<b>How to use the group ledger</b>\n\n"
    "<u>Record</u>\n"
    "Just write what happened, with an amount:\n"
    '  <i>"lunch 120"</i>\n'
    '  <i>"yesterday taxi 250, Mao paid"</i>\n'
    '  <i>"salary 42000 on 11/05"</i>\n'
    "Several items in one message are recorded separately.\n\n"
    "<u>Commands</u>\n"
    "<code>dashboard</code> — this month's overview\n"
    "<code>undo</code> or <code>undo last</code> — delete the latest record\n"
    "<code>paid by &lt;name&gt;</code> — change who paid the latest record\n"
    "<code>call me &lt;name&gt;</code> — set your nickname in this group\n"
    "<code>name group &lt;name&gt;</code> — rename this group\n"
    "<code>help</code> — show this message"
)


def format_amount(amount: Decimal) -> str:
    """Render an amount without trailing zero cents (``120`` / ``12.50``)."""
    if amount == amount.to_integral_value():
        return f"{amount:,.0f}"
    return f"{amount:,.2f}"


def _signed(transaction: Transaction) -> str:
    sign = "-" if transaction.kind == TransactionKind.EXPENSE else "+"
    return f"{sign}{format_amount(transaction.amount)}"


def format_saved_transactions(transactions: Sequence[Transaction]) -> str:
    """Card confirming the transactions saved from one message."""
    lines = ["✅ <b>Recorded</b>\n"]
    net = Decimal("0")
    for tx in transactions:
        icon = "\U0001f4b8" if tx.kind == TransactionKind.EXPENSE else "\U0001f4b0"
        lines.append(f"<b>{escape(tx.item)}</b>  {_signed(tx)}")
        lines.append(
            f"   {icon} {escape(tx.parent_category)} | {escape(tx.sub_category)}"
            f"  \U0001f464 {escape(tx.payer_name)}"
        )
        net += -tx.amount if tx.kind == TransactionKind.EXPENSE else tx.amount

    # Signed like the rows above: "-" is net spending, "+" net income.
    sign = "-" if net < 0 else "+"
    lines.append(f"\nNet: <b>{sign}${format_amount(abs(net))}</b>")
    lines.append("<i>Send “undo” to remove the latest record.</i>")
    return "\n".join(lines)


def format_dashboard(
    *,
    group_name: str,
    stats: MonthlyStats,
    recent: Sequence[Transaction],
    members: Sequence[MemberTotal],
    today: date,
    history_url: str | None = None,
) -> str:
    """Multi-panel dashboard: overview, recent records, spending per member."""
    month = today.strftime("%B %Y")
    balance_icon = "\U0001f7e2" if stats.balance >= 0 else "\U0001f534"

    lines = [
        f"\U0001f4ca <b>{escape(group_name)}</b> — {month}\n",
        f"{balance_icon} Balance: <b>${format_amount(stats.balance)}</b>",
        f"   Income: ${format_amount(stats.income)}",
        f"   Expense: ${format_amount(stats.expense)}",
    ]

    lines.append("\n\U0001f4cb <b>Recent records</b>")
    if recent:
        for tx in recent:
            lines.append(
                f"{tx.transaction_date:%m/%d} {escape(tx.item)}  {_signed(tx)}"
                f"  ({escape(tx.payer_name)})"
            )
    else:
        lines.append("<i>No records yet.</i>")

    lines.append("\n\U0001f465 <b>Spending by member</b>")
    if members:
        for member in members:
            lines.append(f"{escape(member.payer_name)}: ${format_amount(member.total)}")
    else:
        lines.append("<i>No expenses this month.</i>")

    if history_url:
        lines.append(f'\n<a href="{escape(history_url, quote=True)}">Full history \U0001f517</a>')
    return "\n".join(lines)


def format_undo_receipt(transaction: Transaction) -> str:
    """Receipt for a record removed by ``undo``."""
    return (
        "\U0001f5d1️ Deleted the latest record:\n\n"
        f"{escape(transaction.item)} ${format_amount(transaction.amount)}\n"
        f"({escape(transaction.payer_name)} paid)"
    )


def format_payer_changed(transaction: Transaction) -> str:
    """Acknowledge a ``paid by`` change on the latest record."""
    return (
        f"\U0001f504 Payer of “{escape(transaction.item)}” "
        f"changed to {escape(transaction.payer_name)}."
    )


def format_nickname_set(nickname: str) -> str:
    """Acknowledge ``call me``."""
    return f"\U0001f197 Got it, from now on you are “{escape(nickname)}”!"


def format_group_renamed(name: str) -> str:
    """Acknowledge ``name group``."""
    return f"\U0001f3f7️ Group name updated to “{escape(name)}”."
