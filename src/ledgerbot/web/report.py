"""Server-rendered HTML history report.

Linked from the chat dashboard; renders the newest transactions of a group
as a plain table.
"""

from __future__ import annotations

from collections.abc import Sequence
from html import escape

from aiohttp import web

from ledgerbot.ledger.models import Transaction, TransactionKind
from ledgerbot.ledger.repository import get_group_name
from ledgerbot.ledger.stats import get_recent_transactions

HISTORY_LIMIT = 100

_PAGE = """\
<!DOCTYPE html>
<html>
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{title}</title>
  <style>
    body {{ font-family: sans-serif; padding: 20px; background-color: #f5f5f5; }}
    .container {{ max-width: 800px; margin: 0 auto; background: white; padding: 20px;
                 border-radius: 8px; box-shadow: 0 2px 4px rgba(0,0,0,0.1); }}
    h2 {{ text-align: center; color: #333; }}
    table {{ width: 100%; border-collapse: collapse; margin-top: 20px; }}
    th, td {{ padding: 12px; text-align: left; border-bottom: 1px solid #ddd; }}
    th {{ background-color: #f8f9fa; }}
    tr:hover {{ background-color: #f1f1f1; }}
    .expense {{ color: #ff334b; font-weight: bold; }}
    .income {{ color: #1db446; font-weight: bold; }}
  </style>
</head>
<body>
  <div class="container">
    <h2>{title} (latest {limit})</h2>
    <table>
      <thead>
        <tr><th>Date</th><th>Item</th><th>Amount</th><th>Payer</th><th>Category</th></tr>
      </thead>
      <tbody>
{rows}
      </tbody>
    </table>
  </div>
</body>
</html>
"""


def render_history(group_name: str, transactions: Sequence[Transaction]) -> str:
    rows: list[str] = []
    for tx in transactions:
        is_expense = tx.kind == TransactionKind.EXPENSE
        sign = "-" if is_expense else "+"
        css = "expense" if is_expense else "income"
        rows.append(
            "        <tr>"
            f"<td>{tx.transaction_date:%Y-%m-%d}</td>"
            f"<td>{escape(tx.item)}</td>"
            f'<td class="{css}">{sign}{tx.amount:,.2f}</td>'
            f"<td>{escape(tx.payer_name)}</td>"
            f"<td>{escape(tx.parent_category)}</td>"
            "</tr>"
        )
    if not rows:
        rows.append('        <tr><td colspan="5">No records yet.</td></tr>')

    return _PAGE.format(
        title=f"{escape(group_name)} history",
        limit=HISTORY_LIMIT,
        rows="\n".join(rows),
    )


async def get_history(request: web.Request) -> web.Response:
    group_id = request.match_info["group_id"]

    async with request.app["session_factory"]() as session:
        group_name = await get_group_name(session, group_id)
        transactions = await get_recent_transactions(session, group_id, HISTORY_LIMIT)

    return web.Response(text=render_history(group_name, transactions), content_type="text/html")
