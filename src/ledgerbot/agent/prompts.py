"""Prompt template for entry extraction.

The model receives the group's category vocabulary and known nicknames
on every call, so both may change between messages without any cache.
The output shape itself is enforced by the JSON schema built in
:func:`ledgerbot.agent.extraction.build_extraction_schema`.
"""

from __future__ import annotations

EXTRACTION_PROMPT = """\
You are the bookkeeper of a shared group ledger in a chat group.
Decide whether the message below records money spent or received, and if so \
extract every entry it contains.

Reference date: {today} (today is {weekday}).
Message: "{message}"
Known payers in this group: {nicknames}.

Rules:
1. Extract every purchase or income in the message as a separate entry. \
"amount" is a positive number exactly as written (e.g. "2,000" means 2000).
2. Identify who paid. If the author paid, or the payer is implied to be \
the author, use "self". If another person paid, use their name, spelled \
like one of the known payers when it refers to one of them.
3. "parentCategory" must be one of: {categories}. \
"subCategory" is a short free-text refinement (e.g. "breakfast", "taxi").
4. "kind" is "income" for money received (salary, refund, winnings), \
otherwise "expense".
5. "date" is in YYYY-MM-DD format:
   - relative terms ("yesterday", "last Friday", "3 days ago") are counted \
back from the reference date;
   - a month and day without a year (e.g. "11/05") uses the reference year;
   - if the message mentions no date, use {today}.
6. If the message is not about recording money, set "isAccounting" to false \
and return an empty "entries" list.\
"""


def format_extraction_prompt(
    *,
    message: str,
    categories: list[str],
    nicknames: list[str],
    today: str,
    weekday: str,
) -> str:
    """Fill the extraction template; an empty nickname list reads as "none"."""
    return EXTRACTION_PROMPT.format(
        message=message,
        categories=", ".join(categories),
        nicknames=", ".join(nicknames) if nicknames else "none registered",
        today=today,
        weekday=weekday,
    )
