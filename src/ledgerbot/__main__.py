"""Entry point for ``python -m ledgerbot``."""

import asyncio

from ledgerbot.bot import run_bot


def main() -> None:
    """Launch the LedgerBot Telegram bot and dashboard API."""
    asyncio.run(run_bot())


if __name__ == "__main__":
    main()
