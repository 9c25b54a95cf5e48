"""LedgerBot — shared group expense ledger for Telegram chats."""

__version__ = "0.1.0"
