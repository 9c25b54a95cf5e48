"""Ledger storage, mutations and aggregations."""
