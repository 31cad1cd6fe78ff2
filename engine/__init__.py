"""Presentation-facing facade over the sync engine and the ledger."""
