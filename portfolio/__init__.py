"""Balance ledger and valuation."""
