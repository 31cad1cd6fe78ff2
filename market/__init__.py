"""Market data normalization and chart series building."""
