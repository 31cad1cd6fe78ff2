"""Periodic refresh loop."""
