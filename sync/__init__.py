"""Refresh batch coordination."""
