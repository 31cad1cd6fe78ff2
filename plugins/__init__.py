"""Concrete implementations of the core protocols."""
