"""Core infrastructure: config, errors, event bus, protocols, and models."""
