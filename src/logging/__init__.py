"""Logging setup and per-operation context."""
