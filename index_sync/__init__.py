"""Keeps the current and legacy search indexes in sync with the object store."""

__version__ = "0.1.0"
