"""Adapters layer - session storage implementations."""

from .session_store import AbstractSessionStore, InMemorySessionStore


__all__ = [
    "AbstractSessionStore",
    "InMemorySessionStore",
]
