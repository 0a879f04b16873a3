"""Error hierarchy shared by the indexing, search and session layers."""

from __future__ import annotations

from collections.abc import Iterable


class ItemSearchError(Exception):
    """Base error for the item search engine."""


class InputError(ItemSearchError, ValueError):
    """Raised when a caller supplies malformed ids or payloads."""


class NotFoundError(ItemSearchError, LookupError):
    """Raised when an operation references ids missing from the session order."""

    def __init__(self, missing_ids: Iterable[int], message: str | None = None) -> None:
        self.missing_ids = tuple(missing_ids)
        super().__init__(message or f"Unknown item ids: {list(self.missing_ids)}")


class StorageError(ItemSearchError, OSError):
    """Raised when staging artifacts cannot be written, read or removed."""


class SessionNotInitializedError(ItemSearchError, RuntimeError):
    """Raised when a session operation runs before ``initialize``."""
