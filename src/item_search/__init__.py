"""In-memory item search engine with batched indexing and per-session ordering."""

from item_search.bootstrap import create_search_service
from item_search.config import EngineSettings
from item_search.domain import Item, ItemsPage, SearchPage, SessionState, ViewState
from item_search.errors import (
    InputError,
    ItemSearchError,
    NotFoundError,
    SessionNotInitializedError,
    StorageError,
)
from item_search.search.indexer import IndexBuilder
from item_search.search.ranking import score
from item_search.search.resolver import NO_FILTER, resolve
from item_search.search.snapshot import IndexSnapshot, SnapshotHolder
from item_search.service_layer import SearchService, SessionStateManager


__version__ = "0.1.0"

__all__ = [
    "NO_FILTER",
    "EngineSettings",
    "IndexBuilder",
    "IndexSnapshot",
    "InputError",
    "Item",
    "ItemSearchError",
    "ItemsPage",
    "NotFoundError",
    "SearchPage",
    "SearchService",
    "SessionNotInitializedError",
    "SessionState",
    "SessionStateManager",
    "SnapshotHolder",
    "StorageError",
    "ViewState",
    "create_search_service",
    "resolve",
    "score",
]
