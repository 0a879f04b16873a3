"""Service layer - search, rebuild and session orchestration."""

from .search_service import SearchService
from .session_manager import SessionStateManager, coerce_ids


__all__ = [
    "SearchService",
    "SessionStateManager",
    "coerce_ids",
]
