"""Domain layer: items, view state and session state."""

from item_search.domain.model import Item, ItemsPage, SearchPage, ViewState
from item_search.domain.session import SessionState, build_order_index


__all__ = [
    "Item",
    "ItemsPage",
    "SearchPage",
    "SessionState",
    "ViewState",
    "build_order_index",
]
