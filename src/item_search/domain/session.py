"""Per-session view state: global order, selection and cached search orderings."""

from __future__ import annotations

from dataclasses import dataclass, field

from item_search.domain.model import ViewState


@dataclass(slots=True)
class SessionState:
    """Mutable state owned by one session key.

    ``order`` is a permutation of ``1..N`` and ``order_index`` is its inverse.
    Both are replaced together, never patched in place, so readers holding an
    earlier list keep a consistent snapshot.
    """

    initialized: bool = False
    order: list[int] = field(default_factory=list)
    order_index: dict[int, int] = field(default_factory=dict)
    selected: list[int] = field(default_factory=list)
    view_state: ViewState = field(default_factory=ViewState)
    search_cache: dict[str, list[int]] = field(default_factory=dict)
    search_orders: dict[str, list[int]] = field(default_factory=dict)


def build_order_index(order: list[int]) -> dict[int, int]:
    """Return ``{id: position}`` for ``order``."""
    return {item_id: position for position, item_id in enumerate(order)}
