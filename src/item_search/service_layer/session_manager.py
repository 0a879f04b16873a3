"""Per-session ordering, selection and cached search orderings.

A session starts uninitialized and becomes initialized exactly once; every
other operation requires the initialized state. Mutations replace the
session's lists instead of editing them in place, and every list handed back
to callers is a copy, so callers can never corrupt the cached orderings.

Concurrent mutations of one session are not serialized: the last write to
``order`` or ``selected`` wins.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
import logging
from typing import Any

from pydantic import ValidationError

from item_search.domain.model import ViewState
from item_search.domain.session import SessionState, build_order_index
from item_search.errors import InputError, NotFoundError, SessionNotInitializedError
from item_search.search.analyzers import tokenize
from item_search.search.resolver import intersect_smallest_first
from item_search.search.snapshot import SnapshotHolder


logger = logging.getLogger(__name__)

_VIEW_STATE_ALIASES = {"sortBy": "sort_by", "sortDir": "sort_dir"}


def coerce_ids(raw: Any) -> list[int]:
    """Validate an id payload: a list/tuple of values convertible to positive ints."""
    if not isinstance(raw, (list, tuple)):
        raise InputError(f"Expected a list of ids, got {type(raw).__name__}")
    ids: list[int] = []
    for value in raw:
        if isinstance(value, bool):
            raise InputError(f"Invalid item id: {value!r}")
        try:
            item_id = int(value)
        except (TypeError, ValueError) as exc:
            raise InputError(f"Invalid item id: {value!r}") from exc
        if item_id < 1:
            raise InputError(f"Invalid item id: {value!r}")
        ids.append(item_id)
    return ids


def coerce_id(raw: Any) -> int:
    return coerce_ids([raw])[0]


class SessionStateManager:
    """Operations over a single :class:`SessionState`.

    Search matching here is the session-local approximation: each token
    matches the union of its exact-index and prefix-index entries, without
    n-gram fallback or trailing-token prefix widening.
    """

    def __init__(self, snapshot_holder: SnapshotHolder) -> None:
        self.snapshot_holder = snapshot_holder

    def initialize(self, session: SessionState, total_items: int) -> None:
        if session.initialized:
            return
        session.order = list(range(1, total_items + 1))
        session.order_index = build_order_index(session.order)
        session.selected = []
        session.view_state = ViewState()
        session.search_cache = {}
        session.search_orders = {}
        session.initialized = True
        logger.debug("Session initialized with %d items", total_items)

    def build_matching_array(self, session: SessionState, query: str | None) -> list[int]:
        """Return the ids matching ``query`` in the session's preferred order."""
        _require_initialized(session)
        key = (query or "").strip()

        cached = session.search_cache.get(key)
        if cached is not None:
            return list(cached)

        snapshot = self.snapshot_holder.current()
        if snapshot is None:
            return []

        tokens = tokenize(key)
        if not tokens:
            return self._cache(session, key, [])

        token_sets: list[set[int]] = []
        for token in tokens:
            candidates = set(snapshot.exact.get(token, ()))
            candidates.update(snapshot.prefix.get(token, ()))
            if not candidates:
                return self._cache(session, key, [])
            token_sets.append(candidates)

        matched = intersect_smallest_first(token_sets)
        if not matched:
            return self._cache(session, key, [])

        order_index = session.order_index
        unknown = len(order_index)

        pinned = session.search_orders.get(key)
        if pinned:
            ordered: list[int] = []
            seen: set[int] = set()
            for item_id in pinned:
                if item_id in matched and item_id not in seen:
                    ordered.append(item_id)
                    seen.add(item_id)
            missing = sorted(
                (item_id for item_id in matched if item_id not in seen),
                key=lambda item_id: order_index.get(item_id, unknown),
            )
            ordered.extend(missing)
            return self._cache(session, key, ordered)

        ordered = sorted(matched, key=lambda item_id: order_index.get(item_id, unknown))
        return self._cache(session, key, ordered)

    def update_order(self, session: SessionState, new_order: Iterable[Any]) -> None:
        """Replace the global order; it must be a permutation of the current ids."""
        _require_initialized(session)
        candidate = coerce_ids(list(new_order))
        if len(candidate) != len(session.order) or set(candidate) != set(session.order):
            raise InputError("New order must be a permutation of the current item ids")
        self._apply_order(session, candidate)

    def reorder(self, session: SessionState, source_id: Any, destination_id: Any) -> list[int]:
        """Move ``source_id`` into the slot ``destination_id`` occupies.

        The source is removed first and reinserted at the destination's original
        index, so moving an item down lands it just after the destination.
        """
        _require_initialized(session)
        source = coerce_id(source_id)
        destination = coerce_id(destination_id)
        missing = [item_id for item_id in (source, destination) if item_id not in session.order_index]
        if missing:
            raise NotFoundError(missing)

        source_index = session.order_index[source]
        destination_index = session.order_index[destination]
        reordered = list(session.order)
        moved = reordered.pop(source_index)
        reordered.insert(destination_index, moved)
        self._apply_order(session, reordered)
        return list(reordered)

    def update_selection(self, session: SessionState, ids: Any, should_select: bool) -> list[int]:
        """Add or remove ``ids`` from the selection and return the new selection."""
        _require_initialized(session)
        requested = coerce_ids(ids)
        selected = list(session.selected)
        if should_select:
            present = set(selected)
            for item_id in requested:
                if item_id not in present:
                    selected.append(item_id)
                    present.add(item_id)
        else:
            removed = set(requested)
            selected = [item_id for item_id in selected if item_id not in removed]
        session.selected = selected
        return list(selected)

    def update_view_state(self, session: SessionState, patch: Mapping[str, Any]) -> ViewState:
        """Shallow-merge ``patch`` (snake_case or camelCase keys) into the view state."""
        _require_initialized(session)
        if not isinstance(patch, Mapping):
            raise InputError(f"Expected a mapping, got {type(patch).__name__}")
        normalized = {_VIEW_STATE_ALIASES.get(key, key): value for key, value in patch.items()}
        merged = {**session.view_state.model_dump(), **normalized}
        try:
            session.view_state = ViewState.model_validate(merged)
        except ValidationError as exc:
            raise InputError(f"Invalid view state: {exc.errors(include_url=False)}") from exc
        return session.view_state

    def update_search_order(self, session: SessionState, query: str, order: Any) -> None:
        """Pin ``order`` for ``query`` and seed the search cache with it."""
        _require_initialized(session)
        key = (query or "").strip()
        pinned = coerce_ids(order)
        session.search_orders[key] = pinned
        session.search_cache[key] = list(pinned)

    def invalidate_search_state(self, session: SessionState) -> None:
        """Drop cached and pinned search orderings (used after an index rebuild)."""
        session.search_cache = {}
        session.search_orders = {}

    def order(self, session: SessionState) -> list[int]:
        _require_initialized(session)
        return list(session.order)

    def selected(self, session: SessionState) -> list[int]:
        _require_initialized(session)
        return list(session.selected)

    # --- internal helpers -------------------------------------------------

    def _apply_order(self, session: SessionState, new_order: list[int]) -> None:
        session.order = new_order
        session.order_index = build_order_index(new_order)
        # Cached orderings derive from the old global order; pins are kept.
        session.search_cache = {}

    @staticmethod
    def _cache(session: SessionState, key: str, ids: list[int]) -> list[int]:
        session.search_cache[key] = list(ids)
        return list(ids)


def _require_initialized(session: SessionState) -> None:
    if not session.initialized:
        raise SessionNotInitializedError("Session must be initialized before use")
