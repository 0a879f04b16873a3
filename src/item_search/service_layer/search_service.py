"""Search service orchestration layer.

Composes tokenization, query resolution, ranking and session ordering into
the entry points the surrounding web service calls. The read path never
raises: unexpected failures are logged and downgraded to an empty result.
"""

from __future__ import annotations

from collections.abc import Sequence
import logging

from item_search.adapters.session_store import AbstractSessionStore
from item_search.config import EngineSettings
from item_search.domain.model import Item, ItemsPage, SearchPage
from item_search.domain.session import SessionState
from item_search.observability import (
    INDEX_ITEM_COUNT,
    INDEX_KEY_COUNT,
    SEARCH_ERRORS,
    SEARCH_LATENCY,
    SEARCH_RESULTS,
    create_span,
    session_scope,
    track_latency,
)
from item_search.search.indexer import IndexBuilder
from item_search.search.ranking import dataset_lookup, rank
from item_search.search.resolver import NO_FILTER, resolve
from item_search.search.snapshot import IndexSnapshot, SnapshotHolder
from item_search.service_layer.session_manager import SessionStateManager


class SearchService:
    """High-level search and rebuild orchestration over one dataset.

    Args:
        items: Dense dataset where ``items[id - 1]`` holds the item with ``id``.
        settings: Engine settings (defaults loaded from the environment).
        logger: Logger used for query and rebuild telemetry.
        snapshot_holder: Holder of the active index snapshot; shared with the
            session manager so both always read the same published indexes.
        builder: Index builder used by :meth:`rebuild`.
    """

    def __init__(
        self,
        items: Sequence[Item],
        settings: EngineSettings | None = None,
        *,
        logger: logging.Logger | None = None,
        snapshot_holder: SnapshotHolder | None = None,
        builder: IndexBuilder | None = None,
    ) -> None:
        self.settings = settings or EngineSettings()
        self.logger = logger or logging.getLogger(__name__)
        self.items: Sequence[Item] = items
        self.snapshot_holder = snapshot_holder or SnapshotHolder()
        self.builder = builder or IndexBuilder(self.settings, logger=self.logger)
        self.session_manager = SessionStateManager(self.snapshot_holder)

    @property
    def snapshot(self) -> IndexSnapshot | None:
        return self.snapshot_holder.current()

    def ensure_session(self, session: SessionState) -> SessionState:
        """Initialize ``session`` against the current dataset size if needed."""
        self.session_manager.initialize(session, len(self.items))
        return session

    def search(
        self,
        query_text: str | None,
        session: SessionState | None = None,
        *,
        session_key: str | None = None,
    ) -> SearchPage:
        """Return ranked ids for ``query_text``.

        Empty queries return the session's current order (or the identity order
        without a session). ``total_found`` counts every match even though at
        most ``result_cap`` ids are ranked and returned. Log records emitted
        while serving the query carry ``session_key`` when one is given.
        """
        with session_scope(session_key):
            return self._search(query_text, session)

    def _search(self, query_text: str | None, session: SessionState | None) -> SearchPage:
        if not query_text or not query_text.strip():
            return self._unfiltered(session)

        items = self.items
        snapshot = self.snapshot_holder.current()
        try:
            with track_latency(SEARCH_LATENCY, kind="query"), create_span(
                "search.query",
                attributes={"search.query_length": len(query_text)},
            ) as span:
                trimmed = query_text.strip()
                if trimmed.isascii() and trimmed.isdigit():
                    return self._lookup_id(int(trimmed), len(items))

                matched = resolve(query_text, snapshot, trailing_prefix_min=self.settings.trailing_prefix_min)
                if matched is NO_FILTER:
                    return self._unfiltered(session)

                self.logger.info('Search "%s": %d results', query_text, len(matched))
                SEARCH_RESULTS.labels(kind="query").observe(len(matched))
                span.set_attribute("search.total_found", len(matched))
                if not matched:
                    return SearchPage.empty()

                ranked = rank(matched, query_text, dataset_lookup(items), cap=self.settings.result_cap)
                return SearchPage(ids=ranked, total_found=len(matched))
        except Exception as exc:
            self.logger.exception("Search failed for query %r", query_text)
            SEARCH_ERRORS.labels(error_type=type(exc).__name__).inc()
            return SearchPage.empty()

    def items_page(
        self,
        query_text: str | None,
        session: SessionState | None = None,
        offset: int = 0,
        limit: int | None = None,
        *,
        session_key: str | None = None,
    ) -> ItemsPage:
        """Materialize one page of items for ``query_text``."""
        result = self.search(query_text, session, session_key=session_key)
        if not result.ids:
            return ItemsPage(items=[], has_more=False, total_found=0)

        offset = max(0, offset)
        window = result.ids[offset : offset + self.settings.clamp_page_size(limit)]
        lookup = dataset_lookup(self.items)
        page_items = [item for item in (lookup(item_id) for item_id in window) if item is not None]
        return ItemsPage(
            items=page_items,
            has_more=offset + len(window) < len(result.ids),
            total_found=result.total_found,
        )

    def first_page(self, session: SessionState) -> list[Item]:
        """Items at the head of the session's current order."""
        lookup = dataset_lookup(self.items)
        head = self.session_manager.order(session)[: self.settings.page_size]
        return [item for item in (lookup(item_id) for item_id in head) if item is not None]

    def rebuild(
        self,
        items: Sequence[Item] | None = None,
        sessions: AbstractSessionStore | None = None,
    ) -> IndexSnapshot:
        """Build a fresh snapshot and publish it.

        A failed build raises and leaves the previous snapshot (and dataset)
        active. When ``sessions`` is given, every stored session drops its
        cached and pinned search orderings.
        """
        dataset = list(items) if items is not None else self.items
        snapshot = self.builder.build(dataset)

        self.items = dataset
        generation = self.snapshot_holder.publish(snapshot)
        for kind, count in snapshot.key_counts().items():
            INDEX_KEY_COUNT.labels(index=kind).set(count)
        INDEX_ITEM_COUNT.labels(snapshot="active").set(snapshot.item_count)

        invalidated = 0
        if sessions is not None:
            for session in sessions:
                self.session_manager.invalidate_search_state(session)
                invalidated += 1

        self.logger.info(
            "Published index snapshot %s (generation %d, %d items, %d sessions invalidated)",
            snapshot.snapshot_id,
            generation,
            snapshot.item_count,
            invalidated,
        )
        return snapshot

    # --- internal helpers -------------------------------------------------

    def _unfiltered(self, session: SessionState | None) -> SearchPage:
        if session is not None and session.initialized:
            order = list(session.order)
        else:
            order = list(range(1, len(self.items) + 1))
        return SearchPage(ids=order, total_found=len(order))

    def _lookup_id(self, item_id: int, total: int) -> SearchPage:
        if 1 <= item_id <= total:
            return SearchPage(ids=[item_id], total_found=1)
        return SearchPage.empty()
