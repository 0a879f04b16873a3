"""Batched, disk-staged construction of the exact/prefix/n-gram indexes.

The builder walks the dataset in contiguous batches. Every batch is indexed
into three small local maps, the maps are spilled to the staging store and
dropped before the next batch starts, so peak memory tracks the batch size
rather than the dataset. Once every batch is staged, the segments are merged
into the final maps and frozen into an :class:`IndexSnapshot`.

A failed build never yields a snapshot: staging errors surface as
:class:`~item_search.errors.StorageError` and the caller keeps serving
whatever snapshot it already had.
"""

from __future__ import annotations

from collections import defaultdict, deque
from collections.abc import Iterator, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
import logging
from pathlib import Path
import time

import psutil

from item_search.config import EngineSettings
from item_search.domain.model import Item
from item_search.observability import INDEX_BUILD_LATENCY, create_span
from item_search.search.analyzers import tokenize
from item_search.search.snapshot import IndexBuildStats, IndexSnapshot
from item_search.search.staging import INDEX_KINDS, SegmentStagingStore


logger = logging.getLogger(__name__)


def token_prefixes(token: str, prefix_max: int) -> list[str]:
    """Prefixes of ``token`` of length 1..min(len(token), prefix_max)."""
    return [token[:length] for length in range(1, min(len(token), prefix_max) + 1)]


def token_ngrams(token: str, ngram_size: int) -> list[str]:
    """Contiguous ``ngram_size`` substrings, or the token itself when shorter."""
    if len(token) < ngram_size:
        return [token]
    return [token[start : start + ngram_size] for start in range(len(token) - ngram_size + 1)]


def index_keys(token: str, prefix_max: int, ngram_size: int) -> dict[str, list[str]]:
    """Keys under which ``token`` is filed in each index kind."""
    return {
        "exact": [token],
        "prefix": token_prefixes(token, prefix_max),
        "ngram": token_ngrams(token, ngram_size),
    }


@dataclass
class BatchIndexes:
    """Local token/prefix/n-gram maps for a single batch."""

    prefix_max: int
    ngram_size: int
    exact: defaultdict[str, set[int]] = field(default_factory=lambda: defaultdict(set))
    prefix: defaultdict[str, set[int]] = field(default_factory=lambda: defaultdict(set))
    ngram: defaultdict[str, set[int]] = field(default_factory=lambda: defaultdict(set))

    def add_item(self, item: Item) -> None:
        maps = self.by_kind()
        for token in set(tokenize(item.search_text())):
            for kind, keys in index_keys(token, self.prefix_max, self.ngram_size).items():
                postings = maps[kind]
                for key in keys:
                    postings[key].add(item.id)

    def by_kind(self) -> dict[str, defaultdict[str, set[int]]]:
        return {"exact": self.exact, "prefix": self.prefix, "ngram": self.ngram}


class IndexBuilder:
    """Build :class:`IndexSnapshot` instances from an item sequence.

    Args:
        settings: Engine settings supplying defaults for batch size, prefix
            length, n-gram size, progress cadence and worker count.
        logger: Logger receiving progress and summary telemetry. Defaults to
            this module's logger.
        staging_root: Base directory for per-build staging namespaces.
    """

    def __init__(
        self,
        settings: EngineSettings | None = None,
        *,
        logger: logging.Logger | None = None,
        staging_root: str | Path | None = None,
    ) -> None:
        self.settings = settings or EngineSettings()
        self.logger = logger or logging.getLogger(__name__)
        self.staging_root = staging_root if staging_root is not None else self.settings.staging_dir

    def build(
        self,
        items: Sequence[Item],
        batch_size: int | None = None,
        prefix_max: int | None = None,
        ngram_size: int | None = None,
    ) -> IndexSnapshot:
        if batch_size is None:
            batch_size = self.settings.batch_size
        if prefix_max is None:
            prefix_max = self.settings.prefix_max
        if ngram_size is None:
            ngram_size = self.settings.ngram_size
        if min(batch_size, prefix_max, ngram_size) < 1:
            raise ValueError("batch_size, prefix_max and ngram_size must be positive")

        total = len(items)
        self.logger.info(
            "Building indexes for %d items (batch_size=%d, prefix_max=%d, ngram=%d)",
            total,
            batch_size,
            prefix_max,
            ngram_size,
        )
        started = time.perf_counter()
        rss_before = self._sample_rss()

        with create_span(
            "index.build",
            attributes={"index.items": total, "index.batch_size": batch_size},
        ) as span:
            store = SegmentStagingStore(self.staging_root)
            try:
                batches = self._stage_batches(store, items, batch_size, prefix_max, ngram_size)
                merged = {kind: self._merge_kind(store, kind) for kind in INDEX_KINDS}
                store.cleanup()
            except BaseException:
                INDEX_BUILD_LATENCY.labels(outcome="failed").observe(time.perf_counter() - started)
                self._discard(store)
                raise

            elapsed = time.perf_counter() - started
            rss_after = self._sample_rss()
            stats = IndexBuildStats(
                items=total,
                batches=batches,
                exact_keys=len(merged["exact"]),
                prefix_keys=len(merged["prefix"]),
                ngram_keys=len(merged["ngram"]),
                elapsed_seconds=elapsed,
                rss_delta_bytes=rss_after - rss_before if rss_before is not None and rss_after is not None else None,
            )
            snapshot = IndexSnapshot.from_sets(
                merged["exact"],
                merged["prefix"],
                merged["ngram"],
                prefix_max=prefix_max,
                ngram_size=ngram_size,
                item_count=total,
                stats=stats,
            )
            span.set_attribute("index.exact_keys", stats.exact_keys)
            span.set_attribute("index.prefix_keys", stats.prefix_keys)
            span.set_attribute("index.ngram_keys", stats.ngram_keys)

        INDEX_BUILD_LATENCY.labels(outcome="success").observe(elapsed)
        self.logger.info(
            "Indexing completed in %.2fms: %d tokens, %d prefixes, %d n-grams",
            elapsed * 1000,
            stats.exact_keys,
            stats.prefix_keys,
            stats.ngram_keys,
            extra={"build_stats": stats.to_dict()},
        )
        return snapshot

    # --- internal helpers -------------------------------------------------

    def _stage_batches(
        self,
        store: SegmentStagingStore,
        items: Sequence[Item],
        batch_size: int,
        prefix_max: int,
        ngram_size: int,
    ) -> int:
        total = len(items)
        processed = 0
        batches = 0

        def stage(batch_number: int, batch: Sequence[Item]) -> int:
            local = BatchIndexes(prefix_max=prefix_max, ngram_size=ngram_size)
            for item in batch:
                local.add_item(item)
            for kind, mapping in local.by_kind().items():
                store.write(kind, batch_number, mapping)
            return len(batch)

        workers = self.settings.build_workers
        if workers <= 1:
            for batch_number, batch in _iter_batches(items, batch_size):
                count = stage(batch_number, batch)
                batches += 1
                processed = self._advance(processed, count, total)
            return batches

        # Bounded submission window keeps at most 2 * workers batches in flight.
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="index-batch") as executor:
            pending: deque[Future[int]] = deque()
            for batch_number, batch in _iter_batches(items, batch_size):
                pending.append(executor.submit(stage, batch_number, batch))
                if len(pending) >= workers * 2:
                    processed = self._advance(processed, pending.popleft().result(), total)
                    batches += 1
            while pending:
                processed = self._advance(processed, pending.popleft().result(), total)
                batches += 1
        return batches

    def _merge_kind(self, store: SegmentStagingStore, kind: str) -> dict[str, set[int]]:
        merged: dict[str, set[int]] = {}
        for pairs in store.iter_segments(kind):
            for key, ids in pairs:
                existing = merged.get(key)
                if existing is None:
                    merged[key] = set(ids)
                else:
                    existing.update(ids)
        return merged

    def _advance(self, processed: int, count: int, total: int) -> int:
        updated = processed + count
        every = self.settings.progress_every
        if updated // every > processed // every:
            self._report_progress(updated, total)
        return updated

    def _report_progress(self, processed: int, total: int) -> None:
        # Telemetry is best-effort; a failing RSS sample or handler must not abort the build.
        try:
            rss = self._sample_rss()
            self.logger.info("Processed %d/%d items", processed, total)
            if rss is not None:
                self.logger.info("Memory usage: %dMB", rss // (1024 * 1024))
        except Exception as exc:
            logger.debug("Progress telemetry failed: %s", exc)

    def _sample_rss(self) -> int | None:
        try:
            return int(psutil.Process().memory_info().rss)
        except (psutil.Error, OSError) as exc:
            logger.debug("RSS sample unavailable: %s", exc)
            return None

    def _discard(self, store: SegmentStagingStore) -> None:
        try:
            store.cleanup()
        except OSError as exc:
            self.logger.warning("Could not clean up staging directory %s: %s", store.directory, exc)


def _iter_batches(items: Sequence[Item], batch_size: int) -> Iterator[tuple[int, Sequence[Item]]]:
    for batch_number, start in enumerate(range(0, len(items), batch_size)):
        yield batch_number, items[start : start + batch_size]
