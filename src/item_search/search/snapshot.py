"""Immutable index snapshots and the holder that publishes them."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
import threading
from types import MappingProxyType
from uuid import uuid4


_EMPTY: Mapping[str, frozenset[int]] = MappingProxyType({})


@dataclass(frozen=True, slots=True)
class IndexBuildStats:
    """Outcome of an index build run."""

    items: int = 0
    batches: int = 0
    exact_keys: int = 0
    prefix_keys: int = 0
    ngram_keys: int = 0
    elapsed_seconds: float = 0.0
    rss_delta_bytes: int | None = None

    def to_dict(self) -> dict[str, float | int | None]:
        return {
            "items": self.items,
            "batches": self.batches,
            "exact_keys": self.exact_keys,
            "prefix_keys": self.prefix_keys,
            "ngram_keys": self.ngram_keys,
            "elapsed_seconds": round(self.elapsed_seconds, 4),
            "rss_delta_bytes": self.rss_delta_bytes,
        }


@dataclass(frozen=True, slots=True)
class IndexSnapshot:
    """The three read-only indexes built from one dataset.

    ``exact`` maps whole tokens, ``prefix`` maps token prefixes up to
    ``prefix_max`` characters and ``ngram`` maps ``ngram_size``-character
    substrings (or whole tokens shorter than that) to the ids containing them.
    """

    exact: Mapping[str, frozenset[int]] = field(default_factory=lambda: _EMPTY)
    prefix: Mapping[str, frozenset[int]] = field(default_factory=lambda: _EMPTY)
    ngram: Mapping[str, frozenset[int]] = field(default_factory=lambda: _EMPTY)
    prefix_max: int = 6
    ngram_size: int = 3
    item_count: int = 0
    stats: IndexBuildStats = field(default_factory=IndexBuildStats)
    snapshot_id: str = field(default_factory=lambda: uuid4().hex)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_sets(
        cls,
        exact: Mapping[str, set[int]],
        prefix: Mapping[str, set[int]],
        ngram: Mapping[str, set[int]],
        **kwargs,
    ) -> IndexSnapshot:
        """Freeze mutable merge output into a snapshot."""
        return cls(
            exact=_freeze(exact),
            prefix=_freeze(prefix),
            ngram=_freeze(ngram),
            **kwargs,
        )

    @classmethod
    def empty(cls, *, prefix_max: int = 6, ngram_size: int = 3) -> IndexSnapshot:
        return cls(prefix_max=prefix_max, ngram_size=ngram_size)

    def key_counts(self) -> dict[str, int]:
        return {"exact": len(self.exact), "prefix": len(self.prefix), "ngram": len(self.ngram)}


def _freeze(mapping: Mapping[str, set[int]]) -> Mapping[str, frozenset[int]]:
    return MappingProxyType({key: frozenset(ids) for key, ids in mapping.items()})


class SnapshotHolder:
    """Holds the active snapshot; publication is a single reference swap.

    Readers call :meth:`current` without locking and keep using whatever
    snapshot they obtained, even if a rebuild publishes a newer one meanwhile.
    """

    def __init__(self, snapshot: IndexSnapshot | None = None) -> None:
        self._snapshot = snapshot
        self._generation = 0 if snapshot is None else 1
        self._publish_lock = threading.Lock()

    @property
    def generation(self) -> int:
        return self._generation

    def current(self) -> IndexSnapshot | None:
        return self._snapshot

    def publish(self, snapshot: IndexSnapshot) -> int:
        """Make ``snapshot`` the active one and return the new generation."""
        with self._publish_lock:
            self._snapshot = snapshot
            self._generation += 1
            return self._generation
