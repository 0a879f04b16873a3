"""Disk staging for partial indexes produced by the batched index builder.

Each build run owns a private namespace directory (``build-<run id>``) under
the staging root, so two builds never touch each other's artifacts. A staged
segment is a minified JSON list of ``[key, [ids...]]`` pairs for one index
kind and one batch; segments are written atomically (temp file + replace) and
read back in batch order during the merge.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
import logging
from pathlib import Path
import tempfile
import threading
from typing import Any
from uuid import uuid4

import orjson

from item_search.errors import StorageError


logger = logging.getLogger(__name__)

INDEX_KINDS: tuple[str, ...] = ("exact", "prefix", "ngram")


class SegmentStagingStore:
    """Key-addressable staging area scoped to one build run."""

    SEGMENT_SUFFIX = ".json"

    def __init__(self, root: str | Path | None = None, *, run_id: str | None = None) -> None:
        self.root = Path(root) if root is not None else Path(tempfile.gettempdir())
        self.run_id = run_id or uuid4().hex
        self.directory = self.root / f"build-{self.run_id}"
        self._segments: dict[str, dict[int, Path]] = {kind: {} for kind in INDEX_KINDS}
        self._lock = threading.Lock()
        try:
            self.directory.mkdir(parents=True, exist_ok=False)
        except OSError as exc:
            raise StorageError(f"Cannot create staging directory {self.directory}: {exc}") from exc

    def __enter__(self) -> SegmentStagingStore:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.cleanup()

    def write(self, kind: str, batch_number: int, mapping: Mapping[str, Iterable[int]]) -> Path:
        """Persist one batch-local map and return the staged path."""
        self._check_kind(kind)
        path = self.directory / f"{kind}_{batch_number:08d}{self.SEGMENT_SUFFIX}"
        payload = [[key, sorted(ids)] for key, ids in mapping.items()]
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            tmp_path.write_bytes(orjson.dumps(payload))
            tmp_path.replace(path)
        except OSError as exc:
            raise StorageError(f"Failed to stage {kind} segment {batch_number}: {exc}") from exc
        with self._lock:
            self._segments[kind][batch_number] = path
        return path

    def segment_paths(self, kind: str) -> list[Path]:
        """Return staged paths for ``kind`` in batch order."""
        self._check_kind(kind)
        with self._lock:
            staged = dict(self._segments[kind])
        return [staged[batch_number] for batch_number in sorted(staged)]

    def iter_segments(self, kind: str) -> Iterator[list[tuple[str, list[int]]]]:
        """Yield the decoded ``(key, ids)`` pairs of every staged segment for ``kind``."""
        for path in self.segment_paths(kind):
            yield self._read(path)

    def cleanup(self) -> None:
        """Delete every staged artifact and the namespace directory."""
        if not self.directory.exists():
            return
        try:
            for candidate in self.directory.iterdir():
                candidate.unlink()
            self.directory.rmdir()
        except OSError as exc:
            raise StorageError(f"Failed to remove staging directory {self.directory}: {exc}") from exc
        with self._lock:
            for staged in self._segments.values():
                staged.clear()
        logger.debug("Removed staging directory %s", self.directory)

    def _read(self, path: Path) -> list[tuple[str, list[int]]]:
        try:
            data: Any = orjson.loads(path.read_bytes())
        except OSError as exc:
            raise StorageError(f"Failed to read staged segment {path}: {exc}") from exc
        except orjson.JSONDecodeError as exc:
            raise StorageError(f"Corrupt staged segment {path}: {exc}") from exc
        if not isinstance(data, list):
            raise StorageError(f"Corrupt staged segment {path}: expected a list of pairs")
        try:
            return [(str(key), [int(item_id) for item_id in ids]) for key, ids in data]
        except (TypeError, ValueError) as exc:
            raise StorageError(f"Corrupt staged segment {path}: {exc}") from exc

    @staticmethod
    def _check_kind(kind: str) -> None:
        if kind not in INDEX_KINDS:
            raise ValueError(f"Unknown index kind: {kind}")
