"""Multi-token query resolution against an index snapshot.

Each query token gathers candidate ids from the exact index; the trailing
token additionally widens through the prefix index (so a word still being
typed matches), and tokens shorter than the n-gram size also consult the
n-gram index. Tokens are ANDed: one token without candidates empties the
whole result.
"""

from __future__ import annotations

from collections.abc import Iterable, Set
from enum import Enum
from typing import Final

from item_search.search.analyzers import tokenize
from item_search.search.snapshot import IndexSnapshot


class NoFilter(Enum):
    """Sentinel for queries that do not filter the dataset at all."""

    NO_FILTER = "no-filter"

    def __repr__(self) -> str:
        return "NO_FILTER"


NO_FILTER: Final = NoFilter.NO_FILTER

DEFAULT_TRAILING_PREFIX_MIN = 3


def intersect_smallest_first(sets: Iterable[Set[int]]) -> set[int]:
    """Intersect ``sets`` by probing the smallest set's members against the rest."""
    ordered = sorted(sets, key=len)
    if not ordered:
        return set()
    smallest, rest = ordered[0], ordered[1:]
    return {item_id for item_id in smallest if all(item_id in other for other in rest)}


def token_candidates(
    token: str,
    snapshot: IndexSnapshot,
    *,
    trailing: bool,
    trailing_prefix_min: int = DEFAULT_TRAILING_PREFIX_MIN,
) -> set[int]:
    """Union of every index entry that ``token`` may match."""
    sources: list[Set[int]] = []

    exact = snapshot.exact.get(token)
    if exact:
        sources.append(exact)

    if trailing:
        longest = min(len(token), snapshot.prefix_max)
        for length in range(min(len(token), trailing_prefix_min), longest + 1):
            prefixed = snapshot.prefix.get(token[:length])
            if prefixed:
                sources.append(prefixed)

    if len(token) < snapshot.ngram_size:
        grams = snapshot.ngram.get(token)
        if grams:
            sources.append(grams)

    candidates: set[int] = set()
    for source in sources:
        candidates.update(source)
    return candidates


def resolve(
    query: str | None,
    snapshot: IndexSnapshot | None,
    *,
    trailing_prefix_min: int = DEFAULT_TRAILING_PREFIX_MIN,
) -> set[int] | NoFilter:
    """Return the ids matching every token of ``query``.

    Returns :data:`NO_FILTER` for empty or whitespace-only queries and an empty
    set when the snapshot is missing, the query has no tokens, or any token has
    no candidates.
    """
    if not query or not query.strip():
        return NO_FILTER
    if snapshot is None:
        return set()

    tokens = tokenize(query)
    if not tokens:
        return set()

    per_token: list[set[int]] = []
    last = len(tokens) - 1
    for position, token in enumerate(tokens):
        candidates = token_candidates(
            token,
            snapshot,
            trailing=position == last,
            trailing_prefix_min=trailing_prefix_min,
        )
        if not candidates:
            return set()
        per_token.append(candidates)

    return intersect_smallest_first(per_token)
