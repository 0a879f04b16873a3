"""Heuristic relevance scoring for matched items."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence

from item_search.domain.model import Item
from item_search.search.analyzers import tokenize


# Bonus when the whole lower-cased query occurs inside a field
PHRASE_WEIGHTS: dict[str, float] = {"name": 100.0, "address": 50.0, "description": 30.0, "city": 40.0}
# Bonus per query token found among a field's tokens
WORD_WEIGHTS: dict[str, float] = {"name": 5.0, "address": 3.0, "description": 2.0, "city": 3.0}
POSITION_BASE = 10.0
EXTRA_WORD_PENALTY = 0.5
ALL_TOKENS_BONUS = 20.0

FIELDS: tuple[str, ...] = ("name", "address", "description", "city")


def score(item: Item | None, query: str | None) -> float:
    """Score ``item`` against ``query``; always ``>= 0``.

    Phrase containment, word-order alignment with the name, per-field word hits
    and full token coverage add to the score. Multi-token queries pay a small
    penalty for every field token beyond the query length.
    """
    if item is None:
        return 0.0

    phrase = (query or "").lower()
    query_tokens = tokenize(phrase)
    texts = {name: (getattr(item, name, "") or "").lower() for name in FIELDS}
    field_tokens = {name: tokenize(text) for name, text in texts.items()}

    relevance = 0.0
    for name in FIELDS:
        if phrase in texts[name]:
            relevance += PHRASE_WEIGHTS[name]

    name_tokens = field_tokens["name"]
    field_sets = {name: set(tokens) for name, tokens in field_tokens.items()}
    for position, token in enumerate(query_tokens):
        if position < len(name_tokens) and name_tokens[position] == token:
            relevance += POSITION_BASE - position
        for name in FIELDS:
            if token in field_sets[name]:
                relevance += WORD_WEIGHTS[name]

    total_field_tokens = sum(len(tokens) for tokens in field_tokens.values())
    if len(query_tokens) > 1:
        relevance -= EXTRA_WORD_PENALTY * max(0, total_field_tokens - len(query_tokens))

    all_tokens = set().union(*field_sets.values())
    if all(token in all_tokens for token in query_tokens):
        relevance += ALL_TOKENS_BONUS

    return max(0.0, relevance)


def rank(
    matched: Iterable[int],
    query: str,
    lookup: Callable[[int], Item | None],
    *,
    cap: int = 1000,
) -> list[int]:
    """Score the first ``cap`` matched ids and order them by descending score.

    Ids that ``lookup`` cannot resolve are dropped. Ties keep ascending id
    order so the output is deterministic regardless of set iteration order.
    """
    capped: list[int] = []
    for item_id in matched:
        if len(capped) >= cap:
            break
        capped.append(item_id)

    scored: list[tuple[float, int]] = []
    for item_id in capped:
        item = lookup(item_id)
        if item is None:
            continue
        scored.append((score(item, query), item_id))

    scored.sort(key=lambda pair: (-pair[0], pair[1]))
    return [item_id for _, item_id in scored]


def dataset_lookup(items: Sequence[Item]) -> Callable[[int], Item | None]:
    """Resolve ids by position (``id - 1``) in a dense dataset."""

    def lookup(item_id: int) -> Item | None:
        if 1 <= item_id <= len(items):
            return items[item_id - 1]
        return None

    return lookup
