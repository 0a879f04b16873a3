"""Tokenizer utilities shared by the index builder, resolver and ranker.

The analyzer keeps Whoosh's tokenizer shape: a regex tokenizer emits
positioned tokens over lower-cased text. Tokens are maximal runs of Unicode
letters and digits; everything else (punctuation, whitespace, underscores)
separates tokens and never appears in them.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
import re
from typing import Any


TOKEN_PATTERN = r"[^\W_]+"


@dataclass(frozen=True, slots=True)
class Token:
    """Represents a token emitted by analyzers."""

    text: str
    position: int
    start_char: int
    end_char: int


class RegexTokenizer:
    """Regex-based tokenizer that yields word tokens."""

    def __init__(self, pattern: str = TOKEN_PATTERN, flags: int = re.UNICODE) -> None:
        self.pattern = re.compile(pattern, flags)

    def __call__(self, text: str) -> Iterator[Token]:
        for position, match in enumerate(self.pattern.finditer(text)):
            yield Token(
                text=match.group(0),
                position=position,
                start_char=match.start(),
                end_char=match.end(),
            )


class LowercaseAnalyzer:
    """Lowercase the input, then tokenize it."""

    def __init__(self, tokenizer: RegexTokenizer | None = None) -> None:
        self.tokenizer = tokenizer or RegexTokenizer()

    def __call__(self, text: Any) -> list[Token]:
        if not text:
            return []
        return list(self.tokenizer(str(text).lower()))

    def terms(self, text: Any) -> list[str]:
        return [token.text for token in self(text)]


DEFAULT_ANALYZER = LowercaseAnalyzer()


def tokenize(text: Any) -> list[str]:
    """Return the lowercase alphanumeric tokens of ``text``.

    Total over its input: ``None``, empty strings and punctuation-only text all
    yield an empty list.
    """
    return DEFAULT_ANALYZER.terms(text)
