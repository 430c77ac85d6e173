"""Term extraction shared by keyword derivation and query scoring."""

from __future__ import annotations

import re
from collections import Counter
from typing import Iterator, List, Pattern

_TERM_PATTERN: Pattern[str] = re.compile(r"[a-z0-9_]+")

STOPWORDS = frozenset(
    {
        "a",
        "about",
        "after",
        "all",
        "also",
        "an",
        "and",
        "any",
        "are",
        "as",
        "at",
        "be",
        "been",
        "before",
        "but",
        "by",
        "can",
        "do",
        "does",
        "each",
        "for",
        "from",
        "has",
        "have",
        "how",
        "i",
        "if",
        "in",
        "into",
        "is",
        "it",
        "its",
        "my",
        "no",
        "not",
        "of",
        "on",
        "or",
        "our",
        "should",
        "so",
        "that",
        "the",
        "their",
        "then",
        "there",
        "these",
        "this",
        "to",
        "use",
        "was",
        "we",
        "what",
        "when",
        "which",
        "will",
        "with",
        "you",
        "your",
    }
)


def iter_terms(text: str) -> Iterator[str]:
    """Yield lowercase content terms from ``text``, skipping stopwords and noise."""
    for match in _TERM_PATTERN.finditer(text.lower()):
        term = match.group(0).strip("_")
        if len(term) < 2 or term.isdigit() or term in STOPWORDS:
            continue
        yield term


def tokenize(text: str) -> List[str]:
    """Return the distinct terms of ``text`` in first-seen order."""
    seen: dict[str, None] = {}
    for term in iter_terms(text or ""):
        seen.setdefault(term, None)
    return list(seen)


def term_counts(text: str) -> Counter[str]:
    """Count term occurrences in ``text``."""
    return Counter(iter_terms(text or ""))


__all__ = ["STOPWORDS", "iter_terms", "term_counts", "tokenize"]
