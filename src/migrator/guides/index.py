"""Keyword relevance scoring over the guide corpus."""

from __future__ import annotations

import math
from dataclasses import dataclass
from collections import Counter
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple

from .corpus import GuideCorpus
from .schema import GuideDocument, RelevanceResult
from .terms import term_counts, tokenize

NAME_BOOST = 2.0
CATEGORY_BOOST = 1.0


@dataclass(frozen=True, slots=True)
class _IndexedGuide:
    """Precomputed lookup tables for one guide."""

    document: GuideDocument
    keywords: FrozenSet[str]
    name_terms: FrozenSet[str]
    frequencies: Counter[str]


class RelevanceIndex:
    """Score guides against free-text queries.

    The index is built once from a corpus and never changes afterwards, so it
    can be queried concurrently with a running session.
    """

    def __init__(self, corpus: GuideCorpus) -> None:
        self._corpus = corpus
        self._entries: Tuple[_IndexedGuide, ...] = tuple(
            _IndexedGuide(
                document=document,
                keywords=frozenset(document.keywords),
                name_terms=frozenset(tokenize(document.name)),
                frequencies=term_counts(document.content),
            )
            for document in corpus.get_all()
        )

    @property
    def corpus(self) -> GuideCorpus:
        return self._corpus

    def search(self, query: str, limit: int = 3) -> List[RelevanceResult]:
        """Return at most ``limit`` guides matching ``query``, best first."""
        if limit <= 0:
            raise ValueError("limit must be a positive integer")
        return self._rank(tokenize(query or ""))[:limit]

    def find_relevant_for_issue(self, issue: str, limit: Optional[int] = None) -> List[RelevanceResult]:
        """Score every guide against a free-form issue description.

        An empty or unmatched description yields an empty list.
        """
        results = self._rank(tokenize(issue or ""))
        if limit is not None and limit > 0:
            return results[:limit]
        return results

    def score(self, document_name: str, query: str) -> float:
        """Return the relevance score of a single guide, 0.0 when absent or unmatched."""
        terms = tokenize(query or "")
        for entry in self._entries:
            if entry.document.name == document_name:
                return self._score_entry(entry, terms)[0]
        return 0.0

    def _rank(self, terms: Sequence[str]) -> List[RelevanceResult]:
        if not terms:
            return []
        results: List[RelevanceResult] = []
        for entry in self._entries:
            score, matched = self._score_entry(entry, terms)
            if score > 0.0:
                results.append(
                    RelevanceResult(
                        document=entry.document,
                        relevance_score=score,
                        matched_keywords=matched,
                    )
                )
        # sorted() is stable, so equal scores keep corpus load order.
        return sorted(results, key=lambda result: result.relevance_score, reverse=True)

    @staticmethod
    def _score_entry(entry: _IndexedGuide, terms: Sequence[str]) -> Tuple[float, Tuple[str, ...]]:
        score = 0.0
        matched: Dict[str, None] = {}
        category = entry.document.category.value
        for term in terms:
            if term not in entry.keywords:
                continue
            matched.setdefault(term, None)
            score += 1.0 + math.log1p(entry.frequencies.get(term, 0))
            if term in entry.name_terms:
                score += NAME_BOOST
            if term == category:
                score += CATEGORY_BOOST
        return score, tuple(matched)


__all__ = ["CATEGORY_BOOST", "NAME_BOOST", "RelevanceIndex"]
