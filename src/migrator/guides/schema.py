"""Typed records describing migration guides and retrieval hits."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field


class GuideCategory(str, Enum):
    """Topic buckets a migration guide can belong to."""

    BASIC = "basic"
    STATE = "state"
    GENERATION = "generation"
    ADVANCED = "advanced"
    TESTING = "testing"
    COMPLETION = "completion"
    OTHER = "other"


class RecordModel(BaseModel):
    """Base Pydantic model with strict, immutable field handling."""

    model_config = ConfigDict(extra="forbid", frozen=True)


class RawGuide(RecordModel):
    """Guide payload as produced by a guide source, before keyword derivation."""

    name: str = Field(min_length=1)
    path: str
    category: GuideCategory = GuideCategory.OTHER
    content: str


class GuideDocument(RecordModel):
    """Single guide held by the corpus."""

    name: str = Field(min_length=1)
    path: str
    category: GuideCategory
    content: str
    keywords: Tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class RelevanceResult:
    """Scored match of one guide against a query."""

    document: GuideDocument
    relevance_score: float
    matched_keywords: Tuple[str, ...] = ()


__all__ = ["GuideCategory", "GuideDocument", "RawGuide", "RecordModel", "RelevanceResult"]
