"""Immutable collection of migration guides loaded once at startup."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Protocol, Sequence, Tuple

from pydantic import ValidationError

from ..config import config_section, resolve_path
from ..errors import CorpusLoadError
from .schema import GuideCategory, GuideDocument, RawGuide
from .terms import term_counts, tokenize

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_KEYWORDS = 40

KNOWN_GUIDES: Dict[str, GuideCategory] = {
    "migration-guide": GuideCategory.BASIC,
    "state-and-providers-guide": GuideCategory.STATE,
    "prompt-and-generation-guide": GuideCategory.GENERATION,
    "advanced-migration-guide": GuideCategory.ADVANCED,
    "testing-guide": GuideCategory.TESTING,
    "completion-requirements": GuideCategory.COMPLETION,
}

CATEGORY_KEYWORDS: Dict[GuideCategory, Tuple[str, ...]] = {
    GuideCategory.BASIC: ("migration", "import", "imports", "package", "dependency", "plugin", "types"),
    GuideCategory.STATE: ("state", "provider", "providers", "composestate", "context", "memory", "runtime"),
    GuideCategory.GENERATION: ("prompt", "template", "templates", "generation", "generate", "model"),
    GuideCategory.ADVANCED: ("service", "services", "settings", "evaluator", "evaluators", "action", "actions"),
    GuideCategory.TESTING: ("test", "tests", "testing", "coverage", "mock", "mocks"),
    GuideCategory.COMPLETION: ("release", "workflow", "publish", "validation", "complete", "final"),
    GuideCategory.OTHER: (),
}


class GuideSource(Protocol):
    """Anything able to produce the raw guide records of a corpus."""

    def load_all(self) -> Sequence[RawGuide]:
        ...


def category_for(name: str) -> GuideCategory:
    """Resolve the category of a guide from its name."""
    return KNOWN_GUIDES.get(name, GuideCategory.OTHER)


def derive_keywords(raw: RawGuide, *, max_keywords: int = DEFAULT_MAX_KEYWORDS) -> Tuple[str, ...]:
    """Build the ordered keyword tuple of a guide.

    Order: category seed keywords, name terms, the category value, then the
    most frequent content terms (count descending, first occurrence first).
    """
    ordered: dict[str, None] = {}
    for keyword in CATEGORY_KEYWORDS.get(raw.category, ()):
        ordered.setdefault(keyword, None)
    for term in tokenize(raw.name):
        ordered.setdefault(term, None)
    ordered.setdefault(raw.category.value, None)

    counts = term_counts(raw.content)
    first_seen = {term: position for position, term in enumerate(counts)}
    ranked = sorted(counts, key=lambda term: (-counts[term], first_seen[term]))
    for term in ranked[: max(max_keywords, 0)]:
        ordered.setdefault(term, None)
    return tuple(ordered)


class FileGuideSource:
    """Load markdown guides from a directory on disk."""

    def __init__(
        self,
        root: Path | str,
        *,
        required: Sequence[str] = (),
        pattern: str = "*.md",
    ) -> None:
        self._root = Path(root)
        self._required = tuple(name for name in required if name)
        self._pattern = pattern

    @property
    def root(self) -> Path:
        return self._root

    @classmethod
    def from_config(cls, config: Mapping[str, Any], base: Path | None = None) -> FileGuideSource:
        """Instantiate a source from the ``guides`` configuration section."""
        guides_cfg = config_section(config, "guides")
        path_value = guides_cfg.get("path")
        if not isinstance(path_value, str) or not path_value.strip():
            path_value = "migration-guides"
        required_raw = guides_cfg.get("required")
        required: List[str] = []
        if isinstance(required_raw, str):
            required = [required_raw.strip()]
        elif isinstance(required_raw, Sequence):
            required = [item.strip() for item in required_raw if isinstance(item, str) and item.strip()]
        return cls(resolve_path(config, path_value.strip(), base), required=required)

    def load_all(self) -> List[RawGuide]:
        if not self._root.is_dir():
            raise CorpusLoadError(f"Guide directory not found: {self._root}")

        guides: List[RawGuide] = []
        for path in sorted(self._root.glob(self._pattern)):
            if not path.is_file():
                continue
            try:
                content = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as error:
                raise CorpusLoadError(f"Guide {path.name} is unreadable: {error}") from error
            name = path.stem
            guides.append(
                RawGuide(
                    name=name,
                    path=path.as_posix(),
                    category=category_for(name),
                    content=content,
                )
            )

        present = {guide.name for guide in guides}
        missing = [name for name in self._required if name not in present]
        if missing:
            raise CorpusLoadError(f"Required guide(s) missing from {self._root}: {', '.join(missing)}")
        return guides


class GuideCorpus:
    """Ordered, read-only set of guides keyed by unique name."""

    def __init__(self, documents: Sequence[GuideDocument]) -> None:
        self._documents: Tuple[GuideDocument, ...] = tuple(documents)
        self._by_name: Dict[str, GuideDocument] = {}
        for document in self._documents:
            if document.name in self._by_name:
                raise CorpusLoadError(f"Duplicate guide name: {document.name}")
            self._by_name[document.name] = document

    @classmethod
    def load(cls, source: GuideSource, *, max_keywords: int = DEFAULT_MAX_KEYWORDS) -> GuideCorpus:
        """Load every guide from ``source``; refuse to build a partial or empty corpus."""
        try:
            raw_guides = list(source.load_all())
        except CorpusLoadError:
            raise
        except Exception as error:
            raise CorpusLoadError(f"Failed to load guides: {error}") from error

        if not raw_guides:
            raise CorpusLoadError("Cannot initialize migration system without guide access: no guides found.")

        documents: List[GuideDocument] = []
        for raw in raw_guides:
            if not isinstance(raw, RawGuide):
                try:
                    raw = RawGuide.model_validate(raw)
                except ValidationError as error:
                    raise CorpusLoadError(f"Invalid guide record: {error}") from error
            documents.append(
                GuideDocument(
                    name=raw.name,
                    path=raw.path,
                    category=raw.category,
                    content=raw.content,
                    keywords=derive_keywords(raw, max_keywords=max_keywords),
                )
            )

        corpus = cls(documents)
        LOGGER.debug("Loaded %d guide(s): %s", len(corpus), ", ".join(corpus.names()))
        return corpus

    @classmethod
    def from_config(cls, config: Mapping[str, Any], base: Path | None = None) -> GuideCorpus:
        """Load the corpus described by the ``guides`` configuration section."""
        guides_cfg = config_section(config, "guides")
        max_keywords = guides_cfg.get("max_keywords")
        if not isinstance(max_keywords, int) or max_keywords < 0:
            max_keywords = DEFAULT_MAX_KEYWORDS
        return cls.load(FileGuideSource.from_config(config, base), max_keywords=max_keywords)

    def get_all(self) -> Tuple[GuideDocument, ...]:
        return self._documents

    def get_by_category(self, category: GuideCategory | str) -> List[GuideDocument]:
        """Return the guides of ``category`` in load order."""
        wanted = GuideCategory(category)
        return [document for document in self._documents if document.category is wanted]

    def get(self, name: str) -> Optional[GuideDocument]:
        return self._by_name.get(name)

    def names(self) -> List[str]:
        return [document.name for document in self._documents]

    def __len__(self) -> int:
        return len(self._documents)

    def __iter__(self) -> Iterator[GuideDocument]:
        return iter(self._documents)


__all__ = [
    "CATEGORY_KEYWORDS",
    "DEFAULT_MAX_KEYWORDS",
    "FileGuideSource",
    "GuideCorpus",
    "GuideSource",
    "KNOWN_GUIDES",
    "category_for",
    "derive_keywords",
]
