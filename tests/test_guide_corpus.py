from __future__ import annotations

import textwrap
from pathlib import Path

import pytest
from pydantic import ValidationError

from conftest import StaticGuideSource, raw_guide, write_guides
from migrator.config import load_config
from migrator.errors import CorpusLoadError
from migrator.guides.corpus import FileGuideSource, GuideCorpus, derive_keywords
from migrator.guides.schema import GuideCategory


def test_file_source_loads_every_guide_in_filename_order(guides_dir) -> None:
    corpus = GuideCorpus.load(FileGuideSource(guides_dir.root))

    assert corpus.names() == guides_dir.names
    assert len(corpus) == 6
    state = corpus.get("state-and-providers-guide")
    assert state is not None
    assert state.category is GuideCategory.STATE
    assert state.path.endswith("state-and-providers-guide.md")
    assert "composeState" in state.content


def test_known_guides_map_to_categories(corpus: GuideCorpus) -> None:
    categories = {document.name: document.category for document in corpus}
    assert categories == {
        "advanced-migration-guide": GuideCategory.ADVANCED,
        "completion-requirements": GuideCategory.COMPLETION,
        "migration-guide": GuideCategory.BASIC,
        "prompt-and-generation-guide": GuideCategory.GENERATION,
        "state-and-providers-guide": GuideCategory.STATE,
        "testing-guide": GuideCategory.TESTING,
    }


def test_unknown_guide_files_fall_back_to_other(tmp_path: Path) -> None:
    fixture = write_guides(tmp_path / "guides", {"integrated-migration-loop.md": "Gate loop notes."})
    corpus = GuideCorpus.load(FileGuideSource(fixture.root))

    assert corpus.get_all()[0].category is GuideCategory.OTHER


def test_keywords_include_seeds_name_terms_and_frequent_content(corpus: GuideCorpus) -> None:
    state = corpus.get("state-and-providers-guide")
    assert state is not None
    keywords = state.keywords

    assert keywords[:2] == ("state", "provider")
    assert "guide" in keywords
    assert "composestate" in keywords
    assert len(keywords) == len(set(keywords))


def test_derive_keywords_ranks_content_by_frequency_then_position() -> None:
    raw = raw_guide("notes", "beta alpha beta gamma alpha beta")
    keywords = derive_keywords(raw, max_keywords=2)

    assert keywords == ("notes", "other", "beta", "alpha")


def test_get_by_category_keeps_load_order() -> None:
    source = StaticGuideSource(
        [
            raw_guide("second", "b", GuideCategory.TESTING),
            raw_guide("first", "a", GuideCategory.BASIC),
            raw_guide("third", "c", GuideCategory.TESTING),
        ]
    )
    corpus = GuideCorpus.load(source)

    assert [document.name for document in corpus.get_by_category("testing")] == ["second", "third"]
    assert [document.name for document in corpus.get_by_category(GuideCategory.BASIC)] == ["first"]
    assert corpus.get_by_category(GuideCategory.STATE) == []


def test_empty_source_is_rejected() -> None:
    with pytest.raises(CorpusLoadError):
        GuideCorpus.load(StaticGuideSource([]))


def test_single_guide_is_enough() -> None:
    corpus = GuideCorpus.load(StaticGuideSource([raw_guide("only", "content")]))
    assert corpus.names() == ["only"]


def test_empty_directory_is_rejected(tmp_path: Path) -> None:
    (tmp_path / "guides").mkdir()
    with pytest.raises(CorpusLoadError):
        GuideCorpus.load(FileGuideSource(tmp_path / "guides"))


def test_missing_directory_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(CorpusLoadError, match="not found"):
        GuideCorpus.load(FileGuideSource(tmp_path / "absent"))


def test_missing_required_guide_is_rejected(guides_dir) -> None:
    source = FileGuideSource(guides_dir.root, required=["migration-guide", "integrated-migration-loop"])
    with pytest.raises(CorpusLoadError, match="integrated-migration-loop"):
        GuideCorpus.load(source)


def test_unreadable_guide_is_rejected(guides_dir) -> None:
    (guides_dir.root / "broken.md").write_bytes(b"\xff\xfe\xfa invalid utf-8")
    with pytest.raises(CorpusLoadError, match="broken.md"):
        GuideCorpus.load(FileGuideSource(guides_dir.root))


def test_source_failures_are_wrapped() -> None:
    class ExplodingSource:
        def load_all(self):
            raise RuntimeError("disk on fire")

    with pytest.raises(CorpusLoadError, match="disk on fire"):
        GuideCorpus.load(ExplodingSource())


def test_duplicate_names_are_rejected() -> None:
    source = StaticGuideSource([raw_guide("dup", "one"), raw_guide("dup", "two")])
    with pytest.raises(CorpusLoadError, match="Duplicate"):
        GuideCorpus.load(source)


def test_documents_are_immutable(corpus: GuideCorpus) -> None:
    document = corpus.get_all()[0]
    with pytest.raises(ValidationError):
        document.content = "rewritten"  # type: ignore[misc]
    assert isinstance(corpus.get_all(), tuple)


def test_corpus_from_config_resolves_guides_relative_to_config(tmp_path: Path) -> None:
    write_guides(tmp_path / "docs" / "guides")
    config_path = tmp_path / "migrator.yaml"
    config_path.write_text(
        textwrap.dedent(
            """
            guides:
              path: docs/guides
              required: [migration-guide, testing-guide]
              max_keywords: 5
            """
        ).lstrip(),
        encoding="utf-8",
    )

    corpus = GuideCorpus.from_config(load_config(config_path))
    full = GuideCorpus.load(FileGuideSource(tmp_path / "docs" / "guides"))

    assert "testing-guide" in corpus.names()
    assert corpus.names() == full.names()
    for trimmed, complete in zip(corpus, full):
        assert len(trimmed.keywords) < len(complete.keywords)
        assert trimmed.keywords == complete.keywords[: len(trimmed.keywords)]
