from __future__ import annotations

from conftest import StaticGuideSource, raw_guide
from migrator.guides.assembler import (
    assemble_full_context,
    assemble_issue_context,
    assemble_reference_summary,
)
from migrator.guides.corpus import GuideCorpus
from migrator.guides.index import RelevanceIndex
from migrator.guides.schema import GuideCategory


def test_full_context_includes_every_guide_in_order(corpus: GuideCorpus) -> None:
    rendered = assemble_full_context(corpus.get_all())

    positions = [rendered.index(f"GUIDE: {name} ") for name in corpus.names()]
    assert positions == sorted(positions)
    for document in corpus:
        assert document.content.strip() in rendered
    assert assemble_full_context(corpus.get_all()) == rendered


def test_full_context_never_truncates() -> None:
    body = "provider " * 50_000 + "END-MARKER"
    corpus = GuideCorpus.load(StaticGuideSource([raw_guide("huge", body)]))

    rendered = assemble_full_context(corpus.get_all())

    assert rendered.rstrip().endswith("END-MARKER")
    assert len(rendered) > len(body)


def test_reference_summary_lists_names_by_category_without_content(corpus: GuideCorpus) -> None:
    summary = assemble_reference_summary(corpus.get_all())

    for document in corpus:
        assert f"- {document.name} ({document.path})" in summary
    assert "composeState" not in summary
    assert summary.index("[basic]") < summary.index("[state]") < summary.index("[completion]")


def test_reference_summary_of_subset_and_empty_sequence() -> None:
    corpus = GuideCorpus.load(
        StaticGuideSource(
            [
                raw_guide("one", "a", GuideCategory.TESTING),
                raw_guide("two", "b", GuideCategory.BASIC),
            ]
        )
    )

    subset = assemble_reference_summary(corpus.get_by_category(GuideCategory.TESTING))
    assert "- one" in subset
    assert "two" not in subset
    assert assemble_reference_summary([]) == "No migration guides available."


def test_issue_context_only_includes_relevant_guides(corpus: GuideCorpus) -> None:
    index = RelevanceIndex(corpus)

    rendered = assemble_issue_context(index, "provider state caching")

    assert "GUIDE: state-and-providers-guide" in rendered
    assert "GUIDE: testing-guide" not in rendered
    assert assemble_issue_context(index, "") == ""
