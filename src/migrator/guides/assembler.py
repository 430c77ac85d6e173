"""Render guide collections into prompt-ready context blocks."""

from __future__ import annotations

from typing import Iterable, List, Optional

from .index import RelevanceIndex
from .schema import GuideCategory, GuideDocument

SECTION_RULE = "=" * 72


def _render_section(document: GuideDocument) -> str:
    header = f"{SECTION_RULE}\nGUIDE: {document.name} (category: {document.category.value})\n{SECTION_RULE}"
    return f"{header}\n\n{document.content.rstrip()}\n"


def assemble_full_context(documents: Iterable[GuideDocument]) -> str:
    """Concatenate every guide's full content in order, each under a named header."""
    return "\n".join(_render_section(document) for document in documents)


def assemble_reference_summary(documents: Iterable[GuideDocument]) -> str:
    """List guide names grouped by category without their content."""
    ordered = list(documents)
    if not ordered:
        return "No migration guides available."

    lines: List[str] = ["Available migration guides by category:"]
    for category in GuideCategory:
        members = [document for document in ordered if document.category is category]
        if not members:
            continue
        lines.append("")
        lines.append(f"[{category.value}]")
        for document in members:
            lines.append(f"- {document.name} ({document.path})")
    return "\n".join(lines)


def assemble_issue_context(index: RelevanceIndex, issue: str, limit: Optional[int] = None) -> str:
    """Concatenate only the guides relevant to ``issue``; empty string when none match."""
    results = index.find_relevant_for_issue(issue, limit=limit)
    return assemble_full_context(result.document for result in results)


__all__ = [
    "assemble_full_context",
    "assemble_issue_context",
    "assemble_reference_summary",
]
