"""Guide corpus loading, relevance scoring and context assembly."""

from .assembler import assemble_full_context, assemble_issue_context, assemble_reference_summary
from .corpus import FileGuideSource, GuideCorpus, GuideSource
from .index import RelevanceIndex
from .schema import GuideCategory, GuideDocument, RawGuide, RelevanceResult

__all__ = [
    "FileGuideSource",
    "GuideCategory",
    "GuideCorpus",
    "GuideDocument",
    "GuideSource",
    "RawGuide",
    "RelevanceIndex",
    "RelevanceResult",
    "assemble_full_context",
    "assemble_issue_context",
    "assemble_reference_summary",
]
