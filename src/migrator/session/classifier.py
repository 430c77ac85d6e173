"""Map raw session output onto a small set of user-facing progress signals."""

from __future__ import annotations

import re
from enum import Enum
from typing import Dict, Optional, Pattern, Tuple

MAX_IMPORTANT_LENGTH = 200

_IMPORTANT_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r"GATE \d+", re.IGNORECASE),
    re.compile(r"analysis", re.IGNORECASE),
    re.compile(r"migration", re.IGNORECASE),
    re.compile(r"complete", re.IGNORECASE),
    re.compile(r"success", re.IGNORECASE),
    re.compile(r"error", re.IGNORECASE),
    re.compile(r"building", re.IGNORECASE),
    re.compile(r"testing", re.IGNORECASE),
    re.compile(r"✓|✗|🎉|🚀|📊"),
)


class ProgressCategory(str, Enum):
    """Display categories for important progress lines."""

    GATE = "gate"
    COMPLETION = "completion"
    ERROR = "error"
    ANALYSIS = "analysis"
    BUILD = "build"
    TEST = "test"
    IMPORTANT = "important"

    @property
    def label(self) -> str:
        return _CATEGORY_LABELS[self]


_CATEGORY_LABELS: Dict[ProgressCategory, str] = {
    ProgressCategory.GATE: "🎯",
    ProgressCategory.COMPLETION: "✅",
    ProgressCategory.ERROR: "❌",
    ProgressCategory.ANALYSIS: "🔍",
    ProgressCategory.BUILD: "🔨",
    ProgressCategory.TEST: "🧪",
    ProgressCategory.IMPORTANT: "",
}

# First matching rule wins; the order is part of the contract.
_CATEGORY_RULES: Tuple[Tuple[ProgressCategory, Pattern[str]], ...] = (
    (ProgressCategory.GATE, re.compile(r"GATE\s*\d+", re.IGNORECASE)),
    (ProgressCategory.COMPLETION, re.compile(r"complete|success|✓|🎉", re.IGNORECASE)),
    (ProgressCategory.ERROR, re.compile(r"error|fail|✗", re.IGNORECASE)),
    (ProgressCategory.ANALYSIS, re.compile(r"analy[sz]|migrat", re.IGNORECASE)),
    (ProgressCategory.BUILD, re.compile(r"build", re.IGNORECASE)),
    (ProgressCategory.TEST, re.compile(r"test", re.IGNORECASE)),
)

TOOL_LABELS: Dict[str, str] = {
    "TodoWrite": "📝 Planning",
    "Bash": "⚡ Running",
    "Read": "📖 Reading",
    "Edit": "✏️  Editing",
    "MultiEdit": "✏️  Editing",
    "Write": "📄 Writing",
    "LS": "🔍 Exploring",
    "Glob": "🔍 Exploring",
    "Grep": "🔎 Searching",
    "Task": "🔧 Processing",
}


def is_important(text: str) -> bool:
    """Return True for short lines carrying at least one progress marker."""
    if len(text) >= MAX_IMPORTANT_LENGTH:
        return False
    return any(pattern.search(text) for pattern in _IMPORTANT_PATTERNS)


def classify(text: str) -> Optional[ProgressCategory]:
    """Return the display category of ``text`` or ``None`` when it is not important."""
    if not isinstance(text, str) or not is_important(text):
        return None
    for category, pattern in _CATEGORY_RULES:
        if pattern.search(text):
            return category
    return ProgressCategory.IMPORTANT


def format_progress(text: str, category: ProgressCategory) -> str:
    """Prefix the trimmed text with the category label."""
    cleaned = text.strip()
    label = category.label
    if not label:
        return cleaned
    if category is ProgressCategory.GATE:
        return f"\n{label} {cleaned}"
    return f"{label} {cleaned}"


def classify_tool(tool_name: str) -> Optional[str]:
    """Return the short label for a known tool, ``None`` otherwise."""
    if not isinstance(tool_name, str):
        return None
    return TOOL_LABELS.get(tool_name)


__all__ = [
    "MAX_IMPORTANT_LENGTH",
    "ProgressCategory",
    "TOOL_LABELS",
    "classify",
    "classify_tool",
    "format_progress",
    "is_important",
]
