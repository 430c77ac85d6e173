"""Session stream plumbing: events, classification, notifications."""

from .classifier import ProgressCategory, classify, classify_tool, format_progress, is_important
from .events import (
    AssistantTextEvent,
    ErrorEvent,
    IgnoredEvent,
    ProgressTickEvent,
    ResultEvent,
    SessionEvent,
    StartEvent,
    SystemInitEvent,
    ToolResultEvent,
    ToolUseEvent,
    parse_message,
)
from .notify import SessionNotifier
from .stream import CancellationSignal, CliSessionStream, ExternalSessionStream, decode_line

__all__ = [
    "AssistantTextEvent",
    "CancellationSignal",
    "CliSessionStream",
    "ErrorEvent",
    "ExternalSessionStream",
    "IgnoredEvent",
    "ProgressCategory",
    "ProgressTickEvent",
    "ResultEvent",
    "SessionEvent",
    "SessionNotifier",
    "StartEvent",
    "SystemInitEvent",
    "ToolResultEvent",
    "ToolUseEvent",
    "classify",
    "classify_tool",
    "decode_line",
    "format_progress",
    "is_important",
    "parse_message",
]
