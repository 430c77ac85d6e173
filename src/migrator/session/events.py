"""Tagged union of events streamed by the external migration session."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, List, Optional, Union


@dataclass(frozen=True, slots=True)
class StartEvent:
    """Session stream opened."""


@dataclass(frozen=True, slots=True)
class AssistantTextEvent:
    """Free text written by the assistant."""

    text: str


@dataclass(frozen=True, slots=True)
class ToolUseEvent:
    """Assistant invoked a tool."""

    tool_name: str


@dataclass(frozen=True, slots=True)
class ToolResultEvent:
    """A tool invocation returned."""


@dataclass(frozen=True, slots=True)
class SystemInitEvent:
    """The session finished its own initialisation."""


@dataclass(frozen=True, slots=True)
class ProgressTickEvent:
    """Liveness tick carrying the producer's own counter."""

    count: int


@dataclass(frozen=True, slots=True)
class ResultEvent:
    """Terminal outcome reported by the session."""

    success: bool
    cost_usd: Optional[float] = None
    duration_ms: Optional[int] = None
    turns: Optional[int] = None


@dataclass(frozen=True, slots=True)
class ErrorEvent:
    """Error reported in-band by the session."""

    message: str


@dataclass(frozen=True, slots=True)
class IgnoredEvent:
    """Message shape the orchestrator does not act on."""

    kind: str = "unknown"


SessionEvent = Union[
    StartEvent,
    AssistantTextEvent,
    ToolUseEvent,
    ToolResultEvent,
    SystemInitEvent,
    ProgressTickEvent,
    ResultEvent,
    ErrorEvent,
    IgnoredEvent,
]


def _optional_float(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def _optional_int(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return int(value)


def _parse_content_blocks(content: Any) -> List[SessionEvent]:
    """Flatten assistant message content into text and tool-use events."""
    if isinstance(content, str):
        return [AssistantTextEvent(text=content)]
    if not isinstance(content, list):
        return [IgnoredEvent(kind="assistant")]

    events: List[SessionEvent] = []
    for block in content:
        if not isinstance(block, Mapping):
            continue
        block_type = block.get("type")
        if block_type == "text" and isinstance(block.get("text"), str):
            events.append(AssistantTextEvent(text=block["text"]))
        elif block_type == "tool_use" and isinstance(block.get("name"), str):
            events.append(ToolUseEvent(tool_name=block["name"]))
        elif block_type == "tool_result":
            events.append(ToolResultEvent())
    return events or [IgnoredEvent(kind="assistant")]


def parse_message(raw: Any) -> List[SessionEvent]:
    """Map one streamed JSON message onto session events.

    Assistant messages may carry several content blocks and therefore expand
    to several events. Unknown or malformed shapes become ``IgnoredEvent``.
    """
    if not isinstance(raw, Mapping):
        return [IgnoredEvent(kind=type(raw).__name__)]

    kind = raw.get("type")
    subtype = raw.get("subtype")

    if kind == "start":
        return [StartEvent()]
    if kind == "assistant":
        message = raw.get("message")
        if isinstance(message, Mapping):
            return _parse_content_blocks(message.get("content"))
        return [IgnoredEvent(kind="assistant")]
    if kind == "user":
        message = raw.get("message")
        content = message.get("content") if isinstance(message, Mapping) else None
        if isinstance(content, list) and any(
            isinstance(block, Mapping) and block.get("type") == "tool_result" for block in content
        ):
            return [ToolResultEvent()]
        return [IgnoredEvent(kind="user")]
    if kind == "tool_result":
        return [ToolResultEvent()]
    if kind == "system" and subtype == "init":
        return [SystemInitEvent()]
    if kind == "progress":
        return [ProgressTickEvent(count=_optional_int(raw.get("count")) or 0)]
    if kind == "result":
        is_error = raw.get("is_error") is True
        return [
            ResultEvent(
                success=subtype == "success" and not is_error,
                cost_usd=_optional_float(raw.get("total_cost_usd")),
                duration_ms=_optional_int(raw.get("duration_ms")),
                turns=_optional_int(raw.get("num_turns")),
            )
        ]
    if kind == "error":
        error = raw.get("error")
        message = raw.get("message")
        if isinstance(error, Mapping):
            message = error.get("message", message)
        return [ErrorEvent(message=str(message or "unknown error"))]
    return [IgnoredEvent(kind=str(kind or "unknown"))]


__all__ = [
    "AssistantTextEvent",
    "ErrorEvent",
    "IgnoredEvent",
    "ProgressTickEvent",
    "ResultEvent",
    "SessionEvent",
    "StartEvent",
    "SystemInitEvent",
    "ToolResultEvent",
    "ToolUseEvent",
    "parse_message",
]
