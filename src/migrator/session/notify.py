"""Observer registry for session lifecycle notifications."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List

LOGGER = logging.getLogger(__name__)

NOTIFICATION_KINDS = ("start", "progress", "finish")

Listener = Callable[..., Any]


class SessionNotifier:
    """Deliver ordered, at-most-once notifications to registered listeners."""

    def __init__(self) -> None:
        self._listeners: Dict[str, List[Listener]] = {kind: [] for kind in NOTIFICATION_KINDS}

    def subscribe(self, kind: str, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for ``kind`` and return a callable that removes it."""
        if kind not in self._listeners:
            valid = ", ".join(NOTIFICATION_KINDS)
            raise KeyError(f"Unknown notification '{kind}'. Expected one of: {valid}")
        self._listeners[kind].append(listener)

        def _unsubscribe() -> None:
            listeners = self._listeners[kind]
            if listener in listeners:
                listeners.remove(listener)

        return _unsubscribe

    def emit(self, kind: str, *args: Any) -> None:
        """Call every listener of ``kind`` once, in registration order."""
        for listener in list(self._listeners.get(kind, ())):
            try:
                listener(*args)
            except Exception:
                LOGGER.warning("Listener for '%s' notification failed", kind, exc_info=True)


__all__ = ["Listener", "NOTIFICATION_KINDS", "SessionNotifier"]
