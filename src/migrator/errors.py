"""Error hierarchy shared by the guide corpus and the session orchestrator."""

from __future__ import annotations

__all__ = [
    "ConfigError",
    "CorpusLoadError",
    "EventProcessingError",
    "MigratorError",
    "SessionInitError",
    "StreamFailure",
]


class MigratorError(RuntimeError):
    """Base error raised for migrator failures."""


class ConfigError(MigratorError):
    """Raised when the YAML configuration cannot be parsed or has the wrong shape."""


class CorpusLoadError(MigratorError):
    """Raised when the guide corpus cannot be loaded in full."""


class SessionInitError(MigratorError):
    """Raised when the external session stream cannot be opened."""


class EventProcessingError(MigratorError):
    """Raised when a single streamed event cannot be handled."""


class StreamFailure(MigratorError):
    """Raised when the session stream errors out or reports a failed result."""
