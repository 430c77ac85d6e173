"""Guide retrieval and session orchestration for plugin migrations."""

from .errors import (
    ConfigError,
    CorpusLoadError,
    EventProcessingError,
    MigratorError,
    SessionInitError,
    StreamFailure,
)
from .guides import GuideCategory, GuideCorpus, GuideDocument, RelevanceIndex, RelevanceResult
from .orchestrator import MigrationResult, SessionOrchestrator, SessionState

__all__ = [
    "ConfigError",
    "CorpusLoadError",
    "EventProcessingError",
    "GuideCategory",
    "GuideCorpus",
    "GuideDocument",
    "MigrationResult",
    "MigratorError",
    "RelevanceIndex",
    "RelevanceResult",
    "SessionInitError",
    "SessionOrchestrator",
    "SessionState",
    "StreamFailure",
]
