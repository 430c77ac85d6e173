"""Drive one external migration session and fold it into a structured result."""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, AsyncIterator, Callable, List, Optional, Tuple

import typer

from .config import config_section
from .errors import EventProcessingError, SessionInitError, StreamFailure
from .guides.assembler import assemble_full_context, assemble_reference_summary
from .guides.corpus import GuideCorpus
from .guides.index import RelevanceIndex
from .guides.schema import GuideCategory
from .prompts import render_migration_prompt
from .session.classifier import classify, classify_tool, format_progress
from .session.events import (
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
)
from .session.notify import Listener, SessionNotifier
from .session.stream import CancellationSignal, CliSessionStream, ExternalSessionStream

LOGGER = logging.getLogger(__name__)

DEFAULT_PROGRESS_INTERVAL = 20

Echo = Callable[..., Any]


class SessionState(str, Enum):
    """Lifecycle of a single migration session."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    ABORTED = "aborted"


@dataclass(frozen=True, slots=True)
class MigrationResult:
    """Outcome of :meth:`SessionOrchestrator.migrate`."""

    success: bool
    repo_path: str
    duration_ms: int
    message_count: int
    guides_used: Tuple[str, ...] = ()
    error: Optional[str] = None
    state: SessionState = SessionState.COMPLETED
    cost_usd: Optional[float] = None
    turns: Optional[int] = None


class SessionOrchestrator:
    """Run a single migration session against one repository.

    One orchestrator owns exactly one session: ``migrate`` may be awaited once,
    and ``abort`` cancels that session cooperatively.
    """

    GUIDES_USED_CATEGORIES = (
        GuideCategory.BASIC,
        GuideCategory.ADVANCED,
        GuideCategory.TESTING,
        GuideCategory.COMPLETION,
    )

    def __init__(
        self,
        repo_path: Path | str,
        corpus: GuideCorpus,
        stream: ExternalSessionStream,
        *,
        verbose: bool = False,
        echo: Optional[Echo] = None,
        notifier: Optional[SessionNotifier] = None,
        progress_interval: int = DEFAULT_PROGRESS_INTERVAL,
    ) -> None:
        if progress_interval <= 0:
            raise ValueError("progress_interval must be a positive integer")
        self._repo_path = Path(repo_path)
        self._corpus = corpus
        self._index = RelevanceIndex(corpus)
        self._stream = stream
        self._verbose = verbose
        self._echo: Echo = echo or typer.echo
        self._notifier = notifier or SessionNotifier()
        self._progress_interval = progress_interval
        self._signal = CancellationSignal()
        self._state = SessionState.IDLE
        self._message_count = 0
        self._event_failures = 0
        self._last_result: Optional[ResultEvent] = None
        self._reported_errors: List[str] = []
        if verbose:
            LOGGER.info("Migration guides loaded: %s", ", ".join(corpus.names()))

    @classmethod
    def from_config(
        cls,
        config: Mapping[str, Any],
        repo_path: Path | str,
        *,
        corpus: Optional[GuideCorpus] = None,
        stream: Optional[ExternalSessionStream] = None,
        echo: Optional[Echo] = None,
        verbose: Optional[bool] = None,
    ) -> SessionOrchestrator:
        """Build an orchestrator from configuration; guide loading failures propagate."""
        session_cfg = config_section(config, "session")
        interval = session_cfg.get("progress_interval")
        if not isinstance(interval, int) or isinstance(interval, bool) or interval <= 0:
            interval = DEFAULT_PROGRESS_INTERVAL
        if verbose is None:
            verbose = config.get("verbose") is True
        return cls(
            repo_path,
            corpus if corpus is not None else GuideCorpus.from_config(config),
            stream if stream is not None else CliSessionStream.from_config(config),
            verbose=verbose,
            echo=echo,
            progress_interval=interval,
        )

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def message_count(self) -> int:
        return self._message_count

    @property
    def event_failures(self) -> int:
        return self._event_failures

    @property
    def corpus(self) -> GuideCorpus:
        return self._corpus

    @property
    def index(self) -> RelevanceIndex:
        return self._index

    @property
    def notifier(self) -> SessionNotifier:
        return self._notifier

    def subscribe(self, kind: str, listener: Listener) -> Callable[[], None]:
        """Register a ``start``/``progress``/``finish`` listener."""
        return self._notifier.subscribe(kind, listener)

    def build_payload(self) -> str:
        """Render the instructional payload embedding every guide."""
        documents = self._corpus.get_all()
        return render_migration_prompt(
            assemble_full_context(documents),
            assemble_reference_summary(documents),
            documents,
        )

    async def migrate(self) -> MigrationResult:
        """Run the session to a terminal state; never raises."""
        if self._state is not SessionState.IDLE:
            return MigrationResult(
                success=False,
                repo_path=str(self._repo_path),
                duration_ms=0,
                message_count=self._message_count,
                error="A migration session has already been run by this orchestrator.",
                state=self._state,
            )

        started = time.monotonic()
        self._state = SessionState.RUNNING
        self._say("Analyzing and migrating your plugin...\n")
        self._notifier.emit("start")
        self._say(f"Starting migration in directory: {self._repo_path}")

        failure: Optional[str] = None
        try:
            await self._consume()
        except SessionInitError as error:
            failure = str(error)
        except Exception as error:
            failure = str(StreamFailure(f"Session stream failed: {error}"))
            LOGGER.debug("Session stream raised after %d event(s)", self._message_count, exc_info=True)

        result = self._finish(failure, started)
        self._notifier.emit("finish", result)
        return result

    def abort(self) -> None:
        """Signal cancellation to the running session."""
        if self._signal.is_set():
            return
        self._signal.set()
        if self._state in (SessionState.IDLE, SessionState.RUNNING):
            self._say("\nMigration aborted by user")

    async def _consume(self) -> None:
        if self._signal.is_set():
            return
        try:
            events = await self._stream.open(self.build_payload(), self._repo_path, self._signal)
        except SessionInitError:
            raise
        except Exception as error:
            raise SessionInitError(f"Failed to open migration session: {error}") from error

        try:
            async for event in events:
                if self._signal.is_set():
                    break
                self._message_count += 1
                try:
                    self._handle_event(event)
                except Exception as error:
                    self._report_event_failure(event, error)
                if self._message_count % self._progress_interval == 0:
                    self._say(f"\n⏳ Processing... ({self._message_count} operations)\n")
                    self._notifier.emit("progress", self._message_count)
        finally:
            await self._close(events)

    @staticmethod
    async def _close(events: AsyncIterator[SessionEvent]) -> None:
        aclose = getattr(events, "aclose", None)
        if aclose is None:
            return
        try:
            await aclose()
        except Exception:
            LOGGER.debug("Closing the session stream failed", exc_info=True)

    def _handle_event(self, event: SessionEvent) -> None:
        # Console errors raised here count as event failures.
        if isinstance(event, AssistantTextEvent):
            category = classify(event.text)
            if category is not None:
                self._echo(format_progress(event.text, category))
        elif isinstance(event, ToolUseEvent):
            label = classify_tool(event.tool_name)
            if label:
                self._echo(f"{label}...", nl=False)
        elif isinstance(event, ToolResultEvent):
            self._echo(" ✓")
        elif isinstance(event, ResultEvent):
            self._last_result = event
            self._echo_summary(event)
        elif isinstance(event, SystemInitEvent):
            self._echo("Starting migration session...\n")
        elif isinstance(event, ErrorEvent):
            self._reported_errors.append(event.message)
            self._echo(f"❌ {event.message.strip()}")
        elif isinstance(event, ProgressTickEvent):
            LOGGER.debug("Session progress tick: %d", event.count)
        elif isinstance(event, (StartEvent, IgnoredEvent)):
            pass
        else:
            raise EventProcessingError(f"Unsupported session event: {event!r}")

    def _report_event_failure(self, event: Any, error: Exception) -> None:
        self._event_failures += 1
        failure = error if isinstance(error, EventProcessingError) else EventProcessingError(
            f"Failed to process {type(event).__name__}: {error}"
        )
        LOGGER.debug("%s", failure, exc_info=error)
        if self._verbose:
            self._say(f"\n❌ Message processing error: {failure}")

    def _say(self, message: str = "", **kwargs: Any) -> None:
        """Write a lifecycle line; console failures never reach the session."""
        try:
            self._echo(message, **kwargs)
        except Exception:
            LOGGER.debug("Console write failed: %.80s", message, exc_info=True)

    def _echo_summary(self, event: ResultEvent) -> None:
        self._echo("\n\n📊 Migration Summary:")
        self._echo(f"Status: {'✅ Completed' if event.success else '❌ Failed'}")
        if event.cost_usd:
            self._echo(f"Cost: ${event.cost_usd}")
        if event.duration_ms:
            self._echo(f"Duration: {round(event.duration_ms / 1000)}s")
        if event.turns:
            self._echo(f"AI Operations: {event.turns}")
        self._echo("")

    def _finish(self, failure: Optional[str], started: float) -> MigrationResult:
        duration_ms = max(int((time.monotonic() - started) * 1000), 0)
        last = self._last_result

        if self._signal.is_set():
            self._state = SessionState.ABORTED
            failure = "Migration aborted by user"
        elif failure is None and last is None:
            failure = str(StreamFailure("Session ended without reporting a result."))
        elif failure is None and last is not None and not last.success:
            detail = "; ".join(self._reported_errors)
            failure = str(StreamFailure(f"Session reported failure{': ' + detail if detail else '.'}"))

        if failure is None:
            self._state = SessionState.COMPLETED
            self._say("\nMigration completed successfully!")
            guides_used = tuple(
                document.name
                for category in self.GUIDES_USED_CATEGORIES
                for document in self._corpus.get_by_category(category)
            )
            return MigrationResult(
                success=True,
                repo_path=str(self._repo_path),
                duration_ms=duration_ms,
                message_count=self._message_count,
                guides_used=guides_used,
                state=self._state,
                cost_usd=last.cost_usd if last else None,
                turns=last.turns if last else None,
            )

        if self._state is SessionState.RUNNING:
            self._state = SessionState.FAILED
            self._say("\n✗ Migration failed")
            self._say(f"\nError details: {failure}")
        return MigrationResult(
            success=False,
            repo_path=str(self._repo_path),
            duration_ms=duration_ms,
            message_count=self._message_count,
            error=failure,
            state=self._state,
            cost_usd=last.cost_usd if last else None,
            turns=last.turns if last else None,
        )

    def get_migration_help(self, issue: str) -> str:
        """Render the guides relevant to ``issue`` as a plain-text report."""
        try:
            results = self._index.find_relevant_for_issue(issue or "")
        except Exception as error:
            return f"Error getting migration help: {error}"

        if not results:
            return (
                f"No specific guidance found for: {issue}\n"
                f"Check the basic {self._basic_guide_file()} for general steps."
            )

        lines = [f"MIGRATION GUIDANCE FOR: {issue.upper()}", "", "Relevant guides found:", ""]
        for result in results:
            lines.append(f"## {result.document.name}")
            lines.append(f"Relevance Score: {result.relevance_score:.1f}")
            lines.append(f"Matched Keywords: {', '.join(result.matched_keywords)}")
            lines.append(f"Category: {result.document.category.value}")
            lines.append("")
        return "\n".join(lines)

    def search_guides(self, query: str, limit: int = 3) -> str:
        """Render the top ``limit`` guides for ``query`` as a plain-text report."""
        try:
            results = self._index.search(query or "", limit)
        except Exception as error:
            return f"Error searching guides: {error}"

        if not results:
            return f"No guides found matching: {query}"

        lines = [f"SEARCH RESULTS FOR: {query}", "", f"Found {len(results)} relevant guide(s):", ""]
        for result in results:
            lines.append(f"## {result.document.name}")
            lines.append(f"Score: {result.relevance_score:.1f}")
            lines.append(f"Keywords: {', '.join(result.matched_keywords)}")
            lines.append(f"Path: {result.document.path}")
            lines.append("")
        return "\n".join(lines)

    def get_full_migration_context(self) -> str:
        """Return the concatenated content of every guide."""
        return assemble_full_context(self._corpus.get_all())

    def _basic_guide_file(self) -> str:
        basics = self._corpus.get_by_category(GuideCategory.BASIC)
        if basics:
            return Path(basics[0].path).name
        return "migration-guide.md"


__all__ = [
    "DEFAULT_PROGRESS_INTERVAL",
    "MigrationResult",
    "SessionOrchestrator",
    "SessionState",
]
