from __future__ import annotations

import asyncio
import sys
import textwrap
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, AsyncIterator, Iterable, List, Optional, Sequence

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from migrator.errors import SessionInitError  # noqa: E402
from migrator.guides.corpus import FileGuideSource, GuideCorpus  # noqa: E402
from migrator.guides.schema import GuideCategory, RawGuide  # noqa: E402
from migrator.session.stream import CancellationSignal  # noqa: E402

GUIDE_FILES = {
    "migration-guide.md": """
        # Basic Migration Guide

        Update every import from the old core package to @elizaos/core.
        Replace deprecated types and bump the plugin dependency versions.
        Run the build after each import change.
        """,
    "state-and-providers-guide.md": """
        # State and Providers

        Providers now receive runtime, message and state arguments.
        Use composeState to build state; a provider returns text, values and data.
        State caching changed, so re-read state after each provider update.
        """,
    "prompt-and-generation-guide.md": """
        # Prompts and Generation

        Templates move to handlebars syntax. Use runtime.useModel for text generation.
        Replace generateText and generateObject with the model API.
        """,
    "advanced-migration-guide.md": """
        # Advanced Migration

        Services extend the Service class. Settings are read through runtime.getSetting.
        Evaluators keep the same shape but receive the runtime first.
        """,
    "testing-guide.md": """
        # Testing Guide

        Every test must pass. Use bun test and mock the runtime in unit tests.
        Coverage should stay above 95 percent where possible.
        """,
    "completion-requirements.md": """
        # Completion Requirements

        Update the release workflow, README and package metadata before publishing.
        Final validation requires a clean build and passing tests.
        """,
}


@dataclass(slots=True)
class GuideFixture:
    """Guide directory written to disk for file-based corpus tests."""

    root: Path
    names: List[str]


def write_guides(root: Path, files: Optional[dict[str, str]] = None) -> GuideFixture:
    """Write guide markdown files under ``root`` and return the fixture payload."""
    root.mkdir(parents=True, exist_ok=True)
    payload = GUIDE_FILES if files is None else files
    for file_name, body in payload.items():
        (root / file_name).write_text(textwrap.dedent(body).lstrip(), encoding="utf-8")
    return GuideFixture(root=root, names=sorted(Path(name).stem for name in payload))


@pytest.fixture()
def guides_dir(tmp_path: Path) -> GuideFixture:
    return write_guides(tmp_path / "migration-guides")


@pytest.fixture()
def corpus(guides_dir: GuideFixture) -> GuideCorpus:
    return GuideCorpus.load(FileGuideSource(guides_dir.root))


class StaticGuideSource:
    """In-memory guide source returning a fixed list of records."""

    def __init__(self, guides: Iterable[RawGuide]) -> None:
        self._guides = list(guides)

    def load_all(self) -> List[RawGuide]:
        return list(self._guides)


def raw_guide(name: str, content: str, category: GuideCategory = GuideCategory.OTHER) -> RawGuide:
    return RawGuide(name=name, path=f"guides/{name}.md", category=category, content=content)


@dataclass(slots=True)
class ConsoleRecorder:
    """Collects console output written by the orchestrator."""

    lines: List[str] = field(default_factory=list)

    def __call__(self, message: Any = "", nl: bool = True) -> None:
        self.lines.append(str(message))

    @property
    def text(self) -> str:
        return "\n".join(self.lines)


@pytest.fixture()
def console() -> ConsoleRecorder:
    return ConsoleRecorder()


class ScriptedStream:
    """Session stream replaying a fixed list of events.

    ``fail_after`` raises once that many events were produced. ``pause_after``
    blocks the producer on ``resume`` after that many events, honouring the
    cancellation signal while paused.
    """

    def __init__(
        self,
        events: Sequence[Any],
        *,
        fail_after: Optional[int] = None,
        pause_after: Optional[int] = None,
        open_error: Optional[Exception] = None,
    ) -> None:
        self._events = list(events)
        self._fail_after = fail_after
        self._pause_after = pause_after
        self._open_error = open_error
        self.payload: Optional[str] = None
        self.working_directory: Optional[Path] = None
        self.produced = 0
        self.paused = asyncio.Event()
        self.resume = asyncio.Event()
        self.closed = False

    async def open(self, payload: str, working_directory: Path, signal: CancellationSignal) -> AsyncIterator[Any]:
        if self._open_error is not None:
            raise self._open_error
        self.payload = payload
        self.working_directory = working_directory
        return self._iterate(signal)

    async def _iterate(self, signal: CancellationSignal) -> AsyncIterator[Any]:
        try:
            for event in self._events:
                if self._fail_after is not None and self.produced >= self._fail_after:
                    raise RuntimeError(f"stream broke after {self.produced} events")
                if self._pause_after is not None and self.produced == self._pause_after:
                    self.paused.set()
                    await self.resume.wait()
                if signal.is_set():
                    return
                self.produced += 1
                yield event
                await asyncio.sleep(0)
        finally:
            self.closed = True


def failing_open(message: str = "executable not found") -> ScriptedStream:
    return ScriptedStream([], open_error=SessionInitError(message))
