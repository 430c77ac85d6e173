"""Cancellable event streams fed by the external migration process."""

from __future__ import annotations

import asyncio
import json
import logging
import os
from collections import deque
from collections.abc import Mapping
from pathlib import Path
from typing import Any, AsyncIterator, Deque, Dict, List, Optional, Protocol, Sequence

from ..config import config_section
from ..errors import SessionInitError, StreamFailure
from .events import IgnoredEvent, ResultEvent, SessionEvent, StartEvent, parse_message

LOGGER = logging.getLogger(__name__)

_STREAM_LIMIT = 16 * 1024 * 1024
_STDERR_TAIL_LINES = 20


class CancellationSignal:
    """Cooperative cancellation flag shared between orchestrator and producer.

    ``set`` must be called from the thread running the event loop.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def set(self) -> None:
        self._event.set()

    def is_set(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()


class ExternalSessionStream(Protocol):
    """Producer of session events for a single migration run."""

    async def open(
        self,
        payload: str,
        working_directory: Path,
        signal: CancellationSignal,
    ) -> AsyncIterator[SessionEvent]:
        """Start the session and return its event sequence.

        Raises :class:`SessionInitError` when the session cannot be started.
        The returned sequence must end once ``signal`` is set.
        """
        ...


def _merge_env(extra: Mapping[str, str] | None) -> Dict[str, str]:
    """Merge provided environment overrides with the current process state."""
    env: Dict[str, str] = os.environ.copy()
    if extra:
        env.update({str(key): str(value) for key, value in extra.items()})
    return env


def decode_line(line: bytes | str) -> List[SessionEvent]:
    """Decode one line of ``stream-json`` output into session events."""
    text = line.decode("utf-8", errors="replace") if isinstance(line, bytes) else line
    text = text.strip()
    if not text:
        return []
    try:
        raw = json.loads(text)
    except json.JSONDecodeError:
        LOGGER.debug("Skipping non-JSON session output: %.120s", text)
        return [IgnoredEvent(kind="malformed")]
    return parse_message(raw)


class CliSessionStream:
    """Run the migration CLI as a subprocess and stream its JSON messages."""

    def __init__(
        self,
        *,
        command: Sequence[str] = ("claude",),
        model: Optional[str] = "opus",
        permission_mode: Optional[str] = "bypassPermissions",
        env: Mapping[str, str] | None = None,
    ) -> None:
        if not command:
            raise ValueError("A session command is required.")
        self._command = tuple(command)
        self._model = model
        self._permission_mode = permission_mode
        self._env = dict(env or {})

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> CliSessionStream:
        """Instantiate a stream from the ``session`` configuration section."""
        session_cfg = config_section(config, "session")
        command_value = session_cfg.get("command")
        if isinstance(command_value, str) and command_value.strip():
            command: List[str] = command_value.split()
        elif isinstance(command_value, Sequence) and command_value:
            command = [str(part) for part in command_value]
        else:
            command = ["claude"]
        model = session_cfg.get("model")
        permission_mode = session_cfg.get("permission_mode")
        env_value = session_cfg.get("env")
        env: Dict[str, str] = {}
        if isinstance(env_value, Mapping):
            env = {str(key): "" if value is None else str(value) for key, value in env_value.items()}
        return cls(
            command=command,
            model=model if isinstance(model, str) and model.strip() else None,
            permission_mode=permission_mode if isinstance(permission_mode, str) and permission_mode.strip() else None,
            env=env,
        )

    def build_command(self) -> List[str]:
        """Return the argv used to launch the session; the prompt goes to stdin."""
        command = [*self._command, "-p", "--output-format", "stream-json", "--verbose"]
        if self._model:
            command.extend(["--model", self._model])
        if self._permission_mode:
            command.extend(["--permission-mode", self._permission_mode])
        return command

    async def open(
        self,
        payload: str,
        working_directory: Path,
        signal: CancellationSignal,
    ) -> AsyncIterator[SessionEvent]:
        command = self.build_command()
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                cwd=str(working_directory),
                env=_merge_env(self._env),
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                limit=_STREAM_LIMIT,
            )
        except (OSError, ValueError) as error:
            raise SessionInitError(f"Failed to start migration session ({command[0]}): {error}") from error

        try:
            assert process.stdin is not None
            process.stdin.write(payload.encode("utf-8"))
            await process.stdin.drain()
            process.stdin.close()
        except (BrokenPipeError, ConnectionResetError) as error:
            await self._terminate(process)
            raise SessionInitError(f"Migration session exited before accepting the prompt: {error}") from error

        LOGGER.debug("Started migration session pid=%s in %s", process.pid, working_directory)
        return self._iterate(process, signal)

    async def _iterate(
        self,
        process: asyncio.subprocess.Process,
        signal: CancellationSignal,
    ) -> AsyncIterator[SessionEvent]:
        assert process.stdout is not None
        stderr_tail: Deque[str] = deque(maxlen=_STDERR_TAIL_LINES)
        stderr_task = asyncio.ensure_future(self._drain_stderr(process, stderr_tail))
        cancel_task = asyncio.ensure_future(signal.wait())
        saw_result = False
        try:
            yield StartEvent()
            while not signal.is_set():
                read_task = asyncio.ensure_future(process.stdout.readline())
                done, _ = await asyncio.wait({read_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
                if read_task not in done:
                    read_task.cancel()
                    break
                line = read_task.result()
                if not line:
                    break
                for event in decode_line(line):
                    if isinstance(event, ResultEvent):
                        saw_result = True
                    yield event
                    if signal.is_set():
                        break

            if signal.is_set():
                LOGGER.debug("Migration session cancelled; stopping pid=%s", process.pid)
                return

            returncode = await process.wait()
            await stderr_task
            if returncode != 0 and not saw_result:
                detail = " | ".join(stderr_tail) or "no output"
                raise StreamFailure(f"Migration session exited with code {returncode}: {detail}")
        finally:
            cancel_task.cancel()
            await self._terminate(process)
            if not stderr_task.done():
                stderr_task.cancel()

    @staticmethod
    async def _drain_stderr(process: asyncio.subprocess.Process, tail: Deque[str]) -> None:
        if process.stderr is None:
            return
        while True:
            line = await process.stderr.readline()
            if not line:
                return
            text = line.decode("utf-8", errors="replace").rstrip()
            if text:
                tail.append(text)
                LOGGER.debug("session stderr: %s", text)

    @staticmethod
    async def _terminate(process: asyncio.subprocess.Process) -> None:
        if process.returncode is not None:
            return
        try:
            process.terminate()
        except ProcessLookupError:
            return
        try:
            await asyncio.wait_for(process.wait(), timeout=5.0)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()


__all__ = [
    "CancellationSignal",
    "CliSessionStream",
    "ExternalSessionStream",
    "decode_line",
]
