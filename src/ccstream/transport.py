from __future__ import annotations

import logging
import os
import signal
import subprocess
import tempfile
import threading
from collections.abc import Callable, Iterator
from enum import Enum
from typing import IO, Protocol

from .claude_cmd import build_claude_argv
from .config import env_for_claude
from .errors import CLIConnectionError, CLINotFoundError, ProcessError
from .paths import find_cli
from .stream_parser import StreamLine, iter_stream_json_lines
from .types import Options

logger = logging.getLogger(__name__)


class TransportState(str, Enum):
    IDLE = "idle"
    CONNECTED = "connected"
    DRAINING = "draining"
    CLOSED = "closed"


class Transport(Protocol):
    def connect(self) -> None: ...

    def receive(self, *, on_noise: Callable[[str], None] | None = None) -> Iterator[StreamLine]: ...

    def disconnect(self) -> None: ...


class SubprocessCLITransport:
    """Owns one `claude` child process for the lifetime of a single query.

    IDLE -> CONNECTED (connect) -> DRAINING (receive) -> CLOSED (disconnect).
    """

    def __init__(self, *, prompt: str, options: Options | None = None):
        self._prompt = prompt
        self._options = options or Options()

        self._lock = threading.Lock()
        self._state = TransportState.IDLE
        self._proc: subprocess.Popen[bytes] | None = None
        self._stderr_f: IO[bytes] | None = None
        self._argv: list[str] = []

        # Set once a caller asks for the process to go away; a non-zero exit
        # after that is expected and not reported.
        self._teardown_requested = False
        self._reading = False

    @property
    def state(self) -> TransportState:
        return self._state

    @property
    def argv(self) -> list[str]:
        return list(self._argv)

    @property
    def pid(self) -> int | None:
        return self._proc.pid if self._proc is not None else None

    @property
    def is_alive(self) -> bool:
        return self._proc is not None and self._proc.poll() is None

    def connect(self) -> None:
        with self._lock:
            if self._state is not TransportState.IDLE:
                raise CLIConnectionError(f"cannot connect: transport is {self._state.value}")

            cli_path = self._options.cli_path or find_cli()
            cwd = self._options.cwd
            if cwd is not None and not cwd.is_dir():
                raise CLIConnectionError(f"Working directory does not exist: {cwd}")

            self._argv = build_claude_argv(cli_path=cli_path, prompt=self._prompt, options=self._options)

            # stderr goes to a file rather than a pipe so a chatty CLI can never
            # block on a full pipe nobody is reading.
            stderr_f = tempfile.TemporaryFile()
            try:
                proc = subprocess.Popen(
                    self._argv,
                    cwd=str(cwd) if cwd is not None else None,
                    env=env_for_claude(),
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.PIPE,
                    stderr=stderr_f,
                    start_new_session=(os.name == "posix"),
                )
            except FileNotFoundError as e:
                stderr_f.close()
                raise CLINotFoundError(f"Claude Code not found at: {cli_path}") from e
            except OSError as e:
                stderr_f.close()
                raise CLIConnectionError(f"Failed to start Claude Code: {e}") from e

            self._proc = proc
            self._stderr_f = stderr_f
            self._state = TransportState.CONNECTED

        logger.info("Started claude CLI (pid=%s): %s", proc.pid, cli_path)

    def receive(self, *, on_noise: Callable[[str], None] | None = None) -> Iterator[StreamLine]:
        """Stream decoded stdout lines until the process closes its output.

        A non-zero exit is reported as a final StreamLine carrying a
        ProcessError, after every line the process wrote.
        """

        with self._lock:
            if self._state is not TransportState.CONNECTED or self._proc is None:
                raise CLIConnectionError("not connected")
            self._state = TransportState.DRAINING
            self._reading = True
            proc = self._proc

        return self._drain(proc, on_noise)

    def _drain(
        self,
        proc: subprocess.Popen[bytes],
        on_noise: Callable[[str], None] | None,
    ) -> Iterator[StreamLine]:
        assert proc.stdout is not None
        try:
            yield from iter_stream_json_lines(proc.stdout, on_noise=on_noise)
        except (OSError, ValueError):
            # The pipe can fail under us when the process is torn down mid-read.
            if not self._teardown_requested:
                raise
            return
        finally:
            with self._lock:
                self._reading = False
                proc.stdout.close()

        returncode = proc.wait()
        logger.debug("claude CLI (pid=%s) exited with code %s", proc.pid, returncode)

        if returncode != 0 and not self._teardown_requested:
            stderr_text = self._read_stderr()
            logger.warning("claude CLI exited with code %s", returncode)
            yield StreamLine(
                raw="",
                obj=None,
                error=ProcessError("CLI process failed", exit_code=returncode, stderr=stderr_text),
            )

    def _read_stderr(self) -> str:
        with self._lock:
            f = self._stderr_f
            if f is None or f.closed:
                return ""
            f.seek(0)
            return f.read().decode("utf-8", errors="replace")

    def _kill(self, proc: subprocess.Popen[bytes]) -> None:
        if proc.poll() is not None:
            return
        try:
            if os.name == "posix":
                # The CLI runs in its own session; take its tool subprocesses
                # down with it so none of them keeps stdout open.
                os.killpg(proc.pid, signal.SIGKILL)
            else:
                proc.kill()
        except ProcessLookupError:
            pass

    def disconnect(self) -> None:
        """Kill (if still running) and reap the child. Safe to call repeatedly."""

        with self._lock:
            self._teardown_requested = True
            proc = self._proc
            if self._state is TransportState.CLOSED:
                return

            if proc is not None:
                if proc.poll() is None:
                    logger.info("Terminating claude CLI (pid=%s)", proc.pid)
                    self._kill(proc)
                proc.wait()
                # An active reader closes stdout itself once it sees EOF.
                if not self._reading and proc.stdout is not None:
                    proc.stdout.close()

            if self._stderr_f is not None:
                self._stderr_f.close()

            self._state = TransportState.CLOSED

    def __enter__(self) -> SubprocessCLITransport:
        self.connect()
        return self

    def __exit__(self, *exc: object) -> None:
        self.disconnect()
