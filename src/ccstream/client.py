from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable, Iterator
from typing import Any, Generic, TypeVar

from .errors import ClaudeSDKError, CLIConnectionError
from .message_parser import parse_message
from .transport import SubprocessCLITransport, Transport
from .types import Message, Options

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CLOSED = object()


class ChannelClosed(Exception):
    """Raised by Channel.get() once the channel is closed and empty."""


class Channel(Generic[T]):
    """Single-producer queue that a consumer can iterate until it is closed.

    Unbounded, so the producer never waits on a slow (or absent) consumer.
    """

    def __init__(self, name: str):
        self.name = name
        self._q: queue.SimpleQueue[Any] = queue.SimpleQueue()
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def put(self, item: T) -> None:
        with self._lock:
            if self._closed:
                raise RuntimeError(f"channel {self.name!r} is closed")
            self._q.put(item)

    def close(self, *, discard: bool = False) -> None:
        """Close the channel. With discard=True, undelivered items are dropped."""

        with self._lock:
            if discard:
                while True:
                    try:
                        self._q.get_nowait()
                    except queue.Empty:
                        break
            elif self._closed:
                return
            self._closed = True
            self._q.put(_CLOSED)

    def get(self, timeout: float | None = None) -> T:
        """Next item; raises queue.Empty on timeout, ChannelClosed at the end."""

        item = self._q.get(timeout=timeout)
        if item is _CLOSED:
            # Leave the marker for any other consumer.
            self._q.put(_CLOSED)
            raise ChannelClosed(self.name)
        return item

    def __iter__(self) -> Iterator[T]:
        while True:
            try:
                yield self.get()
            except ChannelClosed:
                return


class QueryStream:
    """Handle on one running query: a message channel and an error channel.

    Both channels close once the CLI process has been reaped. Unpacks as
    `(messages, errors)`.
    """

    def __init__(self, transport: Transport, *, on_noise: Callable[[str], None] | None = None):
        self.messages: Channel[Message] = Channel("messages")
        self.errors: Channel[Exception] = Channel("errors")

        self._transport = transport
        self._on_noise = on_noise
        self._cancelled = threading.Event()
        self._thread = threading.Thread(target=self._run, name="ccstream-reader", daemon=True)

    def _start(self) -> None:
        self._thread.start()

    @property
    def running(self) -> bool:
        return self._thread.is_alive()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def _run(self) -> None:
        lines = None
        try:
            lines = self._transport.receive(on_noise=self._on_noise)
            for sl in lines:
                if self._cancelled.is_set():
                    break
                if sl.error is not None:
                    self.errors.put(sl.error)
                    continue
                assert sl.obj is not None
                msg = parse_message(sl.obj)
                if msg is not None:
                    self.messages.put(msg)
        except Exception as e:
            if not self._cancelled.is_set():
                logger.error("Error reading claude CLI output: %s", e)
                if not isinstance(e, ClaudeSDKError):
                    err = CLIConnectionError(f"error reading CLI output: {e}")
                    err.__cause__ = e
                    e = err
                self.errors.put(e)
        finally:
            if lines is not None and hasattr(lines, "close"):
                lines.close()
            try:
                # The process must be reaped before consumers see the end of
                # either channel.
                self._transport.disconnect()
            finally:
                discard = self._cancelled.is_set()
                self.messages.close(discard=discard)
                self.errors.close(discard=discard)

    def cancel(self) -> None:
        """Kill the CLI, stop the reader and close both channels. Idempotent."""

        self._cancelled.set()
        self._transport.disconnect()
        if threading.current_thread() is not self._thread:
            self._thread.join()
        self.messages.close(discard=True)
        self.errors.close(discard=True)

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the reader is done. Returns False on timeout."""

        self._thread.join(timeout)
        return not self._thread.is_alive()

    def __iter__(self) -> Iterator[Channel[Any]]:
        return iter((self.messages, self.errors))

    def __enter__(self) -> QueryStream:
        return self

    def __exit__(self, *exc: object) -> None:
        if self.running:
            self.cancel()


class Client:
    """Runs queries against the CLI, one at a time per client."""

    def __init__(self, *, transport_factory: Callable[..., Transport] = SubprocessCLITransport):
        self._transport_factory = transport_factory
        self._lock = threading.Lock()
        self._active: QueryStream | None = None

    def query(
        self,
        prompt: str,
        options: Options | None = None,
        *,
        on_noise: Callable[[str], None] | None = None,
    ) -> QueryStream:
        """Start the CLI and return as soon as it is running.

        Raises CLINotFoundError / CLIConnectionError if the process cannot be
        started; everything after that is reported on the returned channels.
        `on_noise` receives stdout lines that are not part of the protocol.
        """

        with self._lock:
            if self._active is not None and self._active.running:
                raise CLIConnectionError("a query is already running on this client")

            transport = self._transport_factory(prompt=prompt, options=options)
            transport.connect()

            stream = QueryStream(transport, on_noise=on_noise)
            stream._start()
            self._active = stream
            return stream
