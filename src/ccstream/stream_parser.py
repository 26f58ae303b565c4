from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from typing import IO, Any

from .errors import ClaudeSDKError, CLIJSONDecodeError

logger = logging.getLogger(__name__)

_STRUCTURAL_PREFIXES = ("{", "[")


@dataclass(frozen=True)
class StreamLine:
    raw: str
    obj: dict[str, Any] | None
    error: ClaudeSDKError | None


def _iter_raw_lines(stream: IO[bytes] | Iterable[bytes]) -> Iterator[bytes]:
    readline = getattr(stream, "readline", None)
    if readline is None:
        yield from stream
        return
    # readline() returns as soon as one line is available; iterating a pipe
    # through its read-ahead buffer would hold lines back.
    while True:
        chunk = readline()
        if not chunk:
            return
        yield chunk


def decode_line(line: str) -> StreamLine | None:
    """Classify one output line. Returns None for non-protocol noise."""

    try:
        obj = json.loads(line)
    except (ValueError, RecursionError) as e:
        # ValueError covers JSONDecodeError and oversized integer literals;
        # RecursionError comes from very deeply nested arrays/objects.
        if line.lstrip().startswith(_STRUCTURAL_PREFIXES):
            return StreamLine(raw=line, obj=None, error=CLIJSONDecodeError(line, e))
        return None

    if isinstance(obj, dict):
        return StreamLine(raw=line, obj=obj, error=None)

    if line.lstrip().startswith(_STRUCTURAL_PREFIXES):
        # Stream-json records are objects; a bare array is a protocol violation.
        err = TypeError(f"unexpected JSON type: {type(obj).__name__}")
        return StreamLine(raw=line, obj=None, error=CLIJSONDecodeError(line, err))
    return None


def iter_stream_json_lines(
    stream: IO[bytes] | Iterable[bytes],
    *,
    on_noise: Callable[[str], None] | None = None,
) -> Iterator[StreamLine]:
    """Iterate a byte stream producing NDJSON (one JSON object per line).

    Lines that are neither JSON nor look like JSON (stray log output, banners)
    are dropped. `on_noise`, when given, receives each of them.
    """

    for chunk in _iter_raw_lines(stream):
        line = chunk.decode("utf-8", errors="replace").rstrip("\r\n")
        if not line.strip():
            continue

        sl = decode_line(line)
        if sl is None:
            logger.debug("Dropping non-JSON output line: %.200s", line)
            if on_noise is not None:
                on_noise(line)
            continue
        yield sl
