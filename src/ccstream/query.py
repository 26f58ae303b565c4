from __future__ import annotations

from collections.abc import Callable

from .client import Client, QueryStream
from .types import Options


def query(
    prompt: str,
    options: Options | None = None,
    *,
    on_noise: Callable[[str], None] | None = None,
) -> QueryStream:
    """Send `prompt` to Claude Code and stream back typed messages.

    Returns once the CLI process is running:

        messages, errors = query("What is 2 + 2?")
        for msg in messages:
            ...
        for err in errors:
            ...

    Raises CLINotFoundError / CLIConnectionError if the CLI cannot be started.
    Drain both channels (or use the result as a context manager) so the
    process is always cleaned up.
    """

    return Client().query(prompt, options, on_noise=on_noise)
