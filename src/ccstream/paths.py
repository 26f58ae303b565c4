from __future__ import annotations

import shutil
from pathlib import Path

from .errors import CLINotFoundError

_INSTALL_HINT = "npm install -g @anthropic-ai/claude-code"


def candidate_cli_paths(home: Path | None = None) -> list[Path]:
    """Well-known install locations checked when `claude` is not on PATH."""

    h = home or Path.home()
    return [
        h / ".npm-global" / "bin" / "claude",
        Path("/usr/local/bin/claude"),
        h / ".local" / "bin" / "claude",
        h / "node_modules" / ".bin" / "claude",
        h / ".yarn" / "bin" / "claude",
    ]


def find_cli(home: Path | None = None) -> str:
    """Locate the `claude` executable.

    PATH wins; otherwise the usual npm/yarn install directories are tried.
    """

    found = shutil.which("claude")
    if found:
        return found

    for p in candidate_cli_paths(home):
        if p.is_file():
            return str(p)

    if shutil.which("node") is None:
        raise CLINotFoundError(
            f"Claude Code requires Node.js. Install Node.js and then run `{_INSTALL_HINT}`"
        )
    raise CLINotFoundError(f"Claude Code not found. Install with `{_INSTALL_HINT}`")
