from __future__ import annotations

import json
import sys
from collections.abc import Callable
from pathlib import Path

import pytest


def pytest_configure() -> None:
    # Ensure `import ccstream` works when running tests without installing the package.
    repo_root = Path(__file__).resolve().parents[1]
    src_dir = repo_root / "src"
    if src_dir.exists() and str(src_dir) not in sys.path:
        sys.path.insert(0, str(src_dir))


_FAKE_CLI = """\
import json, os, sys, time

if {echo_env!r}:
    print(json.dumps({{
        "type": "system",
        "subtype": "init",
        "cwd": os.getcwd(),
        "entrypoint": os.environ.get("CLAUDE_CODE_ENTRYPOINT"),
        "argv": sys.argv[1:],
    }}), flush=True)

for line in {lines!r}:
    sys.stdout.write(line + "\\n")
    sys.stdout.flush()

sys.stderr.write({stderr!r})
sys.stderr.flush()
time.sleep({sleep!r})
sys.exit({exit_code!r})
"""


@pytest.fixture
def make_cli(tmp_path: Path) -> Callable[..., str]:
    """Write a stand-in `claude` executable that prints canned stdout lines."""

    counter = {"n": 0}

    def _make(
        lines: list[str] | None = None,
        *,
        exit_code: int = 0,
        stderr: str = "",
        sleep: float = 0.0,
        echo_env: bool = False,
    ) -> str:
        counter["n"] += 1
        d = tmp_path / f"fake_cli_{counter['n']}"
        d.mkdir()
        script = d / "fake_claude.py"
        script.write_text(
            _FAKE_CLI.format(
                lines=list(lines or []),
                exit_code=exit_code,
                stderr=stderr,
                sleep=sleep,
                echo_env=echo_env,
            ),
            encoding="utf-8",
        )
        wrapper = d / "claude"
        wrapper.write_text(f'#!/bin/sh\nexec {json.dumps(sys.executable)} {json.dumps(str(script))} "$@"\n')
        wrapper.chmod(0o755)
        return str(wrapper)

    return _make
