from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from .types import MCPServerConfig, Options, PermissionMode

ENTRYPOINT_ENV = "CLAUDE_CODE_ENTRYPOINT"
ENTRYPOINT = "sdk-py"


def _as_str(v: Any) -> str | None:
    return v if isinstance(v, str) and v else None


def _as_bool(v: Any) -> bool:
    return v if isinstance(v, bool) else False


def _as_int(v: Any) -> int:
    return v if isinstance(v, int) and not isinstance(v, bool) and v > 0 else 0


def _as_str_list(v: Any) -> tuple[str, ...]:
    # Accept either a YAML list or a comma-separated string.
    if isinstance(v, str):
        v = v.split(",")
    if not isinstance(v, list):
        return ()
    return tuple(s.strip() for s in v if isinstance(s, str) and s.strip())


def _as_permission_mode(v: Any) -> PermissionMode | None:
    s = _as_str(v)
    if s is None:
        return None
    try:
        return PermissionMode(s)
    except ValueError:
        return None


def _as_mcp_servers(v: Any) -> dict[str, MCPServerConfig]:
    if not isinstance(v, dict):
        return {}
    out: dict[str, MCPServerConfig] = {}
    for name, spec in v.items():
        if not isinstance(name, str) or not isinstance(spec, dict):
            continue
        url = _as_str(spec.get("url"))
        if url is None:
            continue
        api_key = _as_str(spec.get("api_key")) or _as_str(spec.get("apiKey")) or ""
        out[name] = MCPServerConfig(url=url, api_key=api_key)
    return out


def _as_path(v: Any, *, base: Path) -> Path | None:
    s = _as_str(v)
    if s is None:
        return None
    p = Path(s).expanduser()
    return (base / p).resolve() if not p.is_absolute() else p


def options_from_dict(data: Mapping[str, Any], *, base: Path | None = None) -> Options:
    """Build Options from a loosely-typed mapping (e.g. parsed YAML).

    Unknown keys are ignored and wrong-shaped values fall back to defaults.
    """

    return Options(
        allowed_tools=_as_str_list(data.get("allowed_tools")),
        disallowed_tools=_as_str_list(data.get("disallowed_tools")),
        system_prompt=_as_str(data.get("system_prompt")),
        append_system_prompt=_as_str(data.get("append_system_prompt")),
        model=_as_str(data.get("model")),
        permission_mode=_as_permission_mode(data.get("permission_mode")),
        permission_prompt_tool_name=_as_str(data.get("permission_prompt_tool_name")),
        max_turns=_as_int(data.get("max_turns")),
        continue_conversation=_as_bool(data.get("continue_conversation")),
        resume=_as_str(data.get("resume")),
        mcp_servers=_as_mcp_servers(data.get("mcp_servers")),
        cli_path=_as_str(data.get("cli_path")),
        cwd=_as_path(data.get("cwd"), base=base or Path.cwd()),
    )


def load_options(path: Path) -> Options:
    """Load query options from a YAML file; a missing file yields defaults."""

    data: dict[str, Any] = {}
    if path.exists():
        loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
        if isinstance(loaded, dict):
            data = loaded

    return options_from_dict(data, base=path.resolve().parent)


def env_for_claude(base: Mapping[str, str] | None = None) -> dict[str, str]:
    """Return the process env for spawning `claude`.

    The current environment is passed through unchanged apart from the
    entrypoint marker the CLI uses to identify SDK callers.
    """

    env = dict(os.environ if base is None else base)
    env[ENTRYPOINT_ENV] = ENTRYPOINT
    return env
