from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any


class PermissionMode(str, Enum):
    DEFAULT = "default"
    ACCEPT_EDITS = "acceptEdits"
    BYPASS = "bypassPermissions"


# Content blocks (assistant output).


@dataclass(frozen=True)
class TextBlock:
    text: str = ""


@dataclass(frozen=True)
class ToolUseBlock:
    id: str = ""
    name: str = ""
    input: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ToolResultBlock:
    tool_use_id: str = ""
    # Opaque: string, list of blocks, or whatever the tool returned.
    content: Any = None
    is_error: bool = False


ContentBlock = TextBlock | ToolUseBlock | ToolResultBlock


# Messages.


@dataclass(frozen=True)
class UserMessage:
    content: str = ""


@dataclass(frozen=True)
class AssistantMessage:
    content: tuple[ContentBlock, ...] = ()


@dataclass(frozen=True)
class SystemMessage:
    subtype: str = ""
    # The full record as emitted by the CLI; schema varies between CLI versions.
    data: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ResultMessage:
    subtype: str = ""
    cost_usd: float = 0.0
    duration_ms: int = 0
    duration_api_ms: int = 0
    is_error: bool = False
    num_turns: int = 0
    session_id: str = ""
    total_cost_usd: float = 0.0
    usage: Mapping[str, Any] = field(default_factory=dict)
    result: str = ""


Message = UserMessage | AssistantMessage | SystemMessage | ResultMessage


@dataclass(frozen=True)
class MCPServerConfig:
    url: str = ""
    api_key: str = ""

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"url": self.url}
        if self.api_key:
            out["apiKey"] = self.api_key
        return out


@dataclass(frozen=True)
class Options:
    """Settings for one query. Read-only once handed to a client."""

    allowed_tools: tuple[str, ...] = ()
    disallowed_tools: tuple[str, ...] = ()

    system_prompt: str | None = None
    append_system_prompt: str | None = None

    model: str | None = None

    # Passed through to `claude --permission-mode`.
    permission_mode: PermissionMode | None = None
    permission_prompt_tool_name: str | None = None

    max_turns: int = 0

    continue_conversation: bool = False
    resume: str | None = None

    mcp_servers: Mapping[str, MCPServerConfig] = field(default_factory=dict)

    # Overrides executable discovery when set.
    cli_path: str | None = None
    cwd: Path | None = None

    def __post_init__(self) -> None:
        # Accept lists from callers but keep the value immutable.
        object.__setattr__(self, "allowed_tools", tuple(self.allowed_tools))
        object.__setattr__(self, "disallowed_tools", tuple(self.disallowed_tools))
        if isinstance(self.permission_mode, str) and not isinstance(self.permission_mode, PermissionMode):
            object.__setattr__(self, "permission_mode", PermissionMode(self.permission_mode))
