from __future__ import annotations

import json

from ccstream.claude_cmd import build_claude_argv
from ccstream.types import MCPServerConfig, Options, PermissionMode


def test_build_claude_argv_basic() -> None:
    argv = build_claude_argv(cli_path="/usr/bin/claude", prompt="hello", options=Options(system_prompt="hi"))

    assert argv == [
        "/usr/bin/claude",
        "--output-format",
        "stream-json",
        "--verbose",
        "--system-prompt",
        "hi",
        "--print",
        "hello",
    ]


def test_build_claude_argv_without_options() -> None:
    argv = build_claude_argv(cli_path="claude", prompt="p", options=None)
    assert argv == ["claude", "--output-format", "stream-json", "--verbose", "--print", "p"]


def test_build_claude_argv_all_options() -> None:
    opts = Options(
        allowed_tools=["Read", "Grep"],
        disallowed_tools=("Bash",),
        append_system_prompt="be brief",
        model="claude-sonnet",
        permission_mode=PermissionMode.ACCEPT_EDITS,
        permission_prompt_tool_name="mcp__auth__prompt",
        max_turns=3,
        continue_conversation=True,
        resume="sid-1",
        mcp_servers={"docs": MCPServerConfig(url="http://localhost:9000", api_key="k")},
    )
    argv = build_claude_argv(cli_path="claude", prompt="do it", options=opts)

    def value_of(flag: str) -> str:
        return argv[argv.index(flag) + 1]

    assert value_of("--allowedTools") == "Read,Grep"
    assert value_of("--disallowedTools") == "Bash"
    assert value_of("--append-system-prompt") == "be brief"
    assert value_of("--model") == "claude-sonnet"
    assert value_of("--permission-mode") == "acceptEdits"
    assert value_of("--permission-prompt-tool") == "mcp__auth__prompt"
    assert value_of("--max-turns") == "3"
    assert value_of("--resume") == "sid-1"
    assert "--continue" in argv
    assert json.loads(value_of("--mcp-config")) == {
        "mcpServers": {"docs": {"url": "http://localhost:9000", "apiKey": "k"}}
    }
    # The prompt is always last.
    assert argv[-2:] == ["--print", "do it"]


def test_permission_mode_accepts_plain_string() -> None:
    opts = Options(permission_mode="bypassPermissions")
    argv = build_claude_argv(cli_path="claude", prompt="p", options=opts)
    assert argv[argv.index("--permission-mode") + 1] == "bypassPermissions"
