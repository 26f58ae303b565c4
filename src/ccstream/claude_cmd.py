from __future__ import annotations

import json

from .types import Options


def _join(tools: tuple[str, ...]) -> str:
    return ",".join(tools)


def build_claude_argv(*, cli_path: str, prompt: str, options: Options | None) -> list[str]:
    opts = options or Options()

    argv: list[str] = [
        cli_path,
        "--output-format",
        "stream-json",
        "--verbose",
    ]

    if opts.system_prompt:
        argv.extend(["--system-prompt", opts.system_prompt])

    if opts.append_system_prompt:
        argv.extend(["--append-system-prompt", opts.append_system_prompt])

    if opts.allowed_tools:
        argv.extend(["--allowedTools", _join(opts.allowed_tools)])

    if opts.max_turns > 0:
        argv.extend(["--max-turns", str(opts.max_turns)])

    if opts.disallowed_tools:
        argv.extend(["--disallowedTools", _join(opts.disallowed_tools)])

    if opts.model:
        argv.extend(["--model", opts.model])

    if opts.permission_prompt_tool_name:
        argv.extend(["--permission-prompt-tool", opts.permission_prompt_tool_name])

    if opts.permission_mode:
        argv.extend(["--permission-mode", opts.permission_mode.value])

    if opts.continue_conversation:
        argv.append("--continue")

    if opts.resume:
        argv.extend(["--resume", opts.resume])

    if opts.mcp_servers:
        servers = {name: cfg.to_dict() for name, cfg in opts.mcp_servers.items()}
        argv.extend(["--mcp-config", json.dumps({"mcpServers": servers})])

    # The prompt is the final positional argument.
    argv.extend(["--print", prompt])

    return argv
