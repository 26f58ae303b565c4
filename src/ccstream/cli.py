from __future__ import annotations

import dataclasses
import json
import logging
from pathlib import Path
from typing import Any

import typer

from .config import load_options
from .errors import ClaudeSDKError
from .query import query as run_query
from .types import (
    AssistantMessage,
    Message,
    Options,
    PermissionMode,
    ResultMessage,
    SystemMessage,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
    UserMessage,
)

app = typer.Typer(add_completion=False, help="ccstream: stream typed messages from the Claude Code CLI")


def message_to_dict(msg: Message) -> dict[str, Any]:
    d = dataclasses.asdict(msg)
    d["kind"] = type(msg).__name__
    return d


def format_message(msg: Message) -> str:
    match msg:
        case UserMessage(content=content):
            return f"user: {content}"
        case AssistantMessage(content=blocks):
            parts: list[str] = []
            for b in blocks:
                match b:
                    case TextBlock(text=text):
                        parts.append(text)
                    case ToolUseBlock(name=name, input=args):
                        parts.append(f"[tool_use {name}] {json.dumps(args, ensure_ascii=False)}")
                    case ToolResultBlock(tool_use_id=tid, is_error=is_error):
                        parts.append(f"[tool_result {tid}{' error' if is_error else ''}]")
            return "\n".join(parts)
        case SystemMessage(subtype=subtype):
            return f"system: {subtype}"
        case ResultMessage():
            return (
                f"result: {msg.subtype} turns={msg.num_turns} "
                f"duration_ms={msg.duration_ms} cost_usd={msg.cost_usd:.4f}"
            )
    return repr(msg)


@app.command("query")
def query_cmd(
    prompt: str = typer.Argument(..., help="Prompt to send"),
    config: Path | None = typer.Option(None, "--config", "-c", help="YAML file with query options"),
    model: str | None = typer.Option(None, "--model", help="Model identifier"),
    allowed_tools: list[str] = typer.Option([], "--allowed-tool", help="Allow a tool (repeatable)"),
    disallowed_tools: list[str] = typer.Option([], "--disallowed-tool", help="Deny a tool (repeatable)"),
    permission_mode: PermissionMode | None = typer.Option(None, "--permission-mode"),
    max_turns: int = typer.Option(0, "--max-turns", help="Turn limit (0 = CLI default)"),
    resume: str | None = typer.Option(None, "--resume", help="Session id to resume"),
    continue_conversation: bool = typer.Option(False, "--continue", help="Continue the last conversation"),
    cwd: Path | None = typer.Option(None, "--cwd", help="Working directory for the CLI"),
    cli_path: str | None = typer.Option(None, "--cli-path", help="Path to the claude executable"),
    as_json: bool = typer.Option(False, "--json", help="Print one JSON object per message"),
    log_level: str | None = typer.Option(None, "--log-level", help="e.g. DEBUG, INFO"),
) -> None:
    if log_level:
        logging.basicConfig(level=log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    opts = load_options(config) if config else Options()
    overrides: dict[str, Any] = {}
    if model:
        overrides["model"] = model
    if allowed_tools:
        overrides["allowed_tools"] = tuple(allowed_tools)
    if disallowed_tools:
        overrides["disallowed_tools"] = tuple(disallowed_tools)
    if permission_mode:
        overrides["permission_mode"] = permission_mode
    if max_turns:
        overrides["max_turns"] = max_turns
    if resume:
        overrides["resume"] = resume
    if continue_conversation:
        overrides["continue_conversation"] = True
    if cwd:
        overrides["cwd"] = cwd.resolve()
    if cli_path:
        overrides["cli_path"] = cli_path
    opts = dataclasses.replace(opts, **overrides)

    try:
        stream = run_query(prompt, opts)
    except ClaudeSDKError as e:
        typer.secho(str(e), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2) from e

    with stream:
        try:
            for msg in stream.messages:
                if as_json:
                    typer.echo(json.dumps(message_to_dict(msg), ensure_ascii=False, default=str))
                else:
                    typer.echo(format_message(msg))
        except KeyboardInterrupt:
            stream.cancel()
            typer.secho("Cancelled.", fg=typer.colors.YELLOW, err=True)
            raise typer.Exit(code=130)

        failed = False
        for err in stream.errors:
            failed = True
            typer.secho(str(err), fg=typer.colors.RED, err=True)

    if failed:
        raise typer.Exit(code=1)


@app.callback()
def _root() -> None:
    # Keep `query` as an explicit subcommand.
    pass


def main() -> None:
    # Entry point for console script.
    app()


if __name__ == "__main__":
    main()
