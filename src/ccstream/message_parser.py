from __future__ import annotations

from typing import Any, TypeVar

from .types import (
    AssistantMessage,
    ContentBlock,
    Message,
    ResultMessage,
    SystemMessage,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
    UserMessage,
)

T = TypeVar("T")

_MISSING = object()


def _get(obj: Any, key: str, kind: type[T] | tuple[type, ...], default: T) -> T:
    """Return obj[key] if obj is a dict and the value has the expected shape.

    Absent keys and wrong-shaped values both yield `default`. `bool` is never
    accepted as a number even though it subclasses int.
    """

    if not isinstance(obj, dict):
        return default
    v = obj.get(key, _MISSING)
    if v is _MISSING or not isinstance(v, kind):
        return default
    if isinstance(v, bool) and kind is not bool:
        return default
    return v  # type: ignore[return-value]


def _as_int(obj: Any, key: str) -> int:
    # JSON numbers may arrive as floats (e.g. 1234.0).
    v = _get(obj, key, (int, float), 0)
    try:
        return int(v)
    except (OverflowError, ValueError):
        # inf / nan
        return 0


def _as_float(obj: Any, key: str) -> float:
    v = _get(obj, key, (int, float), 0.0)
    try:
        return float(v)
    except OverflowError:
        # Integer literal beyond float range.
        return 0.0


def parse_content_block(data: Any) -> ContentBlock | None:
    t = _get(data, "type", str, "")
    if t == "text":
        return TextBlock(text=_get(data, "text", str, ""))
    if t == "tool_use":
        return ToolUseBlock(
            id=_get(data, "id", str, ""),
            name=_get(data, "name", str, ""),
            input=_get(data, "input", dict, {}),
        )
    if t == "tool_result":
        return ToolResultBlock(
            tool_use_id=_get(data, "tool_use_id", str, ""),
            content=data.get("content"),
            is_error=_get(data, "is_error", bool, False),
        )
    return None


def _parse_user(data: dict[str, Any]) -> UserMessage:
    msg = _get(data, "message", dict, {})
    return UserMessage(content=_get(msg, "content", str, ""))


def _parse_assistant(data: dict[str, Any]) -> AssistantMessage:
    msg = _get(data, "message", dict, {})
    blocks: list[ContentBlock] = []
    for raw in _get(msg, "content", list, []):
        block = parse_content_block(raw)
        if block is not None:
            blocks.append(block)
    return AssistantMessage(content=tuple(blocks))


def _parse_system(data: dict[str, Any]) -> SystemMessage:
    return SystemMessage(subtype=_get(data, "subtype", str, ""), data=data)


def _parse_result(data: dict[str, Any]) -> ResultMessage:
    # Older CLIs emit `total_cost`; fall back when it is absent or unusable.
    total_cost = _get(data, "total_cost", (int, float), None)
    total_key = "total_cost" if total_cost is not None else "total_cost_usd"
    return ResultMessage(
        subtype=_get(data, "subtype", str, ""),
        cost_usd=_as_float(data, "cost_usd"),
        duration_ms=_as_int(data, "duration_ms"),
        duration_api_ms=_as_int(data, "duration_api_ms"),
        is_error=_get(data, "is_error", bool, False),
        num_turns=_as_int(data, "num_turns"),
        session_id=_get(data, "session_id", str, ""),
        total_cost_usd=_as_float(data, total_key),
        usage=_get(data, "usage", dict, {}),
        result=_get(data, "result", str, ""),
    )


_PARSERS = {
    "user": _parse_user,
    "assistant": _parse_assistant,
    "system": _parse_system,
    "result": _parse_result,
}


def parse_message(data: dict[str, Any]) -> Message | None:
    """Build a typed message from one decoded record.

    Unknown or missing `type` values yield None so newer CLI record kinds pass
    through without breaking older clients.
    """

    parser = _PARSERS.get(_get(data, "type", str, ""))
    if parser is None:
        return None
    return parser(data)
