from __future__ import annotations

import io

from ccstream.errors import CLIJSONDecodeError
from ccstream.stream_parser import decode_line, iter_stream_json_lines


def test_iter_stream_json_lines_parses_ndjson() -> None:
    s = io.BytesIO(b'{"type":"system","session_id":"abc"}\n{"type":"user","message":{"content":"hi"}}\n')
    lines = list(iter_stream_json_lines(s))

    assert len(lines) == 2
    assert lines[0].obj and lines[0].obj["session_id"] == "abc"
    assert lines[1].obj and lines[1].obj["message"] == {"content": "hi"}


def test_structured_looking_invalid_json_is_a_decode_error() -> None:
    s = io.BytesIO(b'{"type":"ok"}\n{"type": oops\n{"type":"after"}\n')
    lines = list(iter_stream_json_lines(s))

    assert len(lines) == 3
    assert lines[0].obj is not None and lines[0].error is None
    assert lines[1].obj is None
    assert isinstance(lines[1].error, CLIJSONDecodeError)
    assert lines[1].error.line == '{"type": oops'
    # The failure does not affect the following line.
    assert lines[2].obj == {"type": "after"}


def test_bracket_prefixed_garbage_is_a_decode_error() -> None:
    sl = decode_line("[not json")
    assert sl is not None
    assert isinstance(sl.error, CLIJSONDecodeError)


def test_json_array_is_not_a_record() -> None:
    sl = decode_line("[1, 2]")
    assert sl is not None
    assert sl.obj is None
    assert isinstance(sl.error, CLIJSONDecodeError)


def test_noise_lines_are_dropped() -> None:
    noise: list[str] = []
    s = io.BytesIO(b"Loading plugins...\n42\n\n   \n{\"type\":\"result\"}\n")
    lines = list(iter_stream_json_lines(s, on_noise=noise.append))

    assert [sl.obj for sl in lines] == [{"type": "result"}]
    assert noise == ["Loading plugins...", "42"]


def test_accepts_iterable_of_bytes_and_crlf() -> None:
    lines = list(iter_stream_json_lines([b'{"a":1}\r\n', b'{"b":2}']))
    assert [sl.obj for sl in lines] == [{"a": 1}, {"b": 2}]


def test_invalid_utf8_is_replaced_not_fatal() -> None:
    lines = list(iter_stream_json_lines(io.BytesIO(b'{"text":"\xff"}\n')))
    assert lines[0].obj == {"text": "�"}


def test_oversized_integer_is_a_decode_error_and_stream_continues() -> None:
    huge = "9" * 5000
    s = io.BytesIO(
        f'{{"type":"result","num_turns":{huge}}}\n{{"type":"user","message":{{"content":"after"}}}}\n'.encode()
    )
    lines = list(iter_stream_json_lines(s))

    assert len(lines) == 2
    assert isinstance(lines[0].error, CLIJSONDecodeError)
    assert lines[1].obj == {"type": "user", "message": {"content": "after"}}


def test_deeply_nested_array_is_a_decode_error() -> None:
    sl = decode_line("[" * 100000)
    assert sl is not None
    assert sl.obj is None
    assert isinstance(sl.error, CLIJSONDecodeError)


def test_oversized_integer_without_structural_prefix_is_noise() -> None:
    assert decode_line("9" * 5000) is None
