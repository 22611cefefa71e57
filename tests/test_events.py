import json

import pytest
from pydantic import ValidationError

from coding_agent.agent.events import (
    ErrorEvent,
    MessageEvent,
    ToolResultEvent,
    ToolStartEvent,
    TurnsExhaustedEvent,
    encode_ndjson,
    parse_event,
    summarize,
    to_json,
)


def test_events_serialize_with_their_type_tag() -> None:
    assert json.loads(to_json(ToolStartEvent(names=["read_file", "list_files"]))) == {
        "type": "tool_start", "names": ["read_file", "list_files"]
    }
    assert json.loads(to_json(ToolResultEvent(name="read_file", output="a\nb"))) == {
        "type": "tool_result", "name": "read_file", "output": "a\nb"
    }
    assert json.loads(to_json(TurnsExhaustedEvent(turns=15))) == {
        "type": "turns_exhausted", "turns": 15
    }


def test_parse_event_picks_the_right_model() -> None:
    event = parse_event('{"type": "error", "description": "boom"}')
    assert event == ErrorEvent(description="boom")


def test_parse_event_rejects_unknown_types() -> None:
    with pytest.raises(ValidationError):
        parse_event('{"type": "progress", "percent": 10}')


def test_terminal_events() -> None:
    assert MessageEvent(content="done").is_terminal
    assert ErrorEvent(description="x").is_terminal
    assert TurnsExhaustedEvent(turns=3).is_terminal
    assert not ToolStartEvent(names=[]).is_terminal
    assert not ToolResultEvent(name="n", output="").is_terminal


@pytest.mark.asyncio
async def test_encode_ndjson_writes_one_line_per_event() -> None:
    async def events():
        yield ToolResultEvent(name="read_file", output="line one\nline two")
        yield MessageEvent(content="done")

    lines = [line async for line in encode_ndjson(events())]

    assert len(lines) == 2
    assert all(line.endswith("\n") and line.count("\n") == 1 for line in lines)
    assert parse_event(lines[0]).output == "line one\nline two"


def test_summarize_truncates_long_fields() -> None:
    summary = summarize(ToolResultEvent(name="read_file", output="x" * 500))

    assert summary.startswith("tool_result(")
    assert len(summary) < 200
