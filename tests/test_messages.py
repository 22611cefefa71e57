import pytest

from coding_agent.agent.messages import (
    AssistantMessage,
    HumanMessage,
    SystemMessage,
    ToolMessage,
    Transcript,
    messages_from_history,
    validate_history,
)
from coding_agent.llm.base import ToolCall


def _tool_turn(*ids: str) -> AssistantMessage:
    return AssistantMessage(tool_calls=tuple(ToolCall(id=i, name="read_file") for i in ids))


def test_system_message_only_first() -> None:
    transcript = Transcript([SystemMessage("sys"), HumanMessage("q")])

    with pytest.raises(ValueError):
        transcript.append(SystemMessage("again"))


def test_tool_results_answer_pending_calls_once() -> None:
    transcript = Transcript([SystemMessage("sys"), HumanMessage("q"), _tool_turn("a", "b")])

    transcript.append(ToolMessage("b", "second"))
    assert transcript.pending_tool_call_ids == {"a"}

    with pytest.raises(ValueError):
        transcript.append(ToolMessage("b", "again"))

    transcript.append(ToolMessage("a", "first"))
    assert transcript.pending_tool_call_ids == set()


def test_tool_result_needs_a_preceding_tool_call() -> None:
    transcript = Transcript([HumanMessage("q")])

    with pytest.raises(ValueError):
        transcript.append(ToolMessage("a", "orphan"))


def test_tool_result_after_a_human_turn_is_rejected() -> None:
    transcript = Transcript([HumanMessage("q"), _tool_turn("a"), HumanMessage("interrupt")])

    with pytest.raises(ValueError):
        transcript.append(ToolMessage("a", "late"))


def test_messages_returns_a_copy() -> None:
    transcript = Transcript([HumanMessage("q")])

    transcript.messages.append(HumanMessage("sneaky"))

    assert len(transcript) == 1


def test_openai_serialization_of_tool_turn() -> None:
    message = AssistantMessage(
        tool_calls=(ToolCall(id="c1", name="write_file", arguments={"path": "a", "content": "b"}),)
    ).to_openai_message()

    assert message["content"] is None
    assert message["tool_calls"] == [{
        "id": "c1",
        "type": "function",
        "function": {"name": "write_file", "arguments": '{"path": "a", "content": "b"}'},
    }]
    assert ToolMessage("c1", "ok").to_openai_message() == {
        "role": "tool", "tool_call_id": "c1", "content": "ok"
    }


def test_messages_from_history_keeps_user_and_assistant_turns() -> None:
    history = [
        {"role": "user", "content": "hi"},
        {"role": "ai", "content": "hello"},
        {"role": "system", "content": "ignore me"},
        {"role": "human", "content": "again"},
        {"role": "assistant"},
        "not a dict",
    ]

    assert messages_from_history(history) == [
        HumanMessage("hi"),
        AssistantMessage("hello"),
        HumanMessage("again"),
    ]


def test_messages_from_empty_history() -> None:
    assert messages_from_history(None) == []


def test_transcript_to_openai_messages_keeps_order() -> None:
    transcript = Transcript([
        SystemMessage("sys"),
        HumanMessage("q"),
        AssistantMessage(tool_calls=(ToolCall(id="c1", name="list_files", arguments={}),)),
        ToolMessage("c1", "a.py"),
        AssistantMessage("done"),
    ])

    assert [m["role"] for m in transcript.to_openai_messages()] == [
        "system", "user", "assistant", "tool", "assistant",
    ]
    assert transcript.to_openai_messages()[-1] == {"role": "assistant", "content": "done"}


def test_validate_history_accepts_complete_tool_turns() -> None:
    validate_history([
        HumanMessage("q"),
        _tool_turn("a"),
        ToolMessage("a", "result"),
        AssistantMessage("answer"),
    ])


def test_validate_history_rejects_orphan_tool_result() -> None:
    with pytest.raises(ValueError):
        validate_history([HumanMessage("q"), ToolMessage("a", "stale")])
