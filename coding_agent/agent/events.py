"""
Progress Events
===============

What the agent loop reports while it works. A caller iterates
Agent.run_stream() and receives, in order:

    tool_start        {"names": [...]}           model asked for a batch of tools
    tool_result       {"name": ..., "output": ...} one tool finished
    message           {"content": ...}            final answer            (terminal)
    error             {"description": ...}        model invocation failed (terminal)
    turns_exhausted   {"turns": N}                turn budget used up     (terminal)

Exactly one terminal event ends every run.

On the wire each event is one JSON object per line (NDJSON), tagged with
its `type`, so a consumer can parse each line as soon as it arrives.
"""

import json
from typing import Annotated, AsyncIterable, AsyncIterator, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter


TERMINAL_TYPES = frozenset({"message", "error", "turns_exhausted"})


class _Event(BaseModel):
    type: str

    @property
    def is_terminal(self) -> bool:
        """True for the events that end a run."""
        return self.type in TERMINAL_TYPES


class ToolStartEvent(_Event):
    """The model requested a batch of tool calls (names in call order)."""
    type: Literal["tool_start"] = "tool_start"
    names: list[str]


class ToolResultEvent(_Event):
    """A registered tool finished; `output` is what the model will see."""
    type: Literal["tool_result"] = "tool_result"
    name: str
    output: str


class MessageEvent(_Event):
    """The model's final answer."""
    type: Literal["message"] = "message"
    content: str


class ErrorEvent(_Event):
    """The model could not be invoked; the run is over."""
    type: Literal["error"] = "error"
    description: str


class TurnsExhaustedEvent(_Event):
    """The turn budget ran out before the model produced an answer."""
    type: Literal["turns_exhausted"] = "turns_exhausted"
    turns: int


ProgressEvent = Annotated[
    Union[ToolStartEvent, ToolResultEvent, MessageEvent, ErrorEvent, TurnsExhaustedEvent],
    Field(discriminator="type"),
]

_event_adapter = TypeAdapter(ProgressEvent)


def to_json(event: BaseModel) -> str:
    """Serialize an event as a single-line JSON record."""
    return event.model_dump_json()


def parse_event(line: str | bytes) -> ProgressEvent:
    """
    Parse one NDJSON record back into an event.

    Raises:
        pydantic.ValidationError: If the record is not a known event
    """
    return _event_adapter.validate_json(line)


async def encode_ndjson(events: AsyncIterable[BaseModel]) -> AsyncIterator[str]:
    """
    Encode an event stream as newline-delimited JSON, one line per event.

    Pulls the next event only after the previous line has been consumed.
    """
    async for event in events:
        yield to_json(event) + "\n"


def summarize(event: BaseModel) -> str:
    """Short human-readable description of an event (for logs)."""
    data = json.loads(to_json(event))
    kind = data.pop("type")
    preview = ", ".join(f"{k}={str(v)[:60]!r}" for k, v in data.items())
    return f"{kind}({preview})"
