"""
Transcript Messages
===================

The conversation sent to the model on every turn:

    system      fixed instructions + retrieved codebase context (always first)
    human       the user's query (and earlier user turns)
    assistant   model output, possibly carrying tool calls
    tool        the result of one tool call, keyed by its call id

Transcript enforces the ordering rules the providers rely on: tool
results answer the tool calls of the assistant message right before them,
each call is answered once, and nothing is ever removed or reordered.
"""

import json
from dataclasses import dataclass, field
from typing import Iterable, Union

from coding_agent.llm.base import ToolCall
from coding_agent.utils.logger import Logger

logger = Logger("Transcript")


@dataclass(frozen=True)
class SystemMessage:
    content: str
    role: str = field(default="system", init=False)

    def to_openai_message(self) -> dict:
        return {"role": "system", "content": self.content}


@dataclass(frozen=True)
class HumanMessage:
    content: str
    role: str = field(default="user", init=False)

    def to_openai_message(self) -> dict:
        return {"role": "user", "content": self.content}


@dataclass(frozen=True)
class AssistantMessage:
    """Model output; `tool_calls` is empty for a plain answer."""
    content: str = ""
    tool_calls: tuple[ToolCall, ...] = ()
    role: str = field(default="assistant", init=False)

    def to_openai_message(self) -> dict:
        message: dict = {"role": "assistant", "content": self.content or None}
        if self.tool_calls:
            message["tool_calls"] = [
                {
                    "id": tc.id,
                    "type": "function",
                    "function": {
                        "name": tc.name,
                        "arguments": json.dumps(tc.arguments)
                    }
                }
                for tc in self.tool_calls
            ]
        elif message["content"] is None:
            message["content"] = ""
        return message


@dataclass(frozen=True)
class ToolMessage:
    """The result of one tool call."""
    tool_call_id: str
    content: str
    name: str = ""
    role: str = field(default="tool", init=False)

    def to_openai_message(self) -> dict:
        return {
            "role": "tool",
            "tool_call_id": self.tool_call_id,
            "content": self.content
        }


Message = Union[SystemMessage, HumanMessage, AssistantMessage, ToolMessage]


class Transcript:
    """
    Append-only, ordered list of messages for one conversation turn.

    Example:
        transcript = Transcript([SystemMessage(prompt)])
        transcript.append(HumanMessage("Where is the config loaded?"))
        response = await model.invoke(transcript.messages, tools)

    Raises ValueError from append() when a message would break ordering.
    """

    def __init__(self, messages: Iterable[Message] = ()):
        self._messages: list[Message] = []
        # Call ids of the latest assistant message not yet answered
        self._pending_ids: set[str] = set()
        # True while only tool results have followed the latest assistant message
        self._in_tool_block = False

        for message in messages:
            self.append(message)

    def append(self, message: Message) -> None:
        if isinstance(message, SystemMessage):
            if self._messages:
                raise ValueError("A system message may only start the transcript")

        elif isinstance(message, ToolMessage):
            if not self._in_tool_block:
                raise ValueError(
                    f"Tool result {message.tool_call_id!r} does not follow an assistant message"
                )
            if message.tool_call_id not in self._pending_ids:
                raise ValueError(
                    f"Tool result {message.tool_call_id!r} answers no pending tool call"
                )
            self._pending_ids.discard(message.tool_call_id)

        elif isinstance(message, AssistantMessage):
            self._pending_ids = {tc.id for tc in message.tool_calls}
            self._in_tool_block = bool(message.tool_calls)

        elif not isinstance(message, HumanMessage):
            raise TypeError(f"Unsupported message type: {type(message).__name__}")

        if not isinstance(message, (AssistantMessage, ToolMessage)):
            self._pending_ids = set()
            self._in_tool_block = False

        self._messages.append(message)

    def extend(self, messages: Iterable[Message]) -> None:
        for message in messages:
            self.append(message)

    @property
    def messages(self) -> list[Message]:
        """A copy of the messages in order."""
        return list(self._messages)

    @property
    def pending_tool_call_ids(self) -> set[str]:
        return set(self._pending_ids)

    def to_openai_messages(self) -> list[dict]:
        return [m.to_openai_message() for m in self._messages]

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self):
        return iter(self._messages)


_HUMAN_ROLES = {"user", "human"}
_ASSISTANT_ROLES = {"assistant", "ai"}


def messages_from_history(history: Iterable[dict] | None) -> list[Message]:
    """
    Convert carried-over conversation turns into transcript messages.

    Accepts plain dicts like {"role": "user", "content": "..."}; "human"
    and "ai" are accepted as aliases. Entries with another role (including
    system, which the agent always supplies itself) or without text
    content are skipped.
    """
    messages: list[Message] = []
    for entry in history or []:
        if not isinstance(entry, dict):
            logger.warning(f"Skipping history entry of type {type(entry).__name__}")
            continue

        role = str(entry.get("role", "")).lower()
        content = entry.get("content")
        if not isinstance(content, str):
            logger.warning(f"Skipping history entry without text content (role={role!r})")
            continue

        if role in _HUMAN_ROLES:
            messages.append(HumanMessage(content))
        elif role in _ASSISTANT_ROLES:
            messages.append(AssistantMessage(content))
        else:
            logger.warning(f"Skipping history entry with role {role!r}")

    return messages


def validate_history(history: Iterable[Message]) -> None:
    """
    Check that carried-over messages can follow a system message.

    Raises:
        ValueError: If the history breaks transcript ordering (a system
            message, or a tool result with no matching tool call)
    """
    Transcript([SystemMessage(""), *history])
