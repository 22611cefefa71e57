"""
Model Capabilities
==================

The agent depends on two abstract capabilities, each implemented once per
model provider:

- LanguageModel.invoke(messages, tools) -> ModelResponse
    One round-trip to a chat model. The response is either a plain answer
    (no tool calls) or a batch of tool calls the agent must execute.

- Embedder.embed(text) -> vector
    Turns text into an embedding used for similarity search.

Neither capability retries. A provider that cannot produce a well-formed
response raises ModelInvocationError and the agent loop reports it.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Sequence

if TYPE_CHECKING:
    from coding_agent.agent.messages import Message
    from coding_agent.tools import ToolDefinition


class ModelInvocationError(RuntimeError):
    """A provider call failed or returned a response we cannot use."""


@dataclass
class ToolCall:
    """
    A tool call requested by the model.

    Attributes:
        id: Correlation id issued by the model (echoed in the tool result)
        name: The tool name
        arguments: Unvalidated arguments payload
    """
    id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)


@dataclass
class ModelResponse:
    """
    One response from a language model.

    Attributes:
        content: Text content (the answer when there are no tool calls)
        tool_calls: Tool calls in the order the model issued them
    """
    content: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)

    @property
    def has_tool_calls(self) -> bool:
        return len(self.tool_calls) > 0


class LanguageModel(ABC):
    """A chat model that can be constrained to a set of tools."""

    name: str = "model"

    @abstractmethod
    async def invoke(
        self,
        messages: Sequence["Message"],
        tools: Sequence["ToolDefinition"] = ()
    ) -> ModelResponse:
        """
        Send the transcript to the model and return its response.

        Args:
            messages: The full transcript, system message first
            tools: Tools the model may call

        Raises:
            ModelInvocationError: On transport failure or malformed output
        """


class Embedder(ABC):
    """Produces embedding vectors for text."""

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        """Embed a single text (used for queries)."""

    async def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        """Embed several texts, preserving order."""
        return [await self.embed(text) for text in texts]
