"""
OpenAI-Compatible Provider
==========================

Chat and embedding capabilities backed by the `openai` SDK.

The same client serves three providers:
- openai:      api.openai.com, API key required
- openrouter:  https://openrouter.ai/api/v1, API key required by the service
- lmstudio:    a local OpenAI-compatible server (http://localhost:1234/v1),
               any placeholder key is accepted

Tool calling uses the chat completions `tools` parameter with
tool_choice="auto"; the model's tool-call arguments arrive as JSON strings
and are decoded here.
"""

import json
from typing import TYPE_CHECKING, Any, Sequence

from openai import AsyncOpenAI, OpenAIError

from coding_agent.llm.base import (
    Embedder,
    LanguageModel,
    ModelInvocationError,
    ModelResponse,
    ToolCall,
)
from coding_agent.utils.logger import Logger

if TYPE_CHECKING:
    from coding_agent.agent.messages import Message
    from coding_agent.tools import ToolDefinition

logger = Logger("OpenAI")


def parse_tool_calls(message: Any) -> list[ToolCall]:
    """
    Parse tool calls from a chat completion message.

    Arguments that are not valid JSON are replaced with an empty dict; the
    tool's argument validation then reports the problem back to the model.
    """
    if not getattr(message, "tool_calls", None):
        return []

    tool_calls = []
    for tc in message.tool_calls:
        raw_arguments = tc.function.arguments or "{}"
        try:
            arguments = json.loads(raw_arguments)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse arguments for {tc.function.name}", e)
            arguments = {}

        if not isinstance(arguments, dict):
            arguments = {}

        tool_calls.append(ToolCall(
            id=tc.id or "unknown",
            name=tc.function.name,
            arguments=arguments
        ))

    logger.debug(f"Parsed {len(tool_calls)} tool calls")
    return tool_calls


class OpenAIChatModel(LanguageModel):
    """
    Chat model using the OpenAI chat completions API.

    Example:
        model = OpenAIChatModel(api_key="sk-...", model="gpt-4o")
        response = await model.invoke(transcript.messages, registry.get_all())
    """

    def __init__(
        self,
        api_key: str | None,
        model: str = "gpt-4o",
        base_url: str | None = None,
        temperature: float = 0.0,
        timeout: float = 120.0,
        client: AsyncOpenAI | None = None
    ):
        self.client = client or AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
        )
        self.model = model
        self.name = model
        self.temperature = temperature

        logger.info(f"Chat model initialized: {model}" + (f" at {base_url}" if base_url else ""))

    async def invoke(
        self,
        messages: Sequence["Message"],
        tools: Sequence["ToolDefinition"] = ()
    ) -> ModelResponse:
        request: dict[str, Any] = {
            "model": self.model,
            "messages": [m.to_openai_message() for m in messages],
            "temperature": self.temperature,
        }
        if tools:
            request["tools"] = [t.to_openai_function() for t in tools]
            request["tool_choice"] = "auto"

        try:
            response = await self.client.chat.completions.create(**request)
        except OpenAIError as e:
            raise ModelInvocationError(f"Chat completion failed: {e}") from e

        if not response.choices:
            raise ModelInvocationError("Chat completion returned no choices")

        message = response.choices[0].message
        return ModelResponse(
            content=message.content or "",
            tool_calls=parse_tool_calls(message)
        )


class OpenAIEmbedder(Embedder):
    """
    Generates text embeddings using OpenAI's embeddings API.

    Example:
        embedder = OpenAIEmbedder(api_key="sk-...", model="text-embedding-3-small")
        vector = await embedder.embed("where is the retry logic?")
    """

    def __init__(
        self,
        api_key: str | None,
        model: str = "text-embedding-3-small",
        base_url: str | None = None,
        timeout: float = 120.0,
        client: AsyncOpenAI | None = None
    ):
        self.client = client or AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
        )
        self.model = model

        logger.info(f"Embedder initialized with model: {model}")

    async def embed(self, text: str) -> list[float]:
        vectors = await self.embed_batch([text])
        return vectors[0]

    async def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        """Embed texts in a single API call, in input order."""
        if not texts:
            return []

        try:
            response = await self.client.embeddings.create(
                model=self.model,
                input=list(texts)
            )
        except OpenAIError as e:
            raise ModelInvocationError(f"Embedding request failed: {e}") from e

        data = sorted(response.data, key=lambda d: d.index)
        if len(data) != len(texts):
            raise ModelInvocationError(
                f"Expected {len(texts)} embeddings, received {len(data)}"
            )

        logger.debug(f"Generated {len(data)} embeddings (dim={len(data[0].embedding)})")
        return [d.embedding for d in data]
