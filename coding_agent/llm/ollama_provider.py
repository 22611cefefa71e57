"""
Ollama Provider
===============

Chat and embedding capabilities for a local Ollama server, using its
native REST API through httpx:

- POST /api/chat        non-streaming chat with tool definitions
- POST /api/embeddings  one embedding per prompt

Ollama differences from the OpenAI wire format:
- tool-call arguments are JSON objects, not JSON strings
- tool calls carry no ids, so ids are synthesized ("call_0", "call_1", ...)
- tool results are plain role="tool" messages
"""

import json
from typing import TYPE_CHECKING, Any, Sequence

import httpx

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

logger = Logger("Ollama")

DEFAULT_OLLAMA_URL = "http://localhost:11434"


def _to_ollama_message(message: dict) -> dict:
    """Rewrite an OpenAI-format message dict into Ollama's chat format."""
    converted: dict[str, Any] = {
        "role": message["role"],
        "content": message.get("content") or "",
    }

    for tc in message.get("tool_calls") or []:
        arguments = tc["function"].get("arguments") or "{}"
        if isinstance(arguments, str):
            try:
                arguments = json.loads(arguments)
            except json.JSONDecodeError:
                arguments = {}
        converted.setdefault("tool_calls", []).append({
            "function": {"name": tc["function"]["name"], "arguments": arguments}
        })

    return converted


def _parse_ollama_tool_calls(message: dict) -> list[ToolCall]:
    tool_calls = []
    for i, tc in enumerate(message.get("tool_calls") or []):
        function = tc.get("function") or {}
        name = function.get("name")
        if not name:
            raise ModelInvocationError(f"Ollama returned a tool call without a name: {tc!r}")

        arguments = function.get("arguments") or {}
        if isinstance(arguments, str):
            try:
                arguments = json.loads(arguments)
            except json.JSONDecodeError as e:
                logger.error(f"Failed to parse arguments for {name}", e)
                arguments = {}
        if not isinstance(arguments, dict):
            arguments = {}

        tool_calls.append(ToolCall(
            id=tc.get("id") or f"call_{i}",
            name=name,
            arguments=arguments
        ))
    return tool_calls


class _OllamaClient:
    """Shared request plumbing for the chat model and the embedder."""

    def __init__(
        self,
        base_url: str | None,
        timeout: float,
        http_client: httpx.AsyncClient | None
    ):
        self.base_url = (base_url or DEFAULT_OLLAMA_URL).rstrip("/")
        self.timeout = timeout
        self._http_client = http_client

    async def post(self, endpoint: str, payload: dict) -> dict:
        """
        POST a JSON payload and return the decoded JSON body.

        Raises:
            ModelInvocationError: On connection errors, HTTP errors or a
                body that is not a JSON object
        """
        url = f"{self.base_url}{endpoint}"
        try:
            if self._http_client is not None:
                response = await self._http_client.post(url, json=payload, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(url, json=payload)
        except httpx.HTTPError as e:
            raise ModelInvocationError(f"Ollama request to {url} failed: {e}") from e

        if response.status_code >= 400:
            logger.error(f"Ollama API error: {response.status_code} - {response.text}")
            raise ModelInvocationError(
                f"Ollama returned HTTP {response.status_code}: {response.text[:200]}"
            )

        try:
            body = response.json()
        except ValueError as e:
            raise ModelInvocationError(f"Ollama returned invalid JSON: {e}") from e

        if not isinstance(body, dict):
            raise ModelInvocationError("Ollama returned an unexpected response shape")
        return body


class OllamaChatModel(LanguageModel):
    """
    Chat model served by Ollama.

    Example:
        model = OllamaChatModel(model="llama3")
        response = await model.invoke(transcript.messages, registry.get_all())
    """

    def __init__(
        self,
        model: str = "llama3",
        base_url: str | None = None,
        temperature: float = 0.0,
        timeout: float = 120.0,
        http_client: httpx.AsyncClient | None = None
    ):
        self._client = _OllamaClient(base_url, timeout, http_client)
        self.model = model
        self.name = model
        self.temperature = temperature

        logger.info(f"Chat model initialized: {model} at {self._client.base_url}")

    async def invoke(
        self,
        messages: Sequence["Message"],
        tools: Sequence["ToolDefinition"] = ()
    ) -> ModelResponse:
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [_to_ollama_message(m.to_openai_message()) for m in messages],
            "stream": False,
            "options": {"temperature": self.temperature},
        }
        if tools:
            payload["tools"] = [t.to_openai_function() for t in tools]

        body = await self._client.post("/api/chat", payload)

        message = body.get("message")
        if not isinstance(message, dict):
            raise ModelInvocationError("Ollama chat response has no message")

        return ModelResponse(
            content=message.get("content") or "",
            tool_calls=_parse_ollama_tool_calls(message)
        )


class OllamaEmbedder(Embedder):
    """Embeddings from an Ollama embedding model (default: nomic-embed-text)."""

    def __init__(
        self,
        model: str = "nomic-embed-text",
        base_url: str | None = None,
        timeout: float = 120.0,
        http_client: httpx.AsyncClient | None = None
    ):
        self._client = _OllamaClient(base_url, timeout, http_client)
        self.model = model

        logger.info(f"Embedder initialized with model: {model}")

    async def embed(self, text: str) -> list[float]:
        body = await self._client.post("/api/embeddings", {"model": self.model, "prompt": text})

        embedding = body.get("embedding")
        if not isinstance(embedding, list) or not embedding:
            raise ModelInvocationError("Ollama embedding response has no embedding")
        return [float(x) for x in embedding]
