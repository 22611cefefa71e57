import json

import httpx
import pytest

from coding_agent.agent.messages import AssistantMessage, HumanMessage, SystemMessage, ToolMessage
from coding_agent.llm.base import ModelInvocationError, ToolCall
from coding_agent.llm.ollama_provider import OllamaChatModel, OllamaEmbedder
from coding_agent.tools import default_registry


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_chat_sends_transcript_and_tools() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["payload"] = json.loads(request.content)
        return httpx.Response(200, json={"message": {"role": "assistant", "content": "Hello"}})

    async with _client(handler) as http_client:
        model = OllamaChatModel(model="llama3", http_client=http_client)
        response = await model.invoke(
            [
                SystemMessage("sys"),
                HumanMessage("q"),
                AssistantMessage(tool_calls=(ToolCall("c1", "read_file", {"path": "a.py"}),)),
                ToolMessage("c1", "print(1)"),
            ],
            default_registry().get_all(),
        )

    assert response.content == "Hello"
    assert not response.has_tool_calls
    assert seen["url"] == "http://localhost:11434/api/chat"

    payload = seen["payload"]
    assert payload["model"] == "llama3"
    assert payload["stream"] is False
    assert [t["function"]["name"] for t in payload["tools"]] == ["read_file", "write_file", "list_files"]
    assert payload["messages"][2]["tool_calls"] == [
        {"function": {"name": "read_file", "arguments": {"path": "a.py"}}}
    ]
    assert payload["messages"][3] == {"role": "tool", "content": "print(1)"}


@pytest.mark.asyncio
async def test_chat_parses_tool_calls_and_synthesizes_ids() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"message": {
            "role": "assistant",
            "content": "",
            "tool_calls": [
                {"function": {"name": "list_files", "arguments": {"path": "src"}}},
                {"function": {"name": "read_file", "arguments": '{"path": "b.py"}'}},
            ],
        }})

    async with _client(handler) as http_client:
        response = await OllamaChatModel(http_client=http_client).invoke([HumanMessage("q")])

    assert response.tool_calls == [
        ToolCall("call_0", "list_files", {"path": "src"}),
        ToolCall("call_1", "read_file", {"path": "b.py"}),
    ]


@pytest.mark.asyncio
async def test_http_error_raises_model_invocation_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="model not loaded")

    async with _client(handler) as http_client:
        with pytest.raises(ModelInvocationError, match="HTTP 500"):
            await OllamaChatModel(http_client=http_client).invoke([HumanMessage("q")])


@pytest.mark.asyncio
async def test_connection_error_raises_model_invocation_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(handler) as http_client:
        with pytest.raises(ModelInvocationError):
            await OllamaChatModel(http_client=http_client).invoke([HumanMessage("q")])


@pytest.mark.asyncio
async def test_missing_message_raises_model_invocation_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"done": True})

    async with _client(handler) as http_client:
        with pytest.raises(ModelInvocationError):
            await OllamaChatModel(http_client=http_client).invoke([HumanMessage("q")])


@pytest.mark.asyncio
async def test_embedder_posts_prompt_to_custom_base_url() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["payload"] = json.loads(request.content)
        return httpx.Response(200, json={"embedding": [0.1, 0.2, 0.3]})

    async with _client(handler) as http_client:
        embedder = OllamaEmbedder(base_url="http://gpu-box:11434/", http_client=http_client)
        vector = await embedder.embed("retry logic")

    assert vector == [0.1, 0.2, 0.3]
    assert seen["url"] == "http://gpu-box:11434/api/embeddings"
    assert seen["payload"] == {"model": "nomic-embed-text", "prompt": "retry logic"}


@pytest.mark.asyncio
async def test_embedder_rejects_empty_embedding() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"embedding": []})

    async with _client(handler) as http_client:
        with pytest.raises(ModelInvocationError):
            await OllamaEmbedder(http_client=http_client).embed("x")
