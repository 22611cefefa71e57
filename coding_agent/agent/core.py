"""
Agent Core
==========

The agent loop: one user query in, a stream of progress events out.

Agent Loop:
    User Query (+ prior conversation)
         │
         ▼
    Retrieve codebase context (similarity search)
         │
         ▼
    Build transcript: system + history + query
         │
         ▼
    ┌──► Invoke model with transcript and tools ──── error ──► error event
    │        │
    │   ┌─── Has Tool Calls? ───┐
    │   │                       │
    │   Yes                     No
    │   │                       │
    │   ▼                       ▼
    │   tool_start event     message event (done)
    │   run each tool in order,
    │   tool_result event per registered tool,
    │   append results to transcript
    │   │
    └───┘  (at most max_turns times, then turns_exhausted event)

Every run ends with exactly one terminal event: message, error or
turns_exhausted.

The stream is an async generator. Nothing runs ahead of the consumer: the
next model call or tool call starts only when the caller asks for the next
event. A caller that stops iterating does not cancel work already in
flight.
"""

from dataclasses import dataclass, field
from typing import AsyncIterator, Iterable, Union

from coding_agent.agent.context import ContextAssembler
from coding_agent.agent.events import (
    ErrorEvent,
    MessageEvent,
    ProgressEvent,
    ToolResultEvent,
    ToolStartEvent,
    TurnsExhaustedEvent,
    encode_ndjson,
    summarize,
)
from coding_agent.agent.messages import (
    AssistantMessage,
    Message,
    messages_from_history,
    validate_history,
)
from coding_agent.agent.tools_executor import ToolExecutor
from coding_agent.llm.base import Embedder, LanguageModel, ToolCall
from coding_agent.rag import ChunkIndex, ContextRetriever
from coding_agent.tools import ToolContext, ToolRegistry, default_registry
from coding_agent.utils.config import Config, ConfigurationError, get_config
from coding_agent.utils.logger import Logger

logger = Logger("Agent")

HistoryEntry = Union[Message, dict]


@dataclass
class AgentRunResult:
    """
    A fully consumed run.

    Attributes:
        events: Every event, in order
        final_message: Content of the message event, if any
        error: Description of the error event, if any
        exhausted: True when the turn budget ran out
    """
    events: list[ProgressEvent] = field(default_factory=list)
    final_message: str | None = None
    error: str | None = None
    exhausted: bool = False


def _normalize_tool_calls(tool_calls: list[ToolCall], turn: int) -> list[ToolCall]:
    """
    Give every call in a batch a unique, non-empty id.

    Results are correlated by id, so a provider that omits ids or repeats
    them would otherwise make results ambiguous.
    """
    seen: set[str] = set()
    normalized = []
    for i, tc in enumerate(tool_calls):
        call_id = tc.id
        if not call_id or call_id == "unknown" or call_id in seen:
            call_id = f"call_{turn}_{i}"
        seen.add(call_id)
        normalized.append(ToolCall(id=call_id, name=tc.name, arguments=tc.arguments))
    return normalized


def _coerce_history(history: Iterable[HistoryEntry] | None) -> list[Message]:
    messages: list[Message] = []
    for entry in history or []:
        if isinstance(entry, dict):
            messages.extend(messages_from_history([entry]))
        else:
            messages.append(entry)
    return messages


class Agent:
    """
    Retrieval-augmented, tool-using coding agent.

    Each Agent owns its index snapshot and workspace context; separate
    instances share nothing mutable and can serve separate sessions
    concurrently.

    Example:
        agent = Agent.from_config()

        async for event in agent.run_stream("Where is the retry logic?"):
            print(event.type)

        result = await agent.run("Add a docstring to utils.py")
        print(result.final_message)
    """

    DEFAULT_MAX_TURNS = 15

    def __init__(
        self,
        model: LanguageModel | None,
        index: ChunkIndex | None = None,
        embedder: Embedder | None = None,
        registry: ToolRegistry | None = None,
        tool_context: ToolContext | None = None,
        max_turns: int = DEFAULT_MAX_TURNS,
        top_k: int = 5
    ):
        """
        Args:
            model: The language model (required)
            index: Chunk index snapshot; empty when omitted
            embedder: Query embedder; without one, retrieval is skipped
            registry: Tools offered to the model; the file tools by default
            tool_context: Workspace root and path policy for tools
            max_turns: Maximum model invocations per query
            top_k: Chunks retrieved per query

        Raises:
            ConfigurationError: If model is missing or max_turns < 1
        """
        if model is None:
            raise ConfigurationError("A language model is required to run the agent")
        if max_turns < 1:
            raise ConfigurationError(f"max_turns must be at least 1, got {max_turns}")

        self.model = model
        self.index = index if index is not None else ChunkIndex()
        self.embedder = embedder
        self.registry = registry if registry is not None else default_registry()
        self.tool_context = tool_context or ToolContext()
        self.max_turns = max_turns
        self.top_k = top_k

        self.retriever = ContextRetriever(self.index, embedder)
        self.context_assembler = ContextAssembler(self.retriever, top_k)
        self.tool_executor = ToolExecutor(self.registry, self.tool_context)

        logger.info(
            f"Agent initialized with {len(self.index)} indexed chunks, "
            f"tools: {', '.join(self.registry.list_names())}"
        )

    @classmethod
    def from_config(cls, config: Config | None = None) -> "Agent":
        """
        Build an agent from configuration: provider capabilities from the
        factory, index loaded from the configured path.

        Raises:
            ConfigurationError: If the provider cannot be configured
        """
        from coding_agent.llm.factory import create_embedder, create_model

        config = config or get_config()

        return cls(
            model=create_model(config.llm),
            index=ChunkIndex.load(config.agent.index_path),
            embedder=create_embedder(config.llm),
            tool_context=ToolContext(
                root=config.agent.root_dir,
                confine_paths=config.agent.confine_paths
            ),
            max_turns=config.agent.max_turns,
            top_k=config.agent.top_k,
        )

    async def retrieve_context(self, query: str, k: int | None = None) -> str:
        """Codebase context for a query ("" when retrieval is unavailable)."""
        return await self.retriever.retrieve_context(query, k=k if k is not None else self.top_k)

    def run_stream(
        self,
        query: str,
        history: Iterable[HistoryEntry] | None = None
    ) -> AsyncIterator[ProgressEvent]:
        """
        Run one query, yielding progress events as they happen.

        Args:
            query: The user's request
            history: Earlier conversation, as messages or {"role", "content"} dicts

        Returns:
            An async iterator of ToolStartEvent, ToolResultEvent, then
            exactly one of MessageEvent, ErrorEvent or TurnsExhaustedEvent

        Raises:
            ValueError: If the history breaks transcript ordering. Raised by
                this call, before any event is produced.
        """
        messages = _coerce_history(history)
        validate_history(messages)
        return self._stream(query, messages)

    async def _stream(self, query: str, history: list[Message]) -> AsyncIterator[ProgressEvent]:
        logger.info(f"User Query: {query[:100]}")

        transcript = await self.context_assembler.assemble(query, history)
        tools = self.registry.get_all()

        for turn in range(1, self.max_turns + 1):
            logger.debug(f"Turn {turn}/{self.max_turns}")

            try:
                response = await self.model.invoke(transcript.messages, tools)
            except Exception as e:
                logger.error("Error in agent loop", e)
                yield ErrorEvent(description=str(e) or type(e).__name__)
                return

            if not response.has_tool_calls:
                transcript.append(AssistantMessage(content=response.content))
                logger.info(f"Agent Response ({len(response.content)} chars)")
                yield MessageEvent(content=response.content)
                return

            tool_calls = _normalize_tool_calls(response.tool_calls, turn)
            transcript.append(AssistantMessage(content=response.content, tool_calls=tuple(tool_calls)))

            names = [tc.name for tc in tool_calls]
            logger.info(f"Agent wants to use tools: {', '.join(names)}")
            yield ToolStartEvent(names=names)

            for tool_call in tool_calls:
                result = await self.tool_executor.execute_one(tool_call)
                transcript.append(result.to_message())
                if result.found:
                    event = ToolResultEvent(name=result.name, output=result.output)
                    logger.debug(summarize(event))
                    yield event

        logger.warning(f"Reached max turns ({self.max_turns}) without a final answer")
        yield TurnsExhaustedEvent(turns=self.max_turns)

    async def stream_ndjson(
        self,
        query: str,
        history: Iterable[HistoryEntry] | None = None
    ) -> AsyncIterator[str]:
        """run_stream() encoded as newline-delimited JSON lines."""
        async for line in encode_ndjson(self.run_stream(query, history)):
            yield line

    async def run(
        self,
        query: str,
        history: Iterable[HistoryEntry] | None = None
    ) -> AgentRunResult:
        """Consume run_stream() fully and summarize the outcome."""
        result = AgentRunResult()
        async for event in self.run_stream(query, history):
            result.events.append(event)
            if isinstance(event, MessageEvent):
                result.final_message = event.content
            elif isinstance(event, ErrorEvent):
                result.error = event.description
            elif isinstance(event, TurnsExhaustedEvent):
                result.exhausted = True
        return result
