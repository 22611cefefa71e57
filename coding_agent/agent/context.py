"""
Context Assembly
================

Builds the transcript the agent loop starts from:

    1. system  instructions + codebase context retrieved for the query
    2. ...     prior conversation carried over by the caller
    3. human   the new query

Retrieval may come back empty (no index, no embedder, no embeddings, or an
embedding error). The system message then carries the instructions only
and the model answers from the tools and its own knowledge.
"""

from typing import Iterable

from coding_agent.agent.messages import (
    HumanMessage,
    Message,
    SystemMessage,
    Transcript,
)
from coding_agent.rag import ContextRetriever
from coding_agent.utils.logger import Logger

logger = Logger("Context")


BASE_SYSTEM_PROMPT = """You are a skilled software engineer agent.
You have access to tools to read, write, and list files.
You also have context from the codebase provided below.

When asked to create or modify code, first understand the codebase context, then plan your changes, and finally use the tools to apply them."""


def build_system_prompt(context: str) -> str:
    """The system prompt, with a codebase context section when there is one."""
    if not context:
        return BASE_SYSTEM_PROMPT
    return f"{BASE_SYSTEM_PROMPT}\n\nCodebase Context:\n{context}"


class ContextAssembler:
    """
    Assembles the starting transcript for a query.

    Example:
        assembler = ContextAssembler(retriever, top_k=5)
        transcript = await assembler.assemble("Add a --verbose flag", history)
    """

    def __init__(self, retriever: ContextRetriever, top_k: int = 5):
        self.retriever = retriever
        self.top_k = top_k

    async def assemble(
        self,
        query: str,
        history: Iterable[Message] = ()
    ) -> Transcript:
        """
        Retrieve context and build system + history + query.

        Raises:
            ValueError: If the history itself breaks transcript ordering
        """
        context = await self.retriever.retrieve_context(query, k=self.top_k)

        transcript = Transcript([SystemMessage(build_system_prompt(context))])
        transcript.extend(history)
        transcript.append(HumanMessage(query))

        logger.debug(
            f"Assembled transcript: {len(transcript)} messages, "
            f"{len(context)} chars of codebase context"
        )
        return transcript
