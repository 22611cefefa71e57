"""
RAG (Retrieval Augmented Generation)
====================================

Semantic search over a precomputed index of the codebase. Instead of
putting whole files into the prompt, the agent embeds the user's query,
finds the most similar chunks and injects only those.

Components:
- vectorstore.py: ChunkIndex, the read-only chunk snapshot and its search
- indexer.py:     CodebaseIndexer, builds the snapshot from a source tree

Retrieval never fails a turn. An empty index, a missing embedder, an index
built without embeddings or an embedding error all produce an empty
context, and the model answers unaided.
"""

from coding_agent.llm.base import Embedder
from coding_agent.rag.indexer import CodebaseIndexer, TextSplitter
from coding_agent.rag.vectorstore import ChunkIndex, IndexedChunk, ScoredChunk, cosine_similarity
from coding_agent.utils.logger import Logger

logger = Logger("Retriever")

CONTEXT_SEPARATOR = "\n---\n"


class ContextRetriever:
    """
    Finds the chunks relevant to a query and formats them for the prompt.

    Example:
        retriever = ContextRetriever(ChunkIndex.load(index_path), embedder)
        context = await retriever.retrieve_context("where is auth handled?", k=5)
    """

    def __init__(self, index: ChunkIndex, embedder: Embedder | None = None):
        self.index = index
        self.embedder = embedder

    @property
    def enabled(self) -> bool:
        """Whether a search can produce anything at all."""
        return self.embedder is not None and self.index.has_vectors

    async def search(self, query: str, k: int = 5) -> list[ScoredChunk]:
        """
        Return up to k chunks ordered by descending similarity.

        Embedding failures are logged and produce an empty result.
        """
        if len(self.index) == 0 or self.embedder is None:
            return []

        if not self.index.has_vectors:
            logger.debug("Index has no embeddings; skipping retrieval")
            return []

        try:
            query_vector = await self.embedder.embed(query)
        except Exception as e:
            logger.error("Error retrieving context", e)
            return []

        results = self.index.search(query_vector, k=k)
        logger.debug(f"Retrieved {len(results)} chunks for query: '{query[:50]}'")
        return results

    async def retrieve_context(self, query: str, k: int = 5) -> str:
        """Search and format the results as one context blob ("" if none)."""
        results = await self.search(query, k=k)
        if results:
            logger.info(f"Retrieved context from {len(results)} chunks")
        return self.format_context(results)

    @staticmethod
    def format_context(results: list[ScoredChunk]) -> str:
        """
        Format results as `File: <path>` / `Content:` blocks joined by `---`.
        """
        return CONTEXT_SEPARATOR.join(
            f"File: {r.chunk.location}\nContent:\n{r.chunk.text}\n"
            for r in results
        )


__all__ = [
    "ChunkIndex",
    "CodebaseIndexer",
    "ContextRetriever",
    "IndexedChunk",
    "ScoredChunk",
    "TextSplitter",
    "cosine_similarity",
]
