"""
Chunk Index
===========

A read-only, in-memory index of source-file chunks with cosine similarity
search.

The index is loaded once from a JSON snapshot written by the indexer:

    [
      {"path": "src/app.py", "content": "def main(): ...", "embedding": [0.1, ...]},
      ...
    ]

`embedding` is absent when the index was built without an embedder. A
snapshot is either fully embedded or not at all; anything else (mixed
presence, differing dimensions) is treated as an index without vectors
and retrieval returns nothing.

Cosine Similarity:
    cos(A, B) = (A · B) / (||A|| * ||B||)
    Defined as 0 when either vector has zero length.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Sequence

import numpy as np

from coding_agent.utils.logger import Logger

logger = Logger("ChunkIndex")


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity of two equal-length vectors.

    Returns 0.0 when either norm is zero.

    Raises:
        ValueError: If the vectors differ in length
    """
    vec_a = np.asarray(a, dtype=float)
    vec_b = np.asarray(b, dtype=float)
    if vec_a.shape != vec_b.shape:
        raise ValueError(f"Vector length mismatch: {vec_a.shape[0]} != {vec_b.shape[0]}")

    norm_a = np.linalg.norm(vec_a)
    norm_b = np.linalg.norm(vec_b)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    return float(np.dot(vec_a, vec_b) / (norm_a * norm_b))


@dataclass(frozen=True)
class IndexedChunk:
    """
    A retrievable slice of a source file.

    Attributes:
        location: File path relative to the indexing root
        text: The chunk's literal content
        vector: Embedding, or None when the index has no embeddings
    """
    location: str
    text: str
    vector: tuple[float, ...] | None = None

    def to_dict(self) -> dict:
        """Convert to the on-disk record format."""
        data: dict[str, Any] = {"path": self.location, "content": self.text}
        if self.vector is not None:
            data["embedding"] = list(self.vector)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "IndexedChunk":
        """
        Create from an on-disk record.

        Raises:
            ValueError: If the record is malformed
        """
        if not isinstance(data, dict):
            raise ValueError(f"Chunk record must be an object, got {type(data).__name__}")

        location = data.get("path")
        text = data.get("content")
        if not isinstance(location, str) or not isinstance(text, str):
            raise ValueError("Chunk record needs string 'path' and 'content'")

        raw_vector = data.get("embedding")
        vector = None
        if raw_vector is not None:
            if not isinstance(raw_vector, list) or not all(
                isinstance(x, (int, float)) and not isinstance(x, bool) for x in raw_vector
            ):
                raise ValueError(f"Chunk embedding for {location} must be a list of numbers")
            vector = tuple(float(x) for x in raw_vector)

        return cls(location=location, text=text, vector=vector)


@dataclass(frozen=True)
class ScoredChunk:
    """A chunk with its similarity to the query."""
    chunk: IndexedChunk
    score: float


class ChunkIndex:
    """
    Immutable collection of chunks searchable by cosine similarity.

    Example:
        index = ChunkIndex.load(Path(".coding-agent/index.json"))
        if index.has_vectors:
            for result in index.search(query_vector, k=5):
                print(result.chunk.location, result.score)
    """

    def __init__(self, chunks: Iterable[IndexedChunk] = ()):
        self._chunks: tuple[IndexedChunk, ...] = tuple(chunks)
        self._matrix = self._build_matrix(self._chunks)

    @staticmethod
    def _build_matrix(chunks: Sequence[IndexedChunk]) -> np.ndarray | None:
        if not chunks:
            return None

        with_vectors = sum(1 for c in chunks if c.vector is not None)
        if with_vectors == 0:
            return None
        if with_vectors != len(chunks):
            logger.warning(
                f"Index mixes embedded and non-embedded chunks "
                f"({with_vectors}/{len(chunks)}); similarity search disabled"
            )
            return None

        dimensions = {len(c.vector) for c in chunks}
        if len(dimensions) != 1 or 0 in dimensions:
            logger.warning(f"Index has inconsistent embedding dimensions {sorted(dimensions)}; "
                           "similarity search disabled")
            return None

        matrix = np.array([c.vector for c in chunks], dtype=float)
        # The snapshot is never mutated after load
        matrix.setflags(write=False)
        return matrix

    @classmethod
    def load(cls, path: Path) -> "ChunkIndex":
        """
        Load an index snapshot from disk.

        A missing, unreadable or malformed file yields an empty index; the
        agent then answers without retrieved context.
        """
        path = Path(path)
        if not path.exists():
            logger.warning(f"Index file not found at {path}. Agent will work without RAG.")
            return cls()

        try:
            with open(path, encoding="utf-8") as f:
                records = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read index file {path}", e)
            return cls()

        if not isinstance(records, list):
            logger.error(f"Index file {path} does not contain a list of chunks")
            return cls()

        try:
            chunks = [IndexedChunk.from_dict(record) for record in records]
        except ValueError as e:
            logger.error(f"Index file {path} contains a malformed chunk", e)
            return cls()

        index = cls(chunks)
        logger.info(
            f"Loaded {len(index)} chunks from {path}"
            + ("" if index.has_vectors else " (no embeddings)")
        )
        return index

    def save(self, path: Path) -> None:
        """Write the snapshot to disk, creating the parent directory."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump([c.to_dict() for c in self._chunks], f, indent=2)
        logger.info(f"Index saved to {path} ({len(self)} chunks)")

    @property
    def chunks(self) -> tuple[IndexedChunk, ...]:
        return self._chunks

    @property
    def has_vectors(self) -> bool:
        """True when every chunk carries an embedding of one common dimension."""
        return self._matrix is not None

    @property
    def dimension(self) -> int | None:
        return None if self._matrix is None else int(self._matrix.shape[1])

    def search(self, query_vector: Sequence[float], k: int = 5) -> list[ScoredChunk]:
        """
        Return the k chunks most similar to the query, highest score first.

        Ties keep index order. Returns an empty list when the index has no
        vectors, k is not positive, or the query dimension does not match.
        """
        if self._matrix is None or k <= 0:
            return []

        query = np.asarray(query_vector, dtype=float)
        if query.ndim != 1 or query.shape[0] != self._matrix.shape[1]:
            logger.warning(
                f"Query vector dimension {query.shape[-1] if query.ndim else 0} "
                f"does not match index dimension {self._matrix.shape[1]}"
            )
            return []

        query_norm = np.linalg.norm(query)
        doc_norms = np.linalg.norm(self._matrix, axis=1)
        denominators = doc_norms * query_norm

        dots = self._matrix @ query
        similarities = np.divide(
            dots,
            denominators,
            out=np.zeros_like(dots),
            where=denominators != 0
        )

        order = np.argsort(-similarities, kind="stable")[:k]
        return [ScoredChunk(chunk=self._chunks[i], score=float(similarities[i])) for i in order]

    def __len__(self) -> int:
        return len(self._chunks)
