"""
Codebase Indexer
================

Builds the chunk index the agent retrieves from.

The indexer:
1. Walks the source tree for code and docs (.ts, .tsx, .js, .jsx, .py, .json, .md)
2. Skips build output, dependencies and VCS metadata
3. Skips files over 100 KB and files that are not UTF-8 text
4. Splits each file into overlapping chunks
5. Embeds the chunks in batches (when an embedder is available)
6. Writes the snapshot as JSON

Without an embedder the index is saved text-only; the agent loads it but
retrieval stays disabled until the codebase is re-indexed with embeddings.
"""

import os
from fnmatch import fnmatch
from pathlib import Path
from typing import Sequence

from coding_agent.llm.base import Embedder
from coding_agent.rag.vectorstore import ChunkIndex, IndexedChunk
from coding_agent.utils.logger import Logger

logger = Logger("Indexer")

DEFAULT_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx", ".py", ".json", ".md")
DEFAULT_EXCLUDES = (
    "*/node_modules/*",
    "*/dist/*",
    "*/.git/*",
    "*/common/temp/*",
    "*/.coding-agent/*",
)


class TextSplitter:
    """
    Splits text into overlapping windows, preferring natural break points.

    Each window is cut at the last paragraph break, then line break, then
    space inside it, provided the cut lies past half the overlap. The next
    window starts `chunk_overlap` characters before the cut and always
    advances by at least one character.

    Example:
        splitter = TextSplitter(chunk_size=2000, chunk_overlap=200)
        chunks = splitter.split_text(source)
    """

    SEPARATORS = ("\n\n", "\n", " ")

    def __init__(self, chunk_size: int = 2000, chunk_overlap: int = 200):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be greater than 0")
        if chunk_overlap < 0:
            raise ValueError("chunk_overlap must be non-negative")
        if chunk_overlap >= chunk_size:
            raise ValueError("chunk_overlap must be smaller than chunk_size")

        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap

    def split_text(self, text: str) -> list[str]:
        if not text:
            return []

        chunks: list[str] = []
        start = 0

        while start < len(text):
            end = start + self.chunk_size

            if end >= len(text):
                chunks.append(text[start:])
                break

            window = text[start:end]
            for sep in self.SEPARATORS:
                cut = window.rfind(sep)
                if cut != -1 and cut > self.chunk_overlap / 2:
                    end = start + cut + len(sep)
                    break

            chunks.append(text[start:end])
            start = max(start + 1, end - self.chunk_overlap)

        return chunks


class CodebaseIndexer:
    """
    Indexes a source tree into a ChunkIndex snapshot.

    Example:
        indexer = CodebaseIndexer(Path("."), embedder=embedder)
        index = await indexer.index_to(Path(".coding-agent/index.json"))
        print(f"Indexed {len(index)} chunks")
    """

    def __init__(
        self,
        root: Path,
        embedder: Embedder | None = None,
        extensions: Sequence[str] = DEFAULT_EXTENSIONS,
        exclude: Sequence[str] = DEFAULT_EXCLUDES,
        chunk_size: int = 2000,
        chunk_overlap: int = 200,
        max_file_bytes: int = 100 * 1024,
        batch_size: int = 50
    ):
        """
        Args:
            root: Directory to index; chunk locations are relative to it
            embedder: Embedding capability, or None for a text-only index
            extensions: File suffixes to include
            exclude: fnmatch patterns matched against "/<relative path>"
            chunk_size: Maximum characters per chunk
            chunk_overlap: Characters shared by consecutive chunks
            max_file_bytes: Larger files are skipped
            batch_size: Chunks per embedding request
        """
        self.root = Path(root).resolve()
        self.embedder = embedder
        self.extensions = tuple(ext.lower() for ext in extensions)
        self.exclude = tuple(exclude)
        self.splitter = TextSplitter(chunk_size, chunk_overlap)
        self.max_file_bytes = max_file_bytes
        self.batch_size = max(1, batch_size)

    def _is_excluded(self, relative: str) -> bool:
        candidate = f"/{relative}"
        return any(fnmatch(candidate, pattern) for pattern in self.exclude)

    def discover_files(self) -> list[Path]:
        """List indexable files under the root, sorted by path."""
        files = []
        for dirpath, dirnames, filenames in os.walk(self.root):
            rel_dir = Path(dirpath).relative_to(self.root).as_posix()
            rel_dir = "" if rel_dir == "." else f"{rel_dir}/"

            # Prune excluded directories before descending into them
            dirnames[:] = sorted(
                d for d in dirnames
                if not self._is_excluded(f"{rel_dir}{d}/")
            )

            for name in filenames:
                relative = f"{rel_dir}{name}"
                if Path(name).suffix.lower() in self.extensions and not self._is_excluded(relative):
                    files.append(Path(dirpath) / name)

        return sorted(files)

    def chunk_files(self, files: Sequence[Path]) -> list[IndexedChunk]:
        """Read and split files into chunks without embeddings."""
        chunks = []
        for file in files:
            try:
                if file.stat().st_size > self.max_file_bytes:
                    logger.warning(f"Skipping large file: {file}")
                    continue
                content = file.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.warning(f"Failed to read/split file {file}: {e}")
                continue

            location = file.relative_to(self.root).as_posix()
            for text in self.splitter.split_text(content):
                chunks.append(IndexedChunk(location=location, text=text))

        return chunks

    async def embed_chunks(self, chunks: list[IndexedChunk]) -> list[IndexedChunk]:
        """
        Attach embeddings to chunks, batch by batch.

        A failed batch is logged. If any chunk ends up without a vector, all
        vectors are dropped so the index stays uniformly text-only.
        """
        if self.embedder is None:
            logger.warning(
                "No embedder configured. Skipping embedding generation. Index will be text-only."
            )
            return chunks

        embedded: list[IndexedChunk] = []
        total_batches = (len(chunks) + self.batch_size - 1) // self.batch_size
        failed = 0

        for batch_no, start in enumerate(range(0, len(chunks), self.batch_size), start=1):
            batch = chunks[start:start + self.batch_size]
            try:
                vectors = await self.embedder.embed_batch([c.text for c in batch])
                if len(vectors) != len(batch):
                    raise ValueError(f"expected {len(batch)} vectors, got {len(vectors)}")
            except Exception as e:
                logger.error(f"Error embedding batch {batch_no}/{total_batches}", e)
                embedded.extend(batch)
                failed += 1
                continue

            embedded.extend(
                IndexedChunk(location=c.location, text=c.text, vector=tuple(v))
                for c, v in zip(batch, vectors)
            )
            logger.info(f"Processed batch {batch_no}/{total_batches}")

        if failed:
            logger.warning(
                f"{failed} of {total_batches} embedding batches failed; saving a text-only index"
            )
            return [IndexedChunk(location=c.location, text=c.text) for c in embedded]

        return embedded

    async def build(self) -> ChunkIndex:
        """Discover, chunk and embed the codebase into an in-memory index."""
        logger.info(f"Scanning {self.root} for files...")
        files = self.discover_files()
        logger.info(f"Found {len(files)} files.")

        chunks = self.chunk_files(files)
        logger.info(f"Generated {len(chunks)} chunks. Generating embeddings...")

        return ChunkIndex(await self.embed_chunks(chunks))

    async def index_to(self, output: Path) -> ChunkIndex:
        """Build the index and save it to `output`."""
        index = await self.build()
        index.save(output)
        return index
