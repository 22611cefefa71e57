"""
Coding Agent - Retrieval-Augmented Codebase Assistant
=====================================================

A conversational agent that answers questions about a codebase and edits
it, combining similarity search over an embedded index of the source
files with a bounded tool-calling loop against a language model.

This package provides:
- Agent loop with a streamed progress-event protocol
- Chunk index, retriever and codebase indexer (RAG)
- File tools (read, write, list) with workspace confinement
- OpenAI-compatible and Ollama model providers
"""

__version__ = "0.1.0"
