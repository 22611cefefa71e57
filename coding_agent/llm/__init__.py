"""
Model Providers
===============

Abstract chat/embedding capabilities and their per-provider
implementations:

- base.py:             LanguageModel, Embedder, ModelResponse, ToolCall
- openai_provider.py:  OpenAI, OpenRouter and LM Studio (OpenAI-compatible)
- ollama_provider.py:  Local Ollama server over httpx
- factory.py:          Pick the implementation for the configured provider

The agent loop only ever sees the abstract interfaces.
"""

from coding_agent.llm.base import (
    Embedder,
    LanguageModel,
    ModelInvocationError,
    ModelResponse,
    ToolCall,
)
from coding_agent.llm.factory import create_embedder, create_model

__all__ = [
    "Embedder",
    "LanguageModel",
    "ModelInvocationError",
    "ModelResponse",
    "ToolCall",
    "create_embedder",
    "create_model",
]
