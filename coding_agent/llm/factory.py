"""
Provider Factory
================

Builds the language model and embedder for the configured provider:

    provider     chat model          embedder
    ---------    ----------------    -----------------------------------
    openai       OpenAIChatModel     OpenAIEmbedder if a key is set
    openrouter   OpenAIChatModel     OpenAIEmbedder if OPENAI_API_KEY set
    lmstudio     OpenAIChatModel     OpenAIEmbedder if OPENAI_API_KEY set
    ollama       OllamaChatModel     OllamaEmbedder

When no embedder can be built the agent still works, it just answers
without retrieved context.
"""

from coding_agent.llm.base import Embedder, LanguageModel
from coding_agent.llm.ollama_provider import OllamaChatModel, OllamaEmbedder
from coding_agent.llm.openai_provider import OpenAIChatModel, OpenAIEmbedder
from coding_agent.utils.config import SUPPORTED_PROVIDERS, ConfigurationError, LLMConfig
from coding_agent.utils.logger import Logger

logger = Logger("LLMFactory")


def create_model(config: LLMConfig) -> LanguageModel:
    """
    Create the chat model for a provider.

    Raises:
        ConfigurationError: Unknown provider, or openai without an API key
    """
    if config.provider == "openai":
        if not config.api_key:
            raise ConfigurationError("The openai provider requires an API key (OPENAI_API_KEY)")
        return OpenAIChatModel(
            api_key=config.api_key,
            model=config.model,
            base_url=config.base_url,
            temperature=config.temperature,
            timeout=config.timeout_seconds,
        )

    if config.provider in ("openrouter", "lmstudio"):
        # LM Studio ignores the key but the SDK insists on one
        return OpenAIChatModel(
            api_key=config.api_key or "not-needed",
            model=config.model,
            base_url=config.base_url,
            temperature=config.temperature,
            timeout=config.timeout_seconds,
        )

    if config.provider == "ollama":
        return OllamaChatModel(
            model=config.model,
            base_url=config.base_url,
            temperature=config.temperature,
            timeout=config.timeout_seconds,
        )

    raise ConfigurationError(
        f"Unsupported provider: {config.provider!r} "
        f"(expected one of: {', '.join(SUPPORTED_PROVIDERS)})"
    )


def create_embedder(config: LLMConfig) -> Embedder | None:
    """
    Create the embedder for a provider, or None when none is available.

    Raises:
        ConfigurationError: Unknown provider
    """
    if config.provider == "ollama":
        return OllamaEmbedder(
            model=config.embedding_model,
            base_url=config.base_url,
            timeout=config.timeout_seconds,
        )

    if config.provider == "openai":
        api_key = config.embedding_api_key or config.api_key
        if not api_key:
            logger.warning("No OPENAI_API_KEY for embeddings; indexing and retrieval run without vectors")
            return None
        return OpenAIEmbedder(
            api_key=api_key,
            model=config.embedding_model,
            base_url=config.base_url,
            timeout=config.timeout_seconds,
        )

    if config.provider in ("openrouter", "lmstudio"):
        if not config.embedding_api_key:
            logger.warning(
                f"No OPENAI_API_KEY for embeddings with provider {config.provider}; "
                "answers will not use codebase context"
            )
            return None
        return OpenAIEmbedder(
            api_key=config.embedding_api_key,
            model=config.embedding_model,
            timeout=config.timeout_seconds,
        )

    raise ConfigurationError(f"Unsupported provider: {config.provider!r}")
