"""
Configuration Management
========================

All environment variables the agent understands are read and validated
here, once, into frozen dataclasses.

Usage:
    from coding_agent.utils.config import get_config

    config = get_config()
    print(config.llm.provider)
    print(config.agent.index_path)

The command-line entry point overrides individual fields with
dataclasses.replace() rather than mutating the environment.
"""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from coding_agent.utils.logger import Logger

logger = Logger("Config")


class ConfigurationError(ValueError):
    """Raised when required configuration is missing or invalid."""


SUPPORTED_PROVIDERS = ("openai", "openrouter", "lmstudio", "ollama")

# Per-provider defaults: (chat model, base URL)
PROVIDER_DEFAULTS: dict[str, tuple[str, str | None]] = {
    "openai": ("gpt-4o", None),
    "openrouter": ("openai/gpt-4o", "https://openrouter.ai/api/v1"),
    "lmstudio": ("local-model", "http://localhost:1234/v1"),
    "ollama": ("llama3", "http://localhost:11434"),
}

DEFAULT_INDEX_PATH = Path(".coding-agent") / "index.json"

_TRUE_WORDS = ("true", "1", "yes", "on")
_FALSE_WORDS = ("false", "0", "no", "off")


def _optional(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _optional_int(name: str, default: int) -> int:
    """Get an optional integer environment variable; invalid values use the default."""
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning(f"{name} is not a valid integer, using default: {default}")
        return default


def _optional_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning(f"{name} is not a valid number, using default: {default}")
        return default


def _optional_bool(name: str, default: bool) -> bool:
    """
    Get an optional boolean environment variable.

    Raises:
        ConfigurationError: If the value is not a recognised true/false word
    """
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    normalized = value.strip().lower()
    if normalized in _TRUE_WORDS:
        return True
    if normalized in _FALSE_WORDS:
        return False
    raise ConfigurationError(
        f"{name} must be one of: {', '.join(_TRUE_WORDS + _FALSE_WORDS)} (got {value!r})"
    )


# ==============================================================================
# Configuration Dataclasses
# ==============================================================================

@dataclass(frozen=True)
class LLMConfig:
    """Which model provider to call and how to reach it."""
    provider: str                   # openai | openrouter | lmstudio | ollama
    api_key: str | None             # Provider API key
    model: str                      # Chat model name
    embedding_model: str            # Embedding model name
    base_url: str | None = None     # Endpoint override (openrouter, lmstudio, ollama)
    embedding_api_key: str | None = None  # OpenAI key used for embeddings when chatting elsewhere
    timeout_seconds: float = 120.0
    temperature: float = 0.0


@dataclass(frozen=True)
class AgentConfig:
    """Agent loop settings."""
    index_path: Path        # Persisted chunk index (JSON)
    root_dir: Path          # Workspace root for tools
    max_turns: int          # Turn budget per query
    top_k: int              # Chunks retrieved per query
    confine_paths: bool     # Keep tool paths inside root_dir


@dataclass(frozen=True)
class IndexingConfig:
    """Settings for building the chunk index."""
    chunk_size: int
    chunk_overlap: int
    max_file_bytes: int
    batch_size: int


@dataclass(frozen=True)
class Config:
    """
    Root configuration object.

        config = get_config()
        config.llm.model
        config.agent.max_turns
    """
    llm: LLMConfig
    agent: AgentConfig
    indexing: IndexingConfig
    log_level: str


def _load_llm_config() -> LLMConfig:
    provider = _optional("LLM_PROVIDER", "openai").lower()
    if provider not in SUPPORTED_PROVIDERS:
        raise ConfigurationError(
            f"Unsupported LLM_PROVIDER: {provider!r} "
            f"(expected one of: {', '.join(SUPPORTED_PROVIDERS)})"
        )

    default_model, default_base_url = PROVIDER_DEFAULTS[provider]
    openai_key = os.getenv("OPENAI_API_KEY") or None

    # Presence of the key is checked by create_model, not here
    if provider == "openai":
        api_key = os.getenv("LLM_API_KEY") or openai_key
    else:
        api_key = os.getenv("LLM_API_KEY") or None

    default_embedding = "nomic-embed-text" if provider == "ollama" else "text-embedding-3-small"

    return LLMConfig(
        provider=provider,
        api_key=api_key,
        model=_optional("LLM_MODEL", default_model),
        embedding_model=_optional("EMBEDDING_MODEL", default_embedding),
        base_url=_optional("LLM_BASE_URL", default_base_url or "") or None,
        embedding_api_key=openai_key,
        timeout_seconds=_optional_float("LLM_TIMEOUT_SECONDS", 120.0),
        temperature=_optional_float("LLM_TEMPERATURE", 0.0),
    )


def load_config() -> Config:
    """
    Load and validate all configuration from the environment (and .env).

    Raises:
        ConfigurationError: If required configuration is missing
    """
    load_dotenv()

    max_turns = _optional_int("AGENT_MAX_TURNS", 15)
    if max_turns < 1:
        raise ConfigurationError(f"AGENT_MAX_TURNS must be at least 1, got {max_turns}")

    chunk_size = _optional_int("INDEX_CHUNK_SIZE", 2000)
    chunk_overlap = _optional_int("INDEX_CHUNK_OVERLAP", 200)
    if chunk_overlap >= chunk_size:
        raise ConfigurationError("INDEX_CHUNK_OVERLAP must be smaller than INDEX_CHUNK_SIZE")

    return Config(
        llm=_load_llm_config(),
        agent=AgentConfig(
            index_path=Path(_optional("AGENT_INDEX_PATH", str(DEFAULT_INDEX_PATH))),
            root_dir=Path(_optional("AGENT_ROOT_DIR", os.getcwd())),
            max_turns=max_turns,
            top_k=_optional_int("AGENT_TOP_K", 5),
            confine_paths=_optional_bool("AGENT_CONFINE_PATHS", True),
        ),
        indexing=IndexingConfig(
            chunk_size=chunk_size,
            chunk_overlap=chunk_overlap,
            max_file_bytes=_optional_int("INDEX_MAX_FILE_BYTES", 100 * 1024),
            batch_size=_optional_int("INDEX_BATCH_SIZE", 50),
        ),
        log_level=_optional("LOG_LEVEL", "info"),
    )


# ==============================================================================
# Singleton
# ==============================================================================

_config_instance: Config | None = None


def get_config() -> Config:
    """Get the configuration, loading it on first access."""
    global _config_instance
    if _config_instance is None:
        _config_instance = load_config()
    return _config_instance


def reset_config() -> None:
    """Forget the cached configuration so the next get_config() reloads it."""
    global _config_instance
    _config_instance = None
