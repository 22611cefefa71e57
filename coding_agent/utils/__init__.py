"""
Utilities Module
================

Common utilities shared across the application:
- logger: Leveled, context-aware logging to stderr
- config: Centralized configuration management
"""

from coding_agent.utils.logger import Logger, logger
from coding_agent.utils.config import Config, ConfigurationError, get_config

__all__ = ["Logger", "logger", "get_config", "Config", "ConfigurationError"]
