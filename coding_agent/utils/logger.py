"""
Logger Utility
==============

Console logging for the agent. Every component owns a named logger:

    from coding_agent.utils.logger import Logger

    logger = Logger("Agent")
    logger.info("Starting turn")
    logger.debug("Tool arguments", {"path": "src/app.py"})

Output format:
    [TIMESTAMP] [LEVEL] [Context] message

All log lines go to stderr. The `run` command writes its progress events
to stdout as newline-delimited JSON, so stdout must stay clean for the
consumer that parses it.

Environment:
    LOG_LEVEL   DEBUG, INFO (default), WARNING/WARN or ERROR
    NO_COLOR    when set, ANSI colours are disabled
"""

import json
import os
import sys
from datetime import datetime
from enum import IntEnum
from typing import Any, TextIO


class LogLevel(IntEnum):
    """Numeric log levels; higher is more severe."""
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40


class Colors:
    """ANSI escape codes for colored terminal output."""
    RESET = "\033[0m"
    DEBUG = "\033[36m"    # Cyan
    INFO = "\033[32m"     # Green
    WARNING = "\033[33m"  # Yellow
    ERROR = "\033[31m"    # Red
    DIM = "\033[2m"


_LEVEL_NAMES = {
    "DEBUG": LogLevel.DEBUG,
    "INFO": LogLevel.INFO,
    "WARNING": LogLevel.WARNING,
    "WARN": LogLevel.WARNING,
    "ERROR": LogLevel.ERROR,
}


def parse_log_level(value: str | None, default: LogLevel = LogLevel.INFO) -> LogLevel:
    """
    Map a level name such as "debug" or "WARN" to a LogLevel.

    Unknown or empty names fall back to the default.
    """
    if not value:
        return default
    return _LEVEL_NAMES.get(value.strip().upper(), default)


_default_level = parse_log_level(os.getenv("LOG_LEVEL"))


def set_default_level(level: LogLevel) -> None:
    """Set the level for every logger created without an explicit one."""
    global _default_level
    _default_level = level


def _use_color(stream: TextIO) -> bool:
    if os.getenv("NO_COLOR"):
        return False
    return hasattr(stream, "isatty") and stream.isatty()


class Logger:
    """
    A context-aware logger writing colored lines to stderr.

    Example:
        logger = Logger("Agent")
        tool_logger = logger.child("Tools")
        tool_logger.info("Executing read_file")
        # [2025-01-31T10:30:00] [INFO] [Agent:Tools] Executing read_file
    """

    def __init__(self, context: str = "", level: LogLevel | None = None):
        """
        Args:
            context: Prefix shown on every line (e.g. "Agent", "Retriever")
            level: Minimum level; follows the process-wide default (LOG_LEVEL)
                when omitted
        """
        self.context = context
        self._level = level

    @property
    def _min_level(self) -> LogLevel:
        return self._level if self._level is not None else _default_level

    def child(self, child_context: str) -> "Logger":
        """Create a logger whose context is nested under this one."""
        new_context = f"{self.context}:{child_context}" if self.context else child_context
        return Logger(new_context, self._level)

    def _format_message(self, level: str, message: str, color: str, colored: bool) -> str:
        timestamp = datetime.now().isoformat(timespec="seconds")
        context_str = f"[{self.context}] " if self.context else ""

        if not colored:
            return f"[{timestamp}] [{level}] {context_str}{message}"

        return (
            f"{Colors.DIM}[{timestamp}]{Colors.RESET} "
            f"{color}[{level}]{Colors.RESET} "
            f"{context_str}{message}"
        )

    def _log(
        self,
        level: LogLevel,
        level_name: str,
        color: str,
        message: str,
        data: dict[str, Any] | None = None
    ) -> None:
        if level < self._min_level:
            return

        stream = sys.stderr
        colored = _use_color(stream)
        print(self._format_message(level_name, message, color, colored), file=stream)

        if data:
            data_str = json.dumps(data, indent=2, default=str)
            if colored:
                data_str = f"{Colors.DIM}{data_str}{Colors.RESET}"
            print(data_str, file=stream)

    def debug(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Log detail useful while developing; shown only with LOG_LEVEL=DEBUG."""
        self._log(LogLevel.DEBUG, "DEBUG", Colors.DEBUG, message, data)

    def info(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Log general operational information."""
        self._log(LogLevel.INFO, "INFO", Colors.INFO, message, data)

    def warning(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Log a recoverable problem (degraded retrieval, skipped file, ...)."""
        self._log(LogLevel.WARNING, "WARN", Colors.WARNING, message, data)

    def error(self, message: str, error: Exception | None = None) -> None:
        """
        Log an error, optionally with the exception that caused it.

        Args:
            message: The error message
            error: Exception whose type and text are attached as data
        """
        data = None
        if error:
            data = {
                "error_type": type(error).__name__,
                "error_message": str(error),
            }
        self._log(LogLevel.ERROR, "ERROR", Colors.ERROR, message, data)


# Default logger instance for the command-line entry point
logger = Logger("CodingAgent")
