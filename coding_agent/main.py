"""
Coding Agent - Command-Line Entry Point
=======================================

Two commands:

    coding-agent index [--root DIR] [--output FILE]
        Chunk and embed the codebase into the index file.

    coding-agent run QUERY [--index FILE] [--root DIR] [--history FILE]
                           [--max-turns N] [--top-k K] [--no-confine]
        Run the agent and write its progress events to stdout as
        newline-delimited JSON, one event per line.

Exit codes for `run`: 0 answered, 1 configuration or model error,
2 turn budget exhausted.

Run with:
    python -m coding_agent.main run "Where is the config loaded?"
"""

import argparse
import asyncio
import json
import sys
from dataclasses import replace
from pathlib import Path
from typing import Sequence

from coding_agent import __version__
from coding_agent.utils.config import Config, ConfigurationError, get_config
from coding_agent.utils.logger import Logger, parse_log_level, set_default_level

main_logger = Logger("Main")

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_EXHAUSTED = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="coding-agent",
        description="AI coding agent and RAG indexer",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    index_parser = subparsers.add_parser("index", help="Index the codebase")
    index_parser.add_argument("-r", "--root", type=Path, help="Root directory of the codebase")
    index_parser.add_argument("-o", "--output", type=Path, help="Output file for the index")

    run_parser = subparsers.add_parser("run", help="Run the coding agent")
    run_parser.add_argument("query", help="Query for the agent")
    run_parser.add_argument("-i", "--index", type=Path, help="Path to the index file")
    run_parser.add_argument("-r", "--root", type=Path, help="Workspace root for file tools")
    run_parser.add_argument("--history", type=Path,
                            help="JSON file with prior turns: [{\"role\": ..., \"content\": ...}]")
    run_parser.add_argument("--max-turns", type=int, help="Maximum model turns")
    run_parser.add_argument("--top-k", type=int, help="Chunks of context to retrieve")
    run_parser.add_argument("--no-confine", action="store_true",
                            help="Allow file tools to reach outside the workspace root")

    return parser


def apply_overrides(config: Config, args: argparse.Namespace) -> Config:
    """Overlay command-line flags on the environment configuration."""
    agent = config.agent
    if getattr(args, "root", None):
        agent = replace(agent, root_dir=args.root.resolve())
    if getattr(args, "index", None):
        agent = replace(agent, index_path=args.index)
    if getattr(args, "output", None):
        agent = replace(agent, index_path=args.output)
    if getattr(args, "max_turns", None) is not None:
        if args.max_turns < 1:
            raise ConfigurationError("--max-turns must be at least 1")
        agent = replace(agent, max_turns=args.max_turns)
    if getattr(args, "top_k", None) is not None:
        agent = replace(agent, top_k=args.top_k)
    if getattr(args, "no_confine", False):
        agent = replace(agent, confine_paths=False)
    return replace(config, agent=agent)


def load_history(path: Path | None) -> list[dict]:
    """
    Read prior turns from a JSON file.

    Raises:
        ConfigurationError: If the file is missing or not a JSON list
    """
    if path is None:
        return []
    try:
        with open(path, encoding="utf-8") as f:
            history = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Could not read history file {path}: {e}") from e
    if not isinstance(history, list):
        raise ConfigurationError(f"History file {path} must contain a JSON list")
    return history


async def run_index(config: Config) -> int:
    from coding_agent.llm.factory import create_embedder
    from coding_agent.rag.indexer import CodebaseIndexer

    root = config.agent.root_dir.resolve()
    output = config.agent.index_path.resolve()
    main_logger.info(f"Indexing codebase at {root}...")

    indexer = CodebaseIndexer(
        root,
        embedder=create_embedder(config.llm),
        chunk_size=config.indexing.chunk_size,
        chunk_overlap=config.indexing.chunk_overlap,
        max_file_bytes=config.indexing.max_file_bytes,
        batch_size=config.indexing.batch_size,
    )
    try:
        await indexer.index_to(output)
    except OSError as e:
        main_logger.error("Indexing failed", e)
        return EXIT_ERROR
    return EXIT_OK


async def run_query(config: Config, query: str, history: list[dict], out=None) -> int:
    """Stream the agent's events for one query as NDJSON to `out` (stdout)."""
    from coding_agent.agent import Agent
    from coding_agent.agent.events import parse_event

    out = out or sys.stdout
    agent = Agent.from_config(config)

    exit_code = EXIT_OK
    async for line in agent.stream_ndjson(query, history):
        out.write(line)
        out.flush()

        event_type = parse_event(line).type
        if event_type == "error":
            exit_code = EXIT_ERROR
        elif event_type == "turns_exhausted":
            exit_code = EXIT_EXHAUSTED

    return exit_code


async def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = apply_overrides(get_config(), args)
        set_default_level(parse_log_level(config.log_level))
        if args.command == "index":
            return await run_index(config)
        return await run_query(config, args.query, load_history(args.history))
    except ConfigurationError as e:
        main_logger.error("Configuration error", e)
        return EXIT_ERROR


def run() -> None:
    """Synchronous entry point for the `coding-agent` console script."""
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    run()
