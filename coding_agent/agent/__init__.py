"""
Agent System
============

The agent answers questions about a codebase and edits it. It:
1. Retrieves relevant code for the query (RAG)
2. Builds the transcript (system prompt, history, query)
3. Lets the model call file tools in a bounded loop
4. Streams progress events until the model answers

This module provides:
- Agent: The agent loop and its event stream
- ContextAssembler: Builds the starting transcript
- ToolExecutor: Runs the model's tool calls in order
"""

from coding_agent.agent.core import Agent, AgentRunResult
from coding_agent.agent.context import ContextAssembler
from coding_agent.agent.tools_executor import ToolExecutor

__all__ = ["Agent", "AgentRunResult", "ContextAssembler", "ToolExecutor"]
