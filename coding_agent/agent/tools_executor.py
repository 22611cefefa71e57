"""
Tool Executor
=============

Runs the tool calls from one assistant message.

Tool Execution Loop:
    1. The model responds with one or more tool calls
    2. The executor runs each call, in the order the model issued them
    3. Every call yields exactly one result, appended as a tool message
    4. The model continues with the results (and may call more tools)

Calls within a batch run strictly one after another: file writes are not
commutative, and a write followed by a read of the same file must see the
write.
"""

from dataclasses import dataclass
from typing import Sequence

from coding_agent.agent.messages import ToolMessage
from coding_agent.llm.base import ToolCall
from coding_agent.tools import TOOL_NOT_FOUND, ToolContext, ToolRegistry
from coding_agent.utils.logger import Logger

logger = Logger("ToolExecutor")


@dataclass
class ToolCallResult:
    """
    Result of executing a tool call.

    Attributes:
        tool_call_id: The original tool call ID
        name: The tool name
        output: The string the model will see
        found: False when the model named a tool that is not registered
    """
    tool_call_id: str
    name: str
    output: str
    found: bool = True

    def to_message(self) -> ToolMessage:
        return ToolMessage(tool_call_id=self.tool_call_id, content=self.output, name=self.name)


class ToolExecutor:
    """
    Executes tool calls against a registry within one workspace.

    Example:
        executor = ToolExecutor(default_registry(), ToolContext(root=Path(".")))

        results = await executor.execute_all(response.tool_calls)
        for result in results:
            transcript.append(result.to_message())
    """

    def __init__(self, registry: ToolRegistry, context: ToolContext):
        self.registry = registry
        self.context = context

    async def execute_one(self, tool_call: ToolCall) -> ToolCallResult:
        if tool_call.name not in self.registry:
            logger.warning(f"Model requested unknown tool: {tool_call.name}")
            return ToolCallResult(
                tool_call_id=tool_call.id,
                name=tool_call.name,
                output=TOOL_NOT_FOUND,
                found=False
            )

        logger.info(f"Executing {tool_call.name}...")
        output = await self.registry.execute(tool_call.name, tool_call.arguments, self.context)
        logger.debug(f"Tool {tool_call.name} returned {len(output)} chars")

        return ToolCallResult(
            tool_call_id=tool_call.id,
            name=tool_call.name,
            output=output
        )

    async def execute_all(self, tool_calls: Sequence[ToolCall]) -> list[ToolCallResult]:
        """Execute tool calls sequentially, returning results in call order."""
        results = []
        for tool_call in tool_calls:
            results.append(await self.execute_one(tool_call))
        return results
