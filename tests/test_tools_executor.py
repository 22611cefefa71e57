from pathlib import Path

import pytest

from coding_agent.agent.messages import ToolMessage
from coding_agent.agent.tools_executor import ToolExecutor
from coding_agent.tools import TOOL_NOT_FOUND, ToolContext, default_registry
from tests.fakes import tool_call


@pytest.mark.asyncio
async def test_execute_all_runs_calls_in_order(tmp_path: Path) -> None:
    executor = ToolExecutor(default_registry(), ToolContext(root=tmp_path))

    results = await executor.execute_all([
        tool_call("write_file", call_id="a", path="notes.md", content="draft"),
        tool_call("shell", call_id="b", command="ls"),
        tool_call("read_file", call_id="c", path="notes.md"),
    ])

    assert [(r.tool_call_id, r.name, r.found) for r in results] == [
        ("a", "write_file", True),
        ("b", "shell", False),
        ("c", "read_file", True),
    ]
    assert results[1].output == TOOL_NOT_FOUND
    assert results[2].output == "draft"


@pytest.mark.asyncio
async def test_result_becomes_a_tool_message(tmp_path: Path) -> None:
    executor = ToolExecutor(default_registry(), ToolContext(root=tmp_path))

    result = await executor.execute_one(tool_call("read_file", call_id="x", path="missing.py"))

    assert result.to_message() == ToolMessage(
        tool_call_id="x", content="File not found: missing.py", name="read_file"
    )


@pytest.mark.asyncio
async def test_execute_all_with_no_calls(tmp_path: Path) -> None:
    executor = ToolExecutor(default_registry(), ToolContext(root=tmp_path))
    assert await executor.execute_all([]) == []
