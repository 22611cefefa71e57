"""
Agent Tools
===========

Tools are named operations the model may ask the agent to perform. Each
tool has:
- a name (unique key the model uses to call it)
- a description (shown to the model)
- an argument schema (a pydantic model; its JSON schema is sent to the model)
- an async handler returning a human-readable string

The string is the only thing the model sees, so a handler never raises:
a missing file, a denied path or invalid arguments are all reported as
text the model can react to on its next turn.

How a call flows:
1. The model returns a tool call {name, arguments}
2. ToolRegistry.execute looks the tool up by name
3. The arguments are validated against the tool's model
4. The handler runs with the validated arguments and the agent's ToolContext
5. The returned string goes back into the transcript as a tool result

This module provides:
- ToolContext for the per-agent workspace and path policy
- ToolDefinition for declaring tools
- ToolRegistry for looking tools up and executing them
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable

from pydantic import BaseModel, ValidationError

from coding_agent.utils.logger import Logger

logger = Logger("Tools")

TOOL_NOT_FOUND = "Error: Tool not found"


class PathAccessError(PermissionError):
    """A tool path resolved outside the workspace root."""


@dataclass(frozen=True)
class ToolContext:
    """
    Where tools operate and whether they are fenced in.

    Attributes:
        root: Workspace root; relative tool paths resolve against it
        confine_paths: Reject paths that resolve outside root
    """
    root: Path = field(default_factory=Path.cwd)
    confine_paths: bool = True

    def resolve(self, path: str) -> Path:
        """
        Resolve a tool path according to the path policy.

        Symlinks and ".." are resolved before the root check, so neither
        can be used to step outside a confined workspace.

        Raises:
            PathAccessError: If confinement is on and the path leaves root
        """
        candidate = Path(path).expanduser()
        if not candidate.is_absolute():
            candidate = self.root / candidate

        if not self.confine_paths:
            return candidate

        root = self.root.resolve()
        resolved = candidate.resolve()
        if resolved != root and root not in resolved.parents:
            raise PathAccessError(f"{path} is outside the workspace root")
        return resolved


ToolHandler = Callable[[Any, ToolContext], Awaitable[str]]


@dataclass(frozen=True)
class ToolDefinition:
    """
    Definition of a tool.

    Attributes:
        name: Unique identifier for the tool
        description: What the tool does (shown to the model)
        args_model: Pydantic model validating the arguments
        handler: Async function (validated args, context) -> result string

    Example:
        class ReadFileArgs(BaseModel):
            path: str = Field(description="The path to the file to read")

        async def read_file(args: ReadFileArgs, context: ToolContext) -> str:
            return context.resolve(args.path).read_text()

        tool = ToolDefinition(
            name="read_file",
            description="Read the content of a file",
            args_model=ReadFileArgs,
            handler=read_file
        )
    """
    name: str
    description: str
    args_model: type[BaseModel]
    handler: ToolHandler

    @property
    def parameters(self) -> dict:
        """JSON Schema for the arguments."""
        schema = self.args_model.model_json_schema()
        schema.pop("title", None)
        for prop in schema.get("properties", {}).values():
            prop.pop("title", None)
        return schema

    def to_openai_function(self) -> dict:
        """Convert to the OpenAI function calling format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters
            }
        }


def _describe_validation_error(error: ValidationError) -> str:
    problems = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "arguments"
        problems.append(f"{location}: {item['msg']}")
    return "; ".join(problems)


class ToolRegistry:
    """
    Registry of the tools available to the model.

    Example:
        registry = ToolRegistry()
        registry.register(read_file_tool)

        functions = registry.get_openai_functions()
        output = await registry.execute("read_file", {"path": "app.py"}, context)
    """

    def __init__(self, tools: list[ToolDefinition] | None = None):
        self._tools: dict[str, ToolDefinition] = {}
        for tool in tools or []:
            self.register(tool)

    def register(self, tool: ToolDefinition) -> None:
        """
        Register a tool.

        Raises:
            ValueError: If a tool with this name already exists
        """
        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' is already registered")

        self._tools[tool.name] = tool
        logger.debug(f"Registered tool: {tool.name}")

    def get(self, name: str) -> ToolDefinition | None:
        return self._tools.get(name)

    def get_all(self) -> list[ToolDefinition]:
        return list(self._tools.values())

    def get_openai_functions(self) -> list[dict]:
        return [tool.to_openai_function() for tool in self._tools.values()]

    def list_names(self) -> list[str]:
        return list(self._tools.keys())

    async def execute(self, name: str, arguments: dict, context: ToolContext) -> str:
        """
        Validate arguments and run a tool by name.

        Never raises: unknown tools, invalid arguments and handler failures
        are all returned as "Error: ..." strings.
        """
        tool = self.get(name)
        if not tool:
            return TOOL_NOT_FOUND

        try:
            args = tool.args_model.model_validate(arguments or {})
        except ValidationError as e:
            problems = _describe_validation_error(e)
            logger.warning(f"Invalid arguments for {name}: {problems}")
            return f"Error: Invalid arguments for {name}: {problems}"

        try:
            return await tool.handler(args, context)
        except Exception as e:
            logger.error(f"Tool execution failed: {name}", e)
            return f"Error: {name} failed: {e}"

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)


def default_registry() -> ToolRegistry:
    """A registry with the built-in file tools (read_file, write_file, list_files)."""
    from coding_agent.tools.filesystem import FILESYSTEM_TOOLS

    return ToolRegistry(list(FILESYSTEM_TOOLS))


__all__ = [
    "PathAccessError",
    "TOOL_NOT_FOUND",
    "ToolContext",
    "ToolDefinition",
    "ToolRegistry",
    "default_registry",
]
