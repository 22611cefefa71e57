"""
File System Tools
=================

The three tools the coding agent edits a codebase with:

- read_file(path)            return a file's content
- write_file(path, content)  create or overwrite a file, creating parent dirs
- list_files(path)           list a directory, one entry per line

Paths go through ToolContext.resolve(): relative paths are taken from the
workspace root, and with confinement on (the default) anything outside
the root is refused.

Every outcome, including failure, is a string for the model.
"""

from pydantic import BaseModel, Field

from coding_agent.tools import PathAccessError, ToolContext, ToolDefinition
from coding_agent.utils.logger import Logger

logger = Logger("FileTools")


def _access_denied(error: PathAccessError) -> str:
    logger.warning(f"Access denied: {error}")
    return f"Error: Access denied: {error}"


# ==============================================================================
# Tool: Read File
# ==============================================================================

class ReadFileArgs(BaseModel):
    path: str = Field(description="The path to the file to read")


async def _read_file(args: ReadFileArgs, context: ToolContext) -> str:
    try:
        file_path = context.resolve(args.path)
        if not file_path.exists():
            return f"File not found: {args.path}"
        return file_path.read_text(encoding="utf-8")
    except PathAccessError as e:
        return _access_denied(e)
    except (OSError, UnicodeDecodeError) as e:
        return f"Error reading file: {e}"


read_file_tool = ToolDefinition(
    name="read_file",
    description="Read the content of a file",
    args_model=ReadFileArgs,
    handler=_read_file
)


# ==============================================================================
# Tool: Write File
# ==============================================================================

class WriteFileArgs(BaseModel):
    path: str = Field(description="The path to the file to write")
    content: str = Field(description="The content to write")


async def _write_file(args: WriteFileArgs, context: ToolContext) -> str:
    try:
        file_path = context.resolve(args.path)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(args.content, encoding="utf-8")
        logger.info(f"Wrote {len(args.content)} chars to {file_path}")
        return f"Successfully wrote to {args.path}"
    except PathAccessError as e:
        return _access_denied(e)
    except OSError as e:
        return f"Error writing file: {e}"


write_file_tool = ToolDefinition(
    name="write_file",
    description="Write content to a file. Overwrites existing file.",
    args_model=WriteFileArgs,
    handler=_write_file
)


# ==============================================================================
# Tool: List Files
# ==============================================================================

class ListFilesArgs(BaseModel):
    path: str = Field(default=".", description="The directory path to list")


async def _list_files(args: ListFilesArgs, context: ToolContext) -> str:
    try:
        dir_path = context.resolve(args.path)
        if not dir_path.exists():
            return f"Directory not found: {args.path}"
        entries = sorted(
            f"{entry.name}/" if entry.is_dir() else entry.name
            for entry in dir_path.iterdir()
        )
        return "\n".join(entries)
    except PathAccessError as e:
        return _access_denied(e)
    except OSError as e:
        return f"Error listing files: {e}"


list_files_tool = ToolDefinition(
    name="list_files",
    description="List files in a directory. Subdirectories end with '/'.",
    args_model=ListFilesArgs,
    handler=_list_files
)


FILESYSTEM_TOOLS = (read_file_tool, write_file_tool, list_files_tool)
