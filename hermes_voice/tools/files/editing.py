"""
File content tools: read, create, overwrite and line-level edits.
"""

from typing import Any, Dict

import structlog

from hermes_voice.core.models import ToolData
from hermes_voice.tools.base import Tool, ToolCategory, ToolDefinition, ToolParameter
from hermes_voice.tools.context import ToolExecutionContext
from hermes_voice.vault.store import VaultFileNotFoundError, parent_folder

logger = structlog.get_logger(__name__)

_PATH_HINT = 'Path relative to vault root (e.g., "projects/notes.md" or "notes.md" for root level)'


def _line_changes(old_content: str, new_content: str):
    old_lines = old_content.split("\n")
    new_lines = new_content.split("\n")
    additions = len([line for line in new_lines if line not in old_lines])
    removals = len([line for line in old_lines if line not in new_lines])
    return additions, removals


class ReadFileTool(Tool):

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="read_file",
            description="Read the full content of a specified file using path relative to vault root.",
            category=ToolCategory.FILES,
            instruction=(
                "Use this to ingest the contents of a note. "
                "Read a file before proposing major edits to ensure context."
            ),
            parameters=[
                ToolParameter("filename", "string", _PATH_HINT, required=True),
            ],
        )

    async def execute(self, args, context: ToolExecutionContext) -> Dict[str, Any]:
        content = await context.vault.run(context.vault.read, args.filename)
        context.system(f"Opened {args.filename}", ToolData(
            name="read_file",
            filename=args.filename,
            status="success",
            old_content=content,
            new_content=content,
            additions=0,
            removals=0,
        ))
        context.file_state(parent_folder(args.filename), args.filename)
        return {"content": content}


class CreateFileTool(Tool):

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="create_file",
            description="Create a new file with initial content using path relative to vault root.",
            category=ToolCategory.FILES,
            instruction="Use this to initialize new notes in the vault. Always provide meaningful initial content.",
            parameters=[
                ToolParameter("filename", "string", _PATH_HINT, required=True),
                ToolParameter("content", "string", "Initial file content", required=True),
            ],
        )

    async def execute(self, args, context: ToolExecutionContext) -> Dict[str, Any]:
        await context.vault.run(context.vault.create, args.filename, args.content)
        context.system(f"Created {args.filename}", ToolData(
            name="create_file",
            filename=args.filename,
            status="success",
            old_content="",
            new_content=args.content,
            additions=len(args.content.split("\n")),
            removals=0,
        ))
        context.file_state(parent_folder(args.filename), args.filename)
        return {"status": "created"}


class UpdateFileTool(Tool):

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="update_file",
            description="Overwrite the entire content of an existing file.",
            category=ToolCategory.FILES,
            instruction="Use this for total overwrites. For smaller changes, prefer edit_file.",
            parameters=[
                ToolParameter("filename", "string", _PATH_HINT, required=True),
                ToolParameter("content", "string", "New file content", required=True),
            ],
        )

    async def execute(self, args, context: ToolExecutionContext) -> Dict[str, Any]:
        vault = context.vault

        def _update_sync():
            try:
                previous = vault.read(args.filename)
            except VaultFileNotFoundError:
                previous = ""
            vault.update(args.filename, args.content)
            return previous

        old_content = await vault.run(_update_sync)

        additions, removals = _line_changes(old_content, args.content)
        context.system(f"Updated {args.filename}", ToolData(
            name="update_file",
            filename=args.filename,
            status="success",
            old_content=old_content,
            new_content=args.content,
            additions=additions,
            removals=removals,
        ))
        context.file_state(parent_folder(args.filename), args.filename)
        return {"status": "updated"}


class EditFileTool(Tool):

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="edit_file",
            description="Perform granular line-based edits on a file.",
            category=ToolCategory.FILES,
            instruction="Use this for targeted modifications (appending, replacing lines, or removing lines).",
            parameters=[
                ToolParameter("filename", "string", _PATH_HINT, required=True),
                ToolParameter(
                    "operation", "string", "Edit to perform",
                    required=True, enum=["append", "replace_line", "remove_line"],
                ),
                ToolParameter("text", "string", "Text to append or the replacement line"),
                ToolParameter("lineNumber", "integer", "1-based line number for replace_line/remove_line"),
            ],
        )

    async def execute(self, args, context: ToolExecutionContext) -> Dict[str, Any]:
        vault = context.vault

        def _edit_sync():
            before = vault.read(args.filename)
            vault.edit(args.filename, args.operation, args.text, args.lineNumber)
            return before, vault.read(args.filename)

        old_content, new_content = await vault.run(_edit_sync)

        context.system(f"Edited {args.filename}", ToolData(
            name="edit_file",
            filename=args.filename,
            status="success",
            old_content=old_content,
            new_content=new_content,
            additions=1 if args.operation in ("append", "replace_line") else 0,
            removals=1 if args.operation in ("remove_line", "replace_line") else 0,
        ))
        context.file_state(parent_folder(args.filename), args.filename)
        return {"status": "edited"}
