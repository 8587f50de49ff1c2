"""
Organisation tools: rename, move, delete (to trash), restore from trash and
create folders.
"""

from pathlib import PurePosixPath
from typing import Any, Dict

import structlog

from hermes_voice.core.models import ToolData
from hermes_voice.tools.base import Tool, ToolCategory, ToolDefinition, ToolParameter
from hermes_voice.tools.context import ToolExecutionContext
from hermes_voice.vault.store import parent_folder

logger = structlog.get_logger(__name__)


class RenameFileTool(Tool):

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="rename_file",
            description="Rename an existing file to a new name.",
            category=ToolCategory.FILES,
            instruction=(
                "Use this to change the name of a note. Ensure the new name follows "
                "markdown extension conventions if applicable."
            ),
            parameters=[
                ToolParameter("oldFilename", "string", "The current name of the file", required=True),
                ToolParameter("newFilename", "string", "The new name for the file", required=True),
            ],
        )

    async def execute(self, args, context: ToolExecutionContext) -> Dict[str, Any]:
        await context.vault.run(context.vault.rename, args.oldFilename, args.newFilename)
        context.system(f"Renamed {args.oldFilename} to {args.newFilename}", ToolData(
            name="rename_file",
            filename=args.oldFilename,
            status="success",
            old_content=args.oldFilename,
            new_content=args.newFilename,
        ))
        context.file_state(parent_folder(args.newFilename), args.newFilename)
        return {"status": "renamed", "from": args.oldFilename, "to": args.newFilename}


class MoveFileTool(Tool):

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="move_file",
            description="Move a file from one folder to another using paths relative to vault root",
            category=ToolCategory.FILES,
            instruction="Use this to reorganize files between folders. The target path must not exist yet.",
            parameters=[
                ToolParameter("sourcePath", "string", "Current path relative to vault root", required=True),
                ToolParameter("targetPath", "string", "New path relative to vault root", required=True),
            ],
        )

    async def execute(self, args, context: ToolExecutionContext) -> Dict[str, Any]:
        await context.vault.run(context.vault.move, args.sourcePath, args.targetPath)
        context.system(f"Moved {args.sourcePath} to {args.targetPath}", ToolData(
            name="move_file",
            filename=args.sourcePath,
            status="success",
            old_content=args.sourcePath,
            new_content=args.targetPath,
        ))
        return {"status": "moved", "from": args.sourcePath, "to": args.targetPath}


class DeleteFileTool(Tool):

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="delete_file",
            description=(
                "Move an existing file from the vault to the trash folder. "
                "Files in trash are hidden from directory listings."
            ),
            category=ToolCategory.FILES,
            instruction="Use this to move a note to the trash folder. Trashed files can be restored with restore_from_trash.",
            parameters=[
                ToolParameter("filename", "string", "Path relative to vault root", required=True),
            ],
        )

    async def execute(self, args, context: ToolExecutionContext) -> Dict[str, Any]:
        await context.vault.run(context.vault.delete, args.filename)
        context.system(f"Moved {args.filename} to trash", ToolData(
            name="delete_file",
            filename=args.filename,
            status="success",
            old_content=args.filename,
            new_content="",
        ))
        context.file_state(parent_folder(args.filename), None)
        return {"status": "moved_to_trash", "filename": args.filename}


class CreateDirectoryTool(Tool):

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="create_directory",
            description=(
                "Create a new directory in the vault. Parent directories will be "
                "created automatically if they don't exist."
            ),
            category=ToolCategory.FILES,
            instruction="Use this to create new directories in the vault.",
            parameters=[
                ToolParameter(
                    "path", "string",
                    'Directory path relative to vault root (e.g., "projects/notes" or "archive")',
                    required=True,
                ),
            ],
        )

    async def execute(self, args, context: ToolExecutionContext) -> Dict[str, Any]:
        message = await context.vault.run(context.vault.create_directory, args.path)
        context.system(f"Created directory {args.path}", ToolData(
            name="create_directory",
            filename=args.path,
            status="success",
            message=message,
        ))
        return {"status": "created", "path": args.path}


class ListTrashTool(Tool):
    """Recently deleted files, newest first."""

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="list_trash",
            description=(
                "List the most recent files in the trash folder. Shows up to 100 files "
                "sorted by deletion time (most recent first)."
            ),
            category=ToolCategory.FILES,
            instruction="Use this to list files in the trash folder. Shows recently deleted files that can be restored.",
            parameters=[
                ToolParameter("limit", "integer", "Maximum number of files to show (default: 20, max: 100)", default=20),
            ],
        )

    async def execute(self, args, context: ToolExecutionContext) -> Dict[str, Any]:
        limit = 20 if args.limit is None else args.limit
        entries, total = await context.vault.run(context.vault.list_trash, limit)
        shown = f" (showing {len(entries)} most recent)" if total > len(entries) else ""
        context.system(f"Found {total} files in trash{shown}", ToolData(
            name="list_trash",
            filename="Trash",
            status="success",
            files=[entry.trash_filename for entry in entries],
        ))
        return {
            "files": [entry.to_dict() for entry in entries],
            "total": total,
            "shown": len(entries),
            "trashFolderPath": context.vault.trash_folder,
        }


class RestoreFromTrashTool(Tool):

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="restore_from_trash",
            description="Restore a file from the trash folder to its original location or a specified location.",
            category=ToolCategory.FILES,
            instruction=(
                "Use this to restore a file from trash. Provide the trash filename from "
                "list_trash. Optionally specify where to restore it."
            ),
            parameters=[
                ToolParameter(
                    "trash_filename", "string",
                    'The filename in trash (as shown by list_trash, e.g., "2024-01-25T15-30-45-123Z-my-note.md")',
                    required=True,
                ),
                ToolParameter(
                    "target_path", "string",
                    "Optional target path. Without it the file is restored under its original name.",
                ),
            ],
        )

    async def execute(self, args, context: ToolExecutionContext) -> Dict[str, Any]:
        trash_path, restored_path = await context.vault.run(
            context.vault.restore_from_trash, args.trash_filename, args.target_path,
        )
        original_name = PurePosixPath(restored_path).name
        context.system(f"Restored {original_name} to {restored_path}", ToolData(
            name="restore_from_trash",
            filename=restored_path,
            status="success",
            old_content=trash_path,
            new_content=restored_path,
        ))
        context.file_state(parent_folder(restored_path), restored_path)
        return {
            "status": "restored",
            "originalFilename": original_name,
            "trashPath": trash_path,
            "restoredPath": restored_path,
        }
