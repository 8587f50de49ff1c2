"""
Listing tools: whole-vault file list, paginated explorer, folder tree.
"""

from typing import Any, Dict

import structlog

from hermes_voice.core.models import ToolData
from hermes_voice.tools.base import Tool, ToolCategory, ToolDefinition, ToolParameter
from hermes_voice.tools.context import ToolExecutionContext

logger = structlog.get_logger(__name__)


class ListDirectoryTool(Tool):
    """Every markdown file in the vault (trash excluded)."""

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="list_directory",
            description="Lists all available files in the current directory registry.",
            category=ToolCategory.FILES,
            instruction=(
                "Use this to get an overview of the user's vault. "
                "Always call this if you are unsure of the available files."
            ),
        )

    async def execute(self, args, context: ToolExecutionContext) -> Dict[str, Any]:
        files = await context.vault.run(context.vault.list_markdown_files)
        context.system("Registry Scanned", ToolData(
            name="list_directory",
            filename="Vault Root",
            status="success",
            files=files,
        ))
        return {"files": files}


class ListVaultFilesTool(Tool):
    """Paginated, sortable markdown listing for large vaults."""

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="list_vault_files",
            description="Lists markdown files in the vault with pagination and sorting. Essential for large vaults.",
            category=ToolCategory.FILES,
            instruction=(
                "Use this to explore large vaults. It supports paging and sorting. "
                "Default is most recently modified first."
            ),
            parameters=[
                ToolParameter("limit", "integer", "Max number of files to return (default: 20)", default=20),
                ToolParameter("offset", "integer", "Number of files to skip (default: 0)", default=0),
                ToolParameter(
                    "sortBy", "string",
                    "Property to sort by. mtime is last modified time.",
                    enum=["mtime", "name", "size"], default="mtime",
                ),
                ToolParameter(
                    "sortOrder", "string", "Sort order (default: desc)",
                    enum=["asc", "desc"], default="desc",
                ),
                ToolParameter("filter", "string", "Optional text filter for path or filename."),
            ],
        )

    async def execute(self, args, context: ToolExecutionContext) -> Dict[str, Any]:
        limit = 20 if args.limit is None else args.limit
        offset = 0 if args.offset is None else args.offset
        page, total = await context.vault.run(
            context.vault.list_files,
            limit=limit,
            offset=offset,
            sort_by=args.sortBy or "mtime",
            sort_order=args.sortOrder or "desc",
            filter=args.filter,
        )
        context.system(
            f"Vault Files ({offset}-{offset + len(page)} of {total})",
            ToolData(
                name="list_vault_files",
                filename="Vault Explorer",
                status="success",
                files=[meta.path for meta in page],
            ),
        )
        return {"files": [meta.to_dict() for meta in page], "total": total}


class GetFolderTreeTool(Tool):

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="get_folder_tree",
            description=(
                "Lists all folders in the vault to understand hierarchy. "
                "With a folder path, lists every file and folder inside it."
            ),
            category=ToolCategory.FILES,
            instruction="Use this to see the organization of folders in the vault.",
            parameters=[
                ToolParameter("folder", "string", "Optional folder path relative to vault root"),
            ],
        )

    async def execute(self, args, context: ToolExecutionContext) -> Dict[str, Any]:
        folders = await context.vault.run(context.vault.folder_tree, args.folder)
        context.system("Folder Structure Scanned", ToolData(
            name="get_folder_tree",
            filename=args.folder or "Folder Tree",
            status="success",
            files=folders,
        ))
        return {"folders": folders}
