"""
Regex search-and-replace, in one file or across the vault.

Flags use JavaScript semantics: without ``g`` only the first match in each
file is replaced.
"""

from typing import Any, Dict

import structlog

from hermes_voice.core.models import ToolData
from hermes_voice.tools.base import Tool, ToolCategory, ToolDefinition, ToolParameter
from hermes_voice.tools.context import ToolExecutionContext
from hermes_voice.vault.store import compile_js_regex, parent_folder, regex_replace

logger = structlog.get_logger(__name__)


class SearchReplaceFileTool(Tool):

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="search_and_replace_regex_in_file",
            description="Search and replace text in a specific file using a regular expression.",
            category=ToolCategory.SEARCH,
            instruction="Use this for bulk edits inside a single note.",
            parameters=[
                ToolParameter("filename", "string", "Path relative to vault root", required=True),
                ToolParameter("pattern", "string", "The regular expression pattern", required=True),
                ToolParameter("replacement", "string", "Replacement text; $1, $& are supported", required=True),
                ToolParameter("flags", "string", 'Regex flags (default: "g")', default="g"),
            ],
        )

    async def execute(self, args, context: ToolExecutionContext) -> Dict[str, Any]:
        flags = "g" if args.flags is None else args.flags
        vault = context.vault

        def _replace_sync():
            before = vault.read(args.filename)
            after, replaced = regex_replace(before, args.pattern, args.replacement, flags)
            if replaced:
                vault.update(args.filename, after)
            return before, after, replaced

        old_content, new_content, count = await vault.run(_replace_sync)
        context.system(f"Replaced {count} match(es) in {args.filename}", ToolData(
            name="search_and_replace_regex_in_file",
            filename=args.filename,
            status="success",
            old_content=old_content,
            new_content=new_content,
            additions=count,
            removals=count,
        ))
        context.file_state(parent_folder(args.filename), args.filename)
        return {"status": "success", "replacements": count}


class SearchReplaceGlobalTool(Tool):

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="search_and_replace_regex_global",
            description="Search and replace text across all files in the vault using a regular expression.",
            category=ToolCategory.SEARCH,
            instruction=(
                "Use this for vault-wide refactors such as renaming a term everywhere. "
                "Confirm with the user before large changes."
            ),
            parameters=[
                ToolParameter("pattern", "string", "The regular expression pattern", required=True),
                ToolParameter("replacement", "string", "Replacement text; $1, $& are supported", required=True),
                ToolParameter("flags", "string", 'Regex flags (default: "g")', default="g"),
            ],
        )

    async def execute(self, args, context: ToolExecutionContext) -> Dict[str, Any]:
        flags = "g" if args.flags is None else args.flags
        # Fail on a bad pattern before touching any file
        compile_js_regex(args.pattern, flags)

        vault = context.vault

        def _replace_all_sync():
            changed = []
            for filename in vault.list_markdown_files():
                old_content = vault.read(filename)
                new_content, count = regex_replace(old_content, args.pattern, args.replacement, flags)
                if not count:
                    continue
                vault.update(filename, new_content)
                changed.append({
                    "filename": filename,
                    "oldContent": old_content,
                    "newContent": new_content,
                    "replacements": count,
                })
            return changed

        diffs = await vault.run(_replace_all_sync)

        logger.info("Global replace complete", pattern=args.pattern, files_updated=len(diffs))
        context.system(f"Updated {len(diffs)} file(s)", ToolData(
            name="search_and_replace_regex_global",
            filename="Vault",
            status="success",
            multi_diffs=diffs,
        ))
        return {"status": "success", "filesUpdated": len(diffs)}
