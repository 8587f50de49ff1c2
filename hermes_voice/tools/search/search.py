"""
Vault-wide search tools.
"""

from typing import Any, Dict

from hermes_voice.core.models import ToolData
from hermes_voice.tools.base import Tool, ToolCategory, ToolDefinition, ToolParameter
from hermes_voice.tools.context import ToolExecutionContext


class SearchKeywordTool(Tool):

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="search_keyword",
            description="Search for a keyword across all files in the vault. Returns matching lines with context.",
            category=ToolCategory.SEARCH,
            instruction="Use this for case-insensitive keyword searches across the entire vault.",
            parameters=[
                ToolParameter("keyword", "string", "The keyword to search for", required=True),
            ],
        )

    async def execute(self, args, context: ToolExecutionContext) -> Dict[str, Any]:
        results = await context.vault.run(context.vault.search, args.keyword, is_regex=False)
        context.system(f"Keyword search: {args.keyword}", ToolData(
            name="search_keyword",
            filename="Vault Search",
            status="success",
            search_results=results,
        ))
        return {"results": results}


class SearchRegexpTool(Tool):

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="search_regexp",
            description="Search for a regular expression pattern across all files in the vault.",
            category=ToolCategory.SEARCH,
            instruction="Use this for complex pattern matching when a keyword search is not precise enough.",
            parameters=[
                ToolParameter("pattern", "string", "The regular expression pattern", required=True),
                ToolParameter("flags", "string", 'Regex flags (e.g., "i" for case-insensitive)', default="i"),
            ],
        )

    async def execute(self, args, context: ToolExecutionContext) -> Dict[str, Any]:
        flags = "i" if args.flags is None else args.flags
        results = await context.vault.run(context.vault.search, args.pattern, is_regex=True, flags=flags)
        context.system(f"Regex search: /{args.pattern}/{flags}", ToolData(
            name="search_regexp",
            filename="Vault Search",
            status="success",
            search_results=results,
        ))
        return {"results": results}
