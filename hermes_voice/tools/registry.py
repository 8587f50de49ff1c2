"""
Tool registry - the closed set of commands the model may invoke.

The mapping is built once at startup (initialize_default_tools). Dispatch
goes through ``execute``, which owns validation, timing, logging and
result-size governance so individual handlers stay pure glue.
"""

import json
import time
import traceback
import uuid
from typing import Any, Dict, List, Optional, Type

import structlog
from prometheus_client import Counter, Histogram

from hermes_voice.core.models import ToolData
from hermes_voice.tools.base import Tool
from hermes_voice.tools.context import ToolExecutionContext
from hermes_voice.tools.truncation import MAX_RESULT_CHARS, MAX_RESULT_ITEMS, truncate_result

logger = structlog.get_logger(__name__)

_TOOL_EXECUTIONS = Counter(
    "hermes_tool_executions",
    "Tool executions by outcome",
    labelnames=("tool", "status"),
)
_TOOL_DURATION = Histogram(
    "hermes_tool_duration_seconds",
    "Tool handler wall-clock duration",
    labelnames=("tool",),
)


class UnknownToolError(LookupError):
    """The model named a command that is not registered."""

    def __init__(self, name: str):
        super().__init__(f"Command {name} not found")
        self.name = name


def _filename_hint(args: Dict[str, Any]) -> str:
    for key in ("filename", "oldFilename", "sourcePath", "path", "folder"):
        value = args.get(key)
        if isinstance(value, str) and value:
            return value
    return "unknown"


class ToolRegistry:
    """
    Registry for all available tools.

    Manages registration, lookup, schema generation and execution.
    """

    def __init__(self, max_items: int = MAX_RESULT_ITEMS, max_chars: int = MAX_RESULT_CHARS):
        self._tools: Dict[str, Tool] = {}
        self._initialized = False
        self.max_items = max_items
        self.max_chars = max_chars

    def register(self, tool_class: Type[Tool]) -> None:
        """
        Register a tool class.

        Args:
            tool_class: Tool class (not instance) to register
        """
        self._add(tool_class())

    def _add(self, tool: Tool) -> None:
        tool_name = tool.definition.name
        if tool_name in self._tools:
            logger.warning("Tool already registered, overwriting", tool=tool_name)

        self._tools[tool_name] = tool
        logger.debug("Registered tool", tool=tool_name, category=tool.definition.category.value)

    def get(self, name: str) -> Optional[Tool]:
        return self._tools.get(name)

    def to_google_schema(self) -> List[Dict[str, Any]]:
        """Export all tools as Gemini function declarations."""
        return [
            tool.definition.to_google_schema()
            for tool in self._tools.values()
        ]

    def to_prompt_text(self) -> str:
        """Tool guidance block for the system instruction."""
        if not self._tools:
            return ""

        lines = ["TOOLS:"]
        for tool in self._tools.values():
            lines.append(tool.definition.to_prompt_text())
        return "\n".join(lines)

    def initialize_default_tools(self, disabled: Optional[List[str]] = None) -> None:
        """
        Register all built-in tools, skipping names listed in ``disabled``.

        Called once during startup.
        """
        if self._initialized:
            logger.debug("Tools already initialized, skipping")
            return

        from hermes_voice.tools.files.listing import GetFolderTreeTool, ListDirectoryTool, ListVaultFilesTool
        from hermes_voice.tools.files.editing import CreateFileTool, EditFileTool, ReadFileTool, UpdateFileTool
        from hermes_voice.tools.files.organize import (
            CreateDirectoryTool,
            DeleteFileTool,
            ListTrashTool,
            MoveFileTool,
            RenameFileTool,
            RestoreFromTrashTool,
        )
        from hermes_voice.tools.search.search import SearchKeywordTool, SearchRegexpTool
        from hermes_voice.tools.search.replace import SearchReplaceFileTool, SearchReplaceGlobalTool
        from hermes_voice.tools.session.conversation import EndConversationTool, TopicSwitchTool

        disabled_names = set(disabled or [])
        for tool_class in (
            ListDirectoryTool,
            ListVaultFilesTool,
            GetFolderTreeTool,
            ReadFileTool,
            CreateFileTool,
            UpdateFileTool,
            EditFileTool,
            RenameFileTool,
            MoveFileTool,
            DeleteFileTool,
            ListTrashTool,
            RestoreFromTrashTool,
            CreateDirectoryTool,
            SearchKeywordTool,
            SearchRegexpTool,
            SearchReplaceFileTool,
            SearchReplaceGlobalTool,
            TopicSwitchTool,
            EndConversationTool,
        ):
            tool = tool_class()
            if tool.definition.name in disabled_names:
                logger.info("Tool disabled by configuration", tool=tool.definition.name)
                continue
            self._add(tool)

        self._initialized = True
        logger.info("Initialized tools", count=len(self._tools))

    def list_tools(self) -> List[str]:
        return list(self._tools.keys())

    async def execute(
        self,
        name: str,
        args: Optional[Dict[str, Any]],
        context: ToolExecutionContext,
        tool_id: Optional[str] = None,
    ) -> Any:
        """
        Run a command by name.

        A pending system message is emitted unless ``tool_id`` identifies an
        invocation the UI already shows (retries). Handler failures are
        logged with timing and argument details, surfaced as an error system
        message and re-raised so the caller can answer with an error response.

        Raises:
            UnknownToolError: before anything runs, when ``name`` is not registered
            ToolArgumentError: arguments do not match the declaration
        """
        tool = self.get(name)
        if tool is None:
            context.log(f"Tool not found: {name}", "error")
            logger.error("Unknown tool requested", tool=name, session_id=context.session_id)
            _TOOL_EXECUTIONS.labels(tool="unknown", status="unknown").inc()
            raise UnknownToolError(name)

        args = args or {}
        filename = _filename_hint(args)
        display_id = tool_id or f"{name}-{uuid.uuid4().hex[:8]}"
        if tool_id is None:
            context.system(
                f"Running {name}",
                ToolData(name=name, id=display_id, filename=filename, status="pending"),
            )

        started = time.perf_counter()
        try:
            params = tool.validate_parameters(args)
            result = await tool.execute(params, context)
        except Exception as e:
            duration_ms = round((time.perf_counter() - started) * 1000)
            message = str(e) or e.__class__.__name__
            args_payload = json.dumps(args, default=str)
            logger.error(
                "Tool execution failed",
                tool=name,
                session_id=context.session_id,
                duration_ms=duration_ms,
                error=message,
                error_type=e.__class__.__name__,
                args_size=len(args_payload),
                exc_info=True,
            )
            context.log(
                f"Error in {name}: {message}",
                "error",
                duration_ms,
                {
                    "tool_name": name,
                    "content": args_payload,
                    "content_size": len(args_payload),
                    "stack": traceback.format_exc(),
                    "current_folder": context.current_folder,
                    "current_note": context.current_note,
                },
            )
            context.system(
                f"Error in {name}: {message}",
                ToolData(name=name, id=display_id, filename=filename, status="error", error=message),
            )
            _TOOL_EXECUTIONS.labels(tool=name, status="error").inc()
            _TOOL_DURATION.labels(tool=name).observe(duration_ms / 1000.0)
            raise

        duration_ms = round((time.perf_counter() - started) * 1000)
        context.log(f"Executed {name} in {duration_ms}ms", "action", duration_ms)
        logger.info("Tool executed", tool=name, session_id=context.session_id, duration_ms=duration_ms)
        _TOOL_EXECUTIONS.labels(tool=name, status="success").inc()
        _TOOL_DURATION.labels(tool=name).observe(duration_ms / 1000.0)

        outcome = truncate_result(result, self.max_items, self.max_chars)
        if outcome.truncated and outcome.field:
            logger.info(
                "Tool result truncated",
                tool=name,
                field=outcome.field,
                total_items=outcome.total_items,
                shown_items=outcome.shown_items,
            )
            context.system(
                outcome.notice,
                ToolData(
                    name=name,
                    id=display_id,
                    filename=filename,
                    status="success",
                    files=[str(item) for item in outcome.value[outcome.field]],
                    truncated=True,
                    total_items=outcome.total_items,
                    shown_items=outcome.shown_items,
                    current_page=1,
                    total_pages=outcome.total_pages,
                    message=outcome.notice,
                ),
            )
        elif outcome.truncated:
            logger.info("Tool text result truncated", tool=name, max_chars=self.max_chars)
        return outcome.value
