"""
Google Gemini Live tool adapter.

Formats registry declarations for the Live API setup message and turns
``toolCall.functionCalls`` entries into ``toolResponse.functionResponses``.
"""

from typing import Any, Dict, List

import structlog

from hermes_voice.core.models import ToolInvocation
from hermes_voice.tools.registry import ToolRegistry

logger = structlog.get_logger(__name__)


class GoogleToolAdapter:
    """Adapter between the tool registry and the Gemini Live wire format."""

    def __init__(self, registry: ToolRegistry):
        self.registry = registry

    def get_tools_config(self) -> List[Dict[str, Any]]:
        """
        Tools block for the setup message.

        Returns:
            [{"functionDeclarations": [...]}], or [] when no tool is registered
        """
        declarations = self.registry.to_google_schema()
        if not declarations:
            return []
        logger.debug("Exported tool declarations", count=len(declarations))
        return [{"functionDeclarations": declarations}]

    @staticmethod
    def parse_tool_calls(message: Dict[str, Any]) -> List[ToolInvocation]:
        """Extract invocations from a server ``toolCall`` message."""
        tool_call = message.get("toolCall") or {}
        return [
            ToolInvocation.from_function_call(call)
            for call in tool_call.get("functionCalls") or []
        ]

