"""
Conversation control tools.
"""

from typing import Any, Dict

import structlog

from hermes_voice.core.models import ToolData
from hermes_voice.tools.base import Tool, ToolCategory, ToolDefinition, ToolParameter
from hermes_voice.tools.context import ToolExecutionContext

logger = structlog.get_logger(__name__)


class TopicSwitchTool(Tool):
    """Marks a change of subject; the summary is shown to the user."""

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="topic_switch",
            description="Signal that the conversation moved to a new topic and summarize the previous one.",
            category=ToolCategory.SESSION,
            instruction="Call this when the user clearly changes the subject.",
            parameters=[
                ToolParameter("summary", "string", "Short summary of the topic being left", required=True),
            ],
        )

    async def execute(self, args, context: ToolExecutionContext) -> Dict[str, Any]:
        context.system(f"Topic switched: {args.summary}", ToolData(
            name="topic_switch",
            filename="Conversation",
            status="success",
            message=args.summary,
        ))
        return {"status": "context_reset"}


class EndConversationTool(Tool):
    """
    Ends the voice session.

    The stop is requested, not performed: the coordinator sends this tool's
    response first and tears the session down afterwards.
    """

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="end_conversation",
            description="End the current voice conversation.",
            category=ToolCategory.SESSION,
            instruction="Call this when the user says goodbye or asks to stop.",
        )

    async def execute(self, args, context: ToolExecutionContext) -> Dict[str, Any]:
        logger.info("Conversation end requested", session_id=context.session_id)
        context.request_stop()
        return {"status": "conversation_ended"}
