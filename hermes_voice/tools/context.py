"""
Tool execution context - what a handler may touch while it runs.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

import structlog

from hermes_voice.core.models import ToolData
from hermes_voice.vault.store import VaultStore

logger = structlog.get_logger(__name__)


@dataclass
class ToolCallbacks:
    """
    Side channels a handler reports through.

    on_log(message, kind, duration_ms=None, details=None)
    on_system(text, tool_data=None)
    on_file_state(folder, note)
    on_stop_session() - ask the coordinator to end the conversation
    """
    on_log: Optional[Callable[..., None]] = None
    on_system: Optional[Callable[[str, Optional[ToolData]], None]] = None
    on_file_state: Optional[Callable[[str, Optional[str]], None]] = None
    on_stop_session: Optional[Callable[[], None]] = None


@dataclass
class ToolExecutionContext:
    """
    Context provided to tools during execution.

    Carries the vault adapter, the session the call belongs to and the
    callbacks used to surface UI messages and file-state changes.
    """

    vault: VaultStore
    callbacks: ToolCallbacks = field(default_factory=ToolCallbacks)
    session_id: Optional[str] = None
    current_folder: str = "/"
    current_note: Optional[str] = None

    def log(self, message: str, kind: str = "info", duration_ms: Optional[int] = None, details: Optional[Dict[str, Any]] = None) -> None:
        if self.callbacks.on_log:
            self.callbacks.on_log(message, kind, duration_ms, details)

    def system(self, text: str, data: Optional[ToolData] = None) -> None:
        if self.callbacks.on_system:
            self.callbacks.on_system(text, data)

    def file_state(self, folder: str, note: Optional[str]) -> None:
        """Record the folder/note the conversation moved to."""
        self.current_folder = folder
        self.current_note = note
        if self.callbacks.on_file_state:
            self.callbacks.on_file_state(folder, note)

    def request_stop(self) -> None:
        if self.callbacks.on_stop_session:
            self.callbacks.on_stop_session()
        else:
            logger.debug("Stop requested but no session to stop", session_id=self.session_id)
