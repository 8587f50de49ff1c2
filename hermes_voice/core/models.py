"""
Core data models for Hermes Voice.

Typed records passed between the session coordinator, the audio pipelines,
the tool dispatch registry and the UI event sink.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Callable, Dict, List, Optional
import time
import uuid


class ConnectionStatus(Enum):
    """Session lifecycle: DISCONNECTED -> CONNECTING -> CONNECTED -> (ERROR | DISCONNECTED)."""
    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    CONNECTED = "CONNECTED"
    ERROR = "ERROR"


TEXT_MIME_TYPE = "text/plain"


@dataclass(frozen=True)
class AudioChunk:
    """Immutable wire chunk: base64 payload plus its mimetype tag."""
    data: str
    mime_type: str

    def to_payload(self) -> Dict[str, str]:
        return {"data": self.data, "mimeType": self.mime_type}


@dataclass
class FileContext:
    """Current folder/note the conversation is anchored to."""
    folder: str = "/"
    note: Optional[str] = None

    def describe(self) -> str:
        return (
            "CURRENT_CONTEXT:\n"
            f"Current Folder Path: {self.folder}\n"
            f"Current Note Name: {self.note or 'No note currently selected'}"
        )


@dataclass
class UsageMetrics:
    """Token usage accumulated over a session."""
    prompt_tokens: int = 0
    response_tokens: int = 0
    total_tokens: int = 0
    updates: int = 0

    def add(self, metadata: Dict[str, Any]) -> None:
        self.prompt_tokens += int(metadata.get("promptTokenCount") or 0)
        self.response_tokens += int(
            metadata.get("responseTokenCount") or metadata.get("candidatesTokenCount") or 0
        )
        self.total_tokens += int(metadata.get("totalTokenCount") or 0)
        self.updates += 1


@dataclass
class Session:
    """One conversation attempt; owns the realtime handle exclusively."""
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    handle: Any = None
    context: FileContext = field(default_factory=FileContext)
    usage: UsageMetrics = field(default_factory=UsageMetrics)
    started_at: float = field(default_factory=time.monotonic)
    end_requested: bool = False


@dataclass(frozen=True)
class ToolInvocation:
    """A model-issued tool call awaiting exactly one response."""
    id: Optional[str]
    name: str
    args: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_function_call(cls, call: Dict[str, Any]) -> "ToolInvocation":
        return cls(
            id=call.get("id"),
            name=call.get("name") or "",
            args=dict(call.get("args") or {}),
        )

    def success(self, result: Any) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "response": {"result": result}}

    def failure(self, message: str) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "response": {"error": message}}


@dataclass
class ToolData:
    """Structured payload attached to a UI system message."""
    name: str
    filename: str = ""
    id: Optional[str] = None
    status: Optional[str] = None  # pending | success | error
    old_content: Optional[str] = None
    new_content: Optional[str] = None
    additions: Optional[int] = None
    removals: Optional[int] = None
    error: Optional[str] = None
    files: Optional[List[str]] = None
    search_results: Optional[List[Dict[str, Any]]] = None
    multi_diffs: Optional[List[Dict[str, Any]]] = None
    truncated: Optional[bool] = None
    total_items: Optional[int] = None
    shown_items: Optional[int] = None
    current_page: Optional[int] = None
    total_pages: Optional[int] = None
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass
class SessionCallbacks:
    """
    UI event sink.

    Every callback is optional; the coordinator skips the ones left unset.
    """
    on_status_change: Optional[Callable[[ConnectionStatus], None]] = None
    on_log: Optional[Callable[..., None]] = None  # (message, kind, duration_ms=None)
    on_transcription: Optional[Callable[[str, str, bool], None]] = None
    on_system_message: Optional[Callable[[str, Optional[ToolData]], None]] = None
    on_file_state_change: Optional[Callable[[str, Optional[str]], None]] = None
    on_usage_update: Optional[Callable[[Dict[str, Any]], None]] = None
    on_volume: Optional[Callable[[float], None]] = None
    on_interrupted: Optional[Callable[[], None]] = None
