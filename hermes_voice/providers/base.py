"""
Connector interface for the duplex realtime channel.

The session coordinator only sees this surface: it opens a channel with a
ConnectConfig, receives server messages through ConnectorCallbacks and
writes through the returned RealtimeHandle.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional


class ConnectorError(RuntimeError):
    """The channel could not be opened or was used after it closed."""


@dataclass
class ConnectConfig:
    model: str
    system_instruction: str = ""
    voice_name: str = "Aoede"
    response_modalities: List[str] = field(default_factory=lambda: ["AUDIO"])
    tools: List[Dict[str, Any]] = field(default_factory=list)
    enable_input_transcription: bool = True
    enable_output_transcription: bool = True
    api_key: Optional[str] = None
    session_id: Optional[str] = None


@dataclass
class ConnectorCallbacks:
    """
    Channel events.

    ``on_message`` is awaited once per server message, in delivery order.
    The others are plain callables and may be left unset.
    """
    on_message: Callable[[Dict[str, Any]], Awaitable[None]]
    on_open: Optional[Callable[[], None]] = None
    on_error: Optional[Callable[[BaseException], None]] = None
    on_close: Optional[Callable[[str], None]] = None


class RealtimeHandle(ABC):
    """Write side of an open channel."""

    @property
    @abstractmethod
    def closed(self) -> bool:
        ...

    @abstractmethod
    async def send_realtime_input(self, payload: Dict[str, str]) -> None:
        """
        Send one ``{"data": <base64>, "mimeType": ...}`` payload.

        Raises:
            ConnectorError: when the channel is closed
        """

    @abstractmethod
    async def send_tool_response(self, function_responses: List[Dict[str, Any]]) -> None:
        """Send ``{id, name, response}`` entries answering tool calls."""

    @abstractmethod
    async def close(self) -> None:
        """Close the channel. Idempotent; no callbacks fire afterwards."""


class RealtimeConnector(ABC):

    @abstractmethod
    async def connect(self, config: ConnectConfig, callbacks: ConnectorCallbacks) -> RealtimeHandle:
        """
        Open the channel and return once the backend acknowledged setup.

        ``callbacks.on_open`` fires before this returns.

        Raises:
            ConnectorError: connection refused or setup not acknowledged in time
        """
