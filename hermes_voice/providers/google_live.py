"""
Google Gemini Live API connector.

Opens a bidirectional WebSocket to the Live ``BidiGenerateContent``
endpoint, sends the session setup, waits for ``setupComplete`` and then
hands every server message to the session coordinator in delivery order.

Wire format (camelCase per the Live API):
- Outbound audio:  {"realtimeInput": {"mediaChunks": [{"mimeType", "data"}]}}
- Outbound text:   {"realtimeInput": {"text": "..."}}
- Tool responses:  {"toolResponse": {"functionResponses": [{"id", "name", "response"}]}}
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import time
from typing import Any, Callable, Dict, List, Optional

import websockets
from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK, WebSocketException

from structlog import get_logger
from prometheus_client import Counter, Gauge

from hermes_voice.audio.codec import decode_base64
from hermes_voice.config import GeminiLiveConfig
from hermes_voice.core.models import TEXT_MIME_TYPE
from hermes_voice.providers.base import (
    ConnectConfig,
    ConnectorCallbacks,
    ConnectorError,
    RealtimeConnector,
    RealtimeHandle,
)

logger = get_logger(__name__)

# Metrics
_GEMINI_LIVE_SESSIONS = Gauge(
    "hermes_gemini_live_active_sessions",
    "Number of open Gemini Live channels",
)
_GEMINI_LIVE_AUDIO_SENT = Counter(
    "hermes_gemini_live_audio_bytes_sent",
    "Total PCM bytes sent to Gemini Live",
)
_GEMINI_LIVE_AUDIO_RECEIVED = Counter(
    "hermes_gemini_live_audio_bytes_received",
    "Total PCM bytes received from Gemini Live",
)

_CLOSE_CODE_MEANINGS = {
    1000: "Normal closure",
    1001: "Going away",
    1002: "Protocol error",
    1003: "Unsupported data",
    1006: "Abnormal closure (no close frame)",
    1007: "Invalid frame payload data",
    1008: "Policy violation (likely auth/permission issue)",
    1009: "Message too big",
    1010: "Mandatory extension missing",
    1011: "Internal server error",
}


def _close_reason(exc: websockets.exceptions.ConnectionClosed) -> str:
    rcvd = getattr(exc, "rcvd", None)
    code = getattr(rcvd, "code", None)
    reason = getattr(rcvd, "reason", "") or ""
    meaning = _CLOSE_CODE_MEANINGS.get(code, "Unknown")
    if code is None:
        return "Connection closed"
    return f"{code} {meaning}" + (f": {reason}" if reason else "")


def _inline_audio_bytes(message: Dict[str, Any]) -> int:
    parts = (((message.get("serverContent") or {}).get("modelTurn") or {}).get("parts")) or []
    total = 0
    for part in parts:
        data = (part.get("inlineData") or {}).get("data")
        if data:
            # base64 expands 3 bytes into 4 characters
            total += len(data) * 3 // 4
    return total


class GeminiLiveHandle(RealtimeHandle):
    """
    One open Live channel.

    The receive loop runs as its own task. Messages after ``setupComplete``
    are held back until the connector has fired ``on_open``.
    """

    def __init__(self, websocket, callbacks: ConnectorCallbacks, session_id: Optional[str] = None):
        self._websocket = websocket
        self._callbacks = callbacks
        self._session_id = session_id
        self._send_lock = asyncio.Lock()
        self._receive_task: Optional[asyncio.Task] = None
        self._setup_ack = asyncio.Event()
        self._opened = asyncio.Event()
        self._setup_failure: Optional[str] = None
        self._closed = False
        self._started_at = time.monotonic()

    @property
    def closed(self) -> bool:
        return self._closed

    def start_receiving(self) -> None:
        self._receive_task = asyncio.create_task(
            self._receive_loop(),
            name=f"gemini-live-receive-{self._session_id}",
        )

    async def wait_for_setup(self, timeout: float) -> None:
        try:
            await asyncio.wait_for(self._setup_ack.wait(), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise ConnectorError(f"Gemini Live setup not acknowledged within {timeout}s") from e
        if self._setup_failure:
            raise ConnectorError(f"Gemini Live closed during setup: {self._setup_failure}")

    def mark_open(self) -> None:
        self._opened.set()

    async def send_message(self, message: Dict[str, Any]) -> None:
        if self._closed:
            raise ConnectorError("Gemini Live channel is closed")
        async with self._send_lock:
            await self._websocket.send(json.dumps(message))

    async def send_realtime_input(self, payload: Dict[str, str]) -> None:
        if payload.get("mimeType") == TEXT_MIME_TYPE:
            text = decode_base64(payload["data"]).decode("utf-8")
            await self.send_message({"realtimeInput": {"text": text}})
            logger.debug("Sent text input", session_id=self._session_id, chars=len(text))
            return

        await self.send_message({"realtimeInput": {"mediaChunks": [payload]}})
        _GEMINI_LIVE_AUDIO_SENT.inc(len(payload.get("data", "")) * 3 // 4)

    async def send_tool_response(self, function_responses: List[Dict[str, Any]]) -> None:
        await self.send_message({"toolResponse": {"functionResponses": function_responses}})
        logger.info(
            "Sent Gemini Live tool response",
            session_id=self._session_id,
            functions=[r.get("name") for r in function_responses],
        )

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        task = self._receive_task
        if task and not task.done() and task is not asyncio.current_task():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        try:
            await self._websocket.close()
        except (OSError, WebSocketException) as e:
            logger.debug("Error closing Gemini Live websocket", session_id=self._session_id, error=str(e))

        _GEMINI_LIVE_SESSIONS.dec()
        logger.info(
            "Gemini Live channel closed",
            session_id=self._session_id,
            duration_seconds=round(time.monotonic() - self._started_at, 2),
        )

    async def _receive_loop(self) -> None:
        """Continuously receive and dispatch messages from Gemini Live."""
        reason = "Normal closure"
        try:
            async for raw in self._websocket:
                try:
                    data = json.loads(raw)
                except json.JSONDecodeError as e:
                    logger.error("Failed to decode Gemini Live message", session_id=self._session_id, error=str(e))
                    continue

                if "setupComplete" in data:
                    logger.info("Gemini Live setup complete (ACK received)", session_id=self._session_id)
                    self._setup_ack.set()
                    await self._opened.wait()
                    continue

                if "goAway" in data:
                    logger.warning(
                        "Gemini Live server sending goAway",
                        session_id=self._session_id,
                        time_left=(data.get("goAway") or {}).get("timeLeft"),
                    )
                    continue

                received = _inline_audio_bytes(data)
                if received:
                    _GEMINI_LIVE_AUDIO_RECEIVED.inc(received)

                try:
                    await self._callbacks.on_message(data)
                except Exception as e:
                    logger.error(
                        "Error handling Gemini Live message",
                        session_id=self._session_id,
                        error=str(e),
                        exc_info=True,
                    )
        except (ConnectionClosedError, ConnectionClosedOK) as e:
            reason = _close_reason(e)
            logger.warning("Gemini Live WebSocket closed", session_id=self._session_id, reason=reason)
            if "1008" in reason:
                logger.error(
                    "Policy violation (1008) - check API key permissions and Gemini Live API access",
                    session_id=self._session_id,
                )
        except (OSError, WebSocketException) as e:
            logger.error("Gemini Live receive loop error", session_id=self._session_id, error=str(e), exc_info=True)
            self._finish_with_error(e)
            return

        self._finish_with_close(reason)

    def _finish_with_close(self, reason: str) -> None:
        if not self._setup_ack.is_set():
            self._setup_failure = reason
            self._setup_ack.set()
            return
        if self._closed:
            return
        if self._callbacks.on_close:
            self._callbacks.on_close(reason)

    def _finish_with_error(self, exc: BaseException) -> None:
        if not self._setup_ack.is_set():
            self._setup_failure = str(exc) or exc.__class__.__name__
            self._setup_ack.set()
            return
        if self._closed:
            return
        if self._callbacks.on_error:
            self._callbacks.on_error(exc)


class GeminiLiveConnector(RealtimeConnector):
    """
    Connector for the Gemini Live API.

    Lifecycle:
    1. connect() -> opens the WebSocket, starts the receive loop, sends setup
    2. waits for setupComplete (timeout -> ConnectorError), fires on_open
    3. the returned handle streams realtime input and tool responses
    4. handle.close() cancels the receive loop and closes the socket
    """

    def __init__(self, config: GeminiLiveConfig, connect_factory: Optional[Callable[..., Any]] = None):
        self.config = config
        self._connect = connect_factory or websockets.connect

    def build_setup_message(self, config: ConnectConfig) -> Dict[str, Any]:
        """Session setup: model, voice, system instruction, tools, transcription toggles."""
        generation_config = {
            "responseModalities": list(config.response_modalities),
            "speechConfig": {
                "voiceConfig": {
                    "prebuiltVoiceConfig": {
                        "voiceName": config.voice_name or "Aoede"
                    }
                }
            },
        }

        setup: Dict[str, Any] = {
            "model": config.model if config.model.startswith("models/") else f"models/{config.model}",
            "generation_config": generation_config,
        }
        if config.system_instruction:
            setup["system_instruction"] = {"parts": [{"text": config.system_instruction}]}
        if config.tools:
            setup["tools"] = config.tools
        # Empty objects enable transcription with default settings
        if config.enable_input_transcription:
            setup["inputAudioTranscription"] = {}
        if config.enable_output_transcription:
            setup["outputAudioTranscription"] = {}
        setup["realtimeInputConfig"] = {
            "automaticActivityDetection": {"disabled": False}
        }
        return {"setup": setup}

    async def connect(self, config: ConnectConfig, callbacks: ConnectorCallbacks) -> GeminiLiveHandle:
        api_key = config.api_key or self.config.api_key or ""
        if not api_key:
            logger.error("GEMINI_API_KEY not found, cannot connect to Gemini Live", session_id=config.session_id)
            raise ConnectorError("GEMINI_API_KEY is required for Gemini Live")

        logger.info("Connecting to Gemini Live", session_id=config.session_id, model=config.model)
        url = f"{self.config.endpoint}?key={api_key}"
        try:
            websocket = await self._connect(url, max_size=self.config.max_message_bytes)
        except (OSError, WebSocketException) as e:
            logger.error("Gemini Live connection failed", session_id=config.session_id, error=str(e))
            raise ConnectorError(f"Could not connect to Gemini Live: {e}") from e

        _GEMINI_LIVE_SESSIONS.inc()
        handle = GeminiLiveHandle(websocket, callbacks, config.session_id)
        # Receive loop first so it can catch setupComplete
        handle.start_receiving()

        setup_msg = self.build_setup_message(config)
        try:
            await handle.send_message(setup_msg)
            logger.info(
                "Sent Gemini Live setup",
                session_id=config.session_id,
                setup_keys=list(setup_msg["setup"].keys()),
                tools_count=sum(len(t.get("functionDeclarations", [])) for t in config.tools),
            )
            await handle.wait_for_setup(self.config.setup_timeout_sec)
        except (OSError, WebSocketException) as e:
            await handle.close()
            raise ConnectorError(f"Gemini Live setup failed: {e}") from e
        except BaseException:
            await handle.close()
            raise

        if callbacks.on_open:
            callbacks.on_open()
        handle.mark_open()
        return handle
