"""
Realtime session coordinator.

Owns the connection lifecycle of one voice conversation at a time and wires
the realtime channel to the capture pipeline, the playback scheduler, the
transcript accumulator and the tool dispatch registry.

State machine: DISCONNECTED -> CONNECTING -> CONNECTED -> (ERROR | DISCONNECTED).
Audio streaming and tool dispatch only happen while CONNECTED.

Everything runs on one asyncio loop. Inbound messages are handled one at a
time in delivery order; tool calls are spawned as their own tasks so a slow
handler never holds up audio or transcripts.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional, Set

import structlog

from hermes_voice.audio.codec import encode_base64
from hermes_voice.audio.keepalive import SilentAudioHandle, start_silent_audio, stop_silent_audio
from hermes_voice.config import DEFAULT_SYSTEM_INSTRUCTION, AppConfig, VoiceSettings
from hermes_voice.core.capture import AudioCapturePipeline
from hermes_voice.core.models import (
    TEXT_MIME_TYPE,
    AudioChunk,
    ConnectionStatus,
    FileContext,
    Session,
    SessionCallbacks,
    ToolData,
    ToolInvocation,
)
from hermes_voice.core.playback import PlaybackScheduler
from hermes_voice.core.transcript import TranscriptAccumulator
from hermes_voice.logging_config import set_session_id
from hermes_voice.providers.base import ConnectConfig, ConnectorCallbacks, RealtimeConnector
from hermes_voice.tools.adapters.google import GoogleToolAdapter
from hermes_voice.tools.context import ToolCallbacks, ToolExecutionContext
from hermes_voice.tools.registry import ToolRegistry
from hermes_voice.vault.store import VaultStore

logger = structlog.get_logger(__name__)


class SessionActiveError(RuntimeError):
    """start() was called while a session is connecting or connected."""


class RealtimeSessionCoordinator:
    """
    Coordinates one realtime voice session.

    Args:
        connector: opens the duplex channel (GeminiLiveConnector in production)
        audio: factory with ``open_input()``/``open_output()`` returning the
            capture and playback contexts
        registry: tool dispatch registry declared to the backend
        vault: document store handed to tool handlers
        callbacks: UI event sink
        config: application configuration
    """

    def __init__(
        self,
        connector: RealtimeConnector,
        audio: Any,
        registry: ToolRegistry,
        vault: VaultStore,
        callbacks: Optional[SessionCallbacks] = None,
        config: Optional[AppConfig] = None,
    ):
        self._connector = connector
        self._audio = audio
        self._registry = registry
        self._vault = vault
        self._callbacks = callbacks or SessionCallbacks()
        self._config = config or AppConfig()
        self._tool_adapter = GoogleToolAdapter(registry)

        self._status = ConnectionStatus.DISCONNECTED
        self._session: Optional[Session] = None
        self._context = FileContext()
        self._capture: Optional[AudioCapturePipeline] = None
        self._playback: Optional[PlaybackScheduler] = None
        self._keepalive: Optional[SilentAudioHandle] = None
        self._transcripts = TranscriptAccumulator(self._emit_transcription)
        self._tool_tasks: Set[asyncio.Task] = set()
        self._lifecycle_tasks: Set[asyncio.Task] = set()
        self._stop_task: Optional[asyncio.Task] = None
        self._closed_event: Optional[asyncio.Event] = None

    # -- state -------------------------------------------------------------

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def context(self) -> FileContext:
        """Current folder/note, updated by tool side effects."""
        return self._context

    @property
    def playback(self) -> Optional[PlaybackScheduler]:
        return self._playback

    @property
    def transcripts(self) -> TranscriptAccumulator:
        return self._transcripts

    def _set_status(self, status: ConnectionStatus) -> None:
        if status == self._status:
            return
        previous, self._status = self._status, status
        logger.debug("Session status changed", previous=previous.value, status=status.value)
        if self._callbacks.on_status_change:
            self._callbacks.on_status_change(status)

    # -- UI sink helpers ---------------------------------------------------

    def _log(self, message: str, kind: str = "info", duration_ms: Optional[int] = None, details: Optional[Dict[str, Any]] = None) -> None:
        if details:
            logger.debug("Session log details", message=message, **details)
        if self._callbacks.on_log:
            self._callbacks.on_log(message, kind, duration_ms)

    def _system(self, text: str, data: Optional[ToolData] = None) -> None:
        if self._callbacks.on_system_message:
            self._callbacks.on_system_message(text, data)

    def _emit_transcription(self, role: str, text: str, final: bool) -> None:
        if self._callbacks.on_transcription:
            self._callbacks.on_transcription(role, text, final)

    def _emit_volume(self, level: float) -> None:
        if self._callbacks.on_volume:
            self._callbacks.on_volume(level)

    def _on_file_state(self, folder: str, note: Optional[str]) -> None:
        self._context.folder = folder
        self._context.note = note
        if self._callbacks.on_file_state_change:
            self._callbacks.on_file_state_change(folder, note)

    # -- lifecycle ---------------------------------------------------------

    def compose_system_instruction(self, settings: VoiceSettings, context: FileContext) -> str:
        """Base instruction, live folder/note block, then free-form custom context."""
        if settings.system_instruction is not None:
            base = settings.system_instruction
        else:
            base = DEFAULT_SYSTEM_INSTRUCTION
            tool_text = self._registry.to_prompt_text()
            if tool_text:
                base = f"{base}\n\n{tool_text}"
        return f"{base}\n{context.describe()}\n\n{settings.custom_context or ''}".strip()

    async def start(
        self,
        credential: str,
        settings: Optional[VoiceSettings] = None,
        initial_context: Optional[FileContext] = None,
    ) -> Session:
        """
        Open the channel and start streaming.

        Raises:
            SessionActiveError: a session is already connecting or connected
            ConnectorError: the channel could not be opened
        """
        if self._session is not None or self._status in (ConnectionStatus.CONNECTING, ConnectionStatus.CONNECTED):
            raise SessionActiveError("A voice session is already active")

        settings = settings or self._config.voice
        if initial_context is not None:
            self._context = initial_context
        session = Session(context=self._context)
        self._session = session
        self._closed_event = asyncio.Event()
        set_session_id(session.session_id)

        self._set_status(ConnectionStatus.CONNECTING)
        self._log("Connecting to Gemini Live...")
        self._transcripts.reset()

        audio_cfg = self._config.audio
        try:
            self._playback = PlaybackScheduler(self._audio.open_output(), channels=audio_cfg.channels)
            if audio_cfg.keepalive_enabled:
                self._keepalive = start_silent_audio(
                    sample_rate=audio_cfg.output_sample_rate_hz,
                    device=audio_cfg.output_device,
                    existing=self._keepalive,
                )
            # Microphone access is requested before the channel opens
            self._capture = AudioCapturePipeline(
                self._audio.open_input(),
                self._send_audio_chunk,
                on_volume=self._emit_volume,
                queue_size=audio_cfg.outbound_queue_size,
            )

            gemini = self._config.gemini
            connect_config = ConnectConfig(
                model=gemini.model,
                system_instruction=self.compose_system_instruction(settings, session.context),
                voice_name=settings.voice_name,
                response_modalities=list(gemini.response_modalities),
                tools=self._tool_adapter.get_tools_config(),
                enable_input_transcription=gemini.enable_input_transcription,
                enable_output_transcription=gemini.enable_output_transcription,
                api_key=credential,
                session_id=session.session_id,
            )
            handle = await self._connector.connect(
                connect_config,
                ConnectorCallbacks(
                    on_message=self._handle_message,
                    on_open=lambda: self._on_channel_open(session),
                    on_error=lambda exc: self._on_channel_error(session, exc),
                    on_close=lambda reason: self._on_channel_close(session, reason),
                ),
            )
        except Exception as e:
            logger.error("Failed to start voice session", session_id=session.session_id, error=str(e), exc_info=True)
            self._log(f"Connection failed: {e}", "error")
            if self._session is session:
                await self.stop()
                self._set_status(ConnectionStatus.ERROR)
            raise

        if self._session is not session:
            # stop() ran while the channel was opening
            await handle.close()
            return session

        session.handle = handle
        logger.info("Voice session started", session_id=session.session_id, model=connect_config.model)
        return session

    def _on_channel_open(self, session: Session) -> None:
        if self._session is not session:
            return
        self._set_status(ConnectionStatus.CONNECTED)
        self._log("Connected. Start speaking.", "info")
        if self._capture is not None:
            self._capture.start()

    def _on_channel_error(self, session: Session, exc: BaseException) -> None:
        if self._session is not session:
            return
        logger.error("Realtime channel error", session_id=session.session_id, error=str(exc))
        self._spawn_lifecycle(self._fail(session, exc))

    def _on_channel_close(self, session: Session, reason: str) -> None:
        if self._session is not session:
            return
        logger.info("Realtime channel closed by remote", session_id=session.session_id, reason=reason)
        self._log(f"Connection closed: {reason}", "info")
        self._spawn_lifecycle(self.stop())

    async def _fail(self, session: Session, exc: BaseException) -> None:
        if self._session is not session:
            return
        self._log(f"Connection error: {exc}", "error")
        await self.stop()
        self._set_status(ConnectionStatus.ERROR)

    def _spawn_lifecycle(self, coro) -> None:
        task = asyncio.create_task(coro, name="hermes-session-lifecycle")
        self._lifecycle_tasks.add(task)
        task.add_done_callback(self._lifecycle_tasks.discard)

    async def stop(self) -> None:
        """
        Tear the session down. Idempotent and safe to call from callbacks.

        Concurrent callers all wait for the same teardown. Pending tool
        handlers are not cancelled; their responses are dropped when they
        finish.
        """
        task = self._stop_task
        if task is None:
            if self._session is None and self._status == ConnectionStatus.DISCONNECTED:
                return
            task = self._stop_task = asyncio.create_task(self._teardown(), name="hermes-session-stop")
        elif task is asyncio.current_task():
            return
        try:
            await asyncio.shield(task)
        finally:
            set_session_id(None)

    async def _teardown(self) -> None:
        session, self._session = self._session, None
        capture, self._capture = self._capture, None
        playback, self._playback = self._playback, None
        keepalive, self._keepalive = self._keepalive, None
        try:
            if capture is not None:
                await capture.stop()
            if session is not None and session.handle is not None:
                await session.handle.close()
            if playback is not None:
                playback.close()
            if keepalive is not None and keepalive.active:
                stop_silent_audio(keepalive)

            self._transcripts.reset()
            self._emit_volume(0.0)
            if session is not None:
                logger.info(
                    "Voice session stopped",
                    session_id=session.session_id,
                    total_tokens=session.usage.total_tokens,
                    pending_tools=len(self._tool_tasks),
                )
            self._set_status(ConnectionStatus.DISCONNECTED)
        finally:
            self._stop_task = None
            if self._closed_event is not None:
                self._closed_event.set()

    async def wait_closed(self) -> None:
        """Block until the current session has been stopped."""
        if self._closed_event is not None:
            await self._closed_event.wait()

    async def drain_tool_calls(self) -> None:
        """Wait for every in-flight tool handler to finish."""
        while self._tool_tasks:
            await asyncio.gather(*list(self._tool_tasks), return_exceptions=True)

    # -- outbound ----------------------------------------------------------

    async def _send_audio_chunk(self, chunk: AudioChunk) -> None:
        session = self._session
        if session is None or session.handle is None or session.handle.closed:
            return
        await session.handle.send_realtime_input(chunk.to_payload())

    async def send_text(self, text: str) -> None:
        """Send typed text through the realtime input path. No-op unless connected."""
        session = self._session
        if self._status != ConnectionStatus.CONNECTED or session is None or session.handle is None:
            logger.debug("Ignoring text input, session not connected")
            return
        chunk = AudioChunk(data=encode_base64(text.encode("utf-8")), mime_type=TEXT_MIME_TYPE)
        await session.handle.send_realtime_input(chunk.to_payload())

    # -- inbound -----------------------------------------------------------

    async def _handle_message(self, message: Dict[str, Any]) -> None:
        """Apply one server message. The order of the steps below is fixed."""
        session = self._session
        if session is None:
            return

        content = message.get("serverContent") or {}

        usage = message.get("usageMetadata") or content.get("usageMetadata")
        if usage:
            session.usage.add(usage)
            if self._callbacks.on_usage_update:
                self._callbacks.on_usage_update(usage)

        input_text = (content.get("inputTranscription") or {}).get("text")
        if input_text:
            self._transcripts.append("user", input_text)

        output_text = (content.get("outputTranscription") or {}).get("text")
        if output_text:
            self._transcripts.append("model", output_text)

        if content.get("turnComplete"):
            self._transcripts.flush("user")
            self._transcripts.flush("model")

        for invocation in self._tool_adapter.parse_tool_calls(message):
            logger.info("Gemini Live tool call", function=invocation.name, tool_call_id=invocation.id)
            task = asyncio.create_task(
                self._run_tool(session, invocation),
                name=f"hermes-tool-{invocation.name}",
            )
            self._tool_tasks.add(task)
            task.add_done_callback(self._tool_tasks.discard)

        parts = (content.get("modelTurn") or {}).get("parts") or []
        audio = (parts[0].get("inlineData") or {}).get("data") if parts else None
        if audio and self._playback is not None:
            self._playback.enqueue(audio)

        if content.get("interrupted"):
            if self._playback is not None:
                self._playback.interrupt()
            if self._callbacks.on_interrupted:
                self._callbacks.on_interrupted()

    async def _run_tool(self, session: Session, invocation: ToolInvocation) -> None:
        """Execute one tool call and answer it with exactly one response."""
        context = ToolExecutionContext(
            vault=self._vault,
            callbacks=ToolCallbacks(
                on_log=self._log,
                on_system=self._system,
                on_file_state=self._on_file_state,
                on_stop_session=lambda: setattr(session, "end_requested", True),
            ),
            session_id=session.session_id,
            current_folder=self._context.folder,
            current_note=self._context.note,
        )

        try:
            result = await self._registry.execute(invocation.name, invocation.args, context)
            response = invocation.success(result)
        except Exception as e:
            response = invocation.failure(str(e) or e.__class__.__name__)

        await self._send_tool_response(session, response)

        if session.end_requested and self._session is session:
            logger.info("Ending conversation on model request", session_id=session.session_id)
            self._log("Conversation ended", "info")
            await self.stop()

    async def _send_tool_response(self, session: Session, response: Dict[str, Any]) -> None:
        handle = session.handle
        if self._session is not session or handle is None or handle.closed:
            logger.warning(
                "Dropping tool response for stopped session",
                session_id=session.session_id,
                tool=response.get("name"),
                tool_call_id=response.get("id"),
            )
            return
        try:
            await handle.send_tool_response([response])
        except Exception as e:
            logger.warning(
                "Failed to send tool response",
                session_id=session.session_id,
                tool=response.get("name"),
                error=str(e),
            )
