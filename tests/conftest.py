"""
Shared fixtures: a temporary vault, fake audio contexts and a scripted
realtime connector. Nothing here touches a sound card or the network.
"""

from typing import Any, Dict, List, Optional
from unittest.mock import Mock

import pytest

from hermes_voice.config import AppConfig
from hermes_voice.core.capture import InputContext
from hermes_voice.core.models import SessionCallbacks
from hermes_voice.core.playback import OutputContext
from hermes_voice.core.session import RealtimeSessionCoordinator
from hermes_voice.providers.base import (
    ConnectConfig,
    ConnectorCallbacks,
    RealtimeConnector,
    RealtimeHandle,
)
from hermes_voice.tools.context import ToolCallbacks, ToolExecutionContext
from hermes_voice.tools.registry import ToolRegistry
from hermes_voice.vault.store import VaultStore


class FakeOutputContext(OutputContext):
    """Output clock under test control (``now``)."""

    def __init__(self, sample_rate: int = 24000):
        self.sample_rate = sample_rate
        self.now = 0.0
        self.started = []
        self.stopped = []
        self.close_calls = 0

    @property
    def current_time(self) -> float:
        return self.now

    def start_source(self, source) -> None:
        self.started.append(source)

    def stop_source(self, source) -> None:
        self.stopped.append(source)

    def close(self) -> None:
        self.close_calls += 1


class FakeInputContext(InputContext):

    def __init__(self, sample_rate: int = 16000):
        self.sample_rate = sample_rate
        self.on_frame = None
        self.close_calls = 0

    def start(self, on_frame) -> None:
        self.on_frame = on_frame

    def close(self) -> None:
        self.close_calls += 1


class FakeAudio:
    """Stands in for AudioDevices."""

    def __init__(self):
        self.input = FakeInputContext()
        self.output = FakeOutputContext()
        self.input_error: Optional[Exception] = None

    def open_input(self) -> FakeInputContext:
        if self.input_error is not None:
            raise self.input_error
        return self.input

    def open_output(self) -> FakeOutputContext:
        return self.output


class FakeHandle(RealtimeHandle):

    def __init__(self):
        self.realtime_inputs: List[Dict[str, str]] = []
        self.tool_responses: List[Dict[str, Any]] = []
        self.close_calls = 0
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def send_realtime_input(self, payload):
        self.realtime_inputs.append(payload)

    async def send_tool_response(self, function_responses):
        self.tool_responses.extend(function_responses)

    async def close(self):
        self.close_calls += 1
        self._closed = True


class FakeConnector(RealtimeConnector):
    """Opens immediately (or fails with ``error``) and lets tests push messages."""

    def __init__(self):
        self.handle = FakeHandle()
        self.config: Optional[ConnectConfig] = None
        self.callbacks: Optional[ConnectorCallbacks] = None
        self.error: Optional[Exception] = None
        self.connect_calls = 0

    async def connect(self, config, callbacks):
        self.connect_calls += 1
        self.config = config
        self.callbacks = callbacks
        if self.error is not None:
            raise self.error
        if callbacks.on_open:
            callbacks.on_open()
        return self.handle

    async def deliver(self, message: Dict[str, Any]) -> None:
        await self.callbacks.on_message(message)


@pytest.fixture
def vault(tmp_path):
    """Vault with a couple of notes."""
    store = VaultStore(str(tmp_path / "vault"))
    (store.root / "projects").mkdir()
    (store.root / "notes.md").write_text("alpha\nbeta\ngamma", encoding="utf-8")
    (store.root / "projects" / "ideas.md").write_text("Idea one\nidea two", encoding="utf-8")
    return store


@pytest.fixture
def tool_callbacks():
    return ToolCallbacks(
        on_log=Mock(),
        on_system=Mock(),
        on_file_state=Mock(),
        on_stop_session=Mock(),
    )


@pytest.fixture
def tool_context(vault, tool_callbacks):
    return ToolExecutionContext(vault=vault, callbacks=tool_callbacks, session_id="test-session")


@pytest.fixture
def registry():
    reg = ToolRegistry()
    reg.initialize_default_tools()
    return reg


@pytest.fixture
def fake_audio():
    return FakeAudio()


@pytest.fixture
def fake_connector():
    return FakeConnector()


@pytest.fixture
def session_callbacks():
    return SessionCallbacks(
        on_status_change=Mock(),
        on_log=Mock(),
        on_transcription=Mock(),
        on_system_message=Mock(),
        on_file_state_change=Mock(),
        on_usage_update=Mock(),
        on_volume=Mock(),
        on_interrupted=Mock(),
    )


@pytest.fixture
def coordinator(fake_connector, fake_audio, registry, vault, session_callbacks):
    return RealtimeSessionCoordinator(
        fake_connector,
        fake_audio,
        registry,
        vault,
        callbacks=session_callbacks,
        config=AppConfig(),
    )
