"""
Silent audio keepalive.

Some platforms suspend the audio device (or the whole process) when nothing
is playing between model turns. A zero-amplitude output stream keeps it
awake. The stream is owned by the handle returned from
``start_silent_audio`` and released by ``stop_silent_audio``; there is no
module-level state.
"""

from __future__ import annotations

from typing import Any, Optional

import structlog

logger = structlog.get_logger(__name__)


class SilentAudioHandle:
    """Owns one silent output stream."""

    def __init__(self, stream: Any):
        self._stream = stream

    @property
    def active(self) -> bool:
        return self._stream is not None

    def _release(self) -> Any:
        stream, self._stream = self._stream, None
        return stream


def _silence(outdata, frames, time_info, status) -> None:
    outdata.fill(0)


def start_silent_audio(
    sample_rate: int = 24000,
    device: Optional[str] = None,
    existing: Optional[SilentAudioHandle] = None,
    stream_factory=None,
) -> SilentAudioHandle:
    """
    Start a silent output stream and return its handle.

    Raises:
        RuntimeError: if ``existing`` is still active (double start).
    """
    if existing is not None and existing.active:
        raise RuntimeError("Silent audio keepalive already running")

    if stream_factory is None:
        from hermes_voice.audio.devices import _require_sounddevice
        stream_factory = _require_sounddevice().OutputStream

    stream = stream_factory(
        samplerate=sample_rate,
        channels=1,
        dtype="float32",
        device=device,
        callback=_silence,
    )
    stream.start()
    logger.debug("Silent audio keepalive started", sample_rate=sample_rate)
    return SilentAudioHandle(stream)


def stop_silent_audio(handle: SilentAudioHandle) -> None:
    """
    Stop and release the stream owned by ``handle``.

    Raises:
        RuntimeError: if the handle was already stopped (double stop).
    """
    stream = handle._release()
    if stream is None:
        raise RuntimeError("Silent audio keepalive already stopped")
    try:
        stream.stop()
    finally:
        stream.close()
    logger.debug("Silent audio keepalive stopped")
