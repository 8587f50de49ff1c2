"""
PortAudio-backed input/output contexts (via sounddevice).

PortAudio invokes stream callbacks on its own thread; every event that
reaches session code is marshalled onto the asyncio loop with
``call_soon_threadsafe``.
"""

from __future__ import annotations

import asyncio
import threading
from typing import Callable, List, Optional

import numpy as np
import structlog

from hermes_voice.config import AudioConfig
from hermes_voice.core.capture import InputContext
from hermes_voice.core.playback import OutputContext, PlaybackSource

logger = structlog.get_logger(__name__)


def _require_sounddevice():
    try:
        import sounddevice as sd
    except (ImportError, OSError) as exc:  # pragma: no cover - depends on host audio stack
        raise RuntimeError("sounddevice (and the PortAudio library) is required for audio I/O.") from exc
    return sd


def _call_on_loop(loop: asyncio.AbstractEventLoop, callback, *args) -> None:
    if loop.is_closed():
        return
    try:
        loop.call_soon_threadsafe(callback, *args)
    except RuntimeError:
        # Loop shut down between the check and the call
        pass


class DeviceInputContext(InputContext):
    """Microphone input. Opening the stream is the point where access is requested."""

    def __init__(
        self,
        sample_rate: int,
        block_size: int = 4096,
        device: Optional[str] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        sd = _require_sounddevice()
        self.sample_rate = sample_rate
        self._loop = loop or asyncio.get_running_loop()
        self._on_frame: Optional[Callable[[np.ndarray], None]] = None
        self._stream = sd.InputStream(
            samplerate=sample_rate,
            channels=1,
            dtype="float32",
            blocksize=block_size,
            device=device,
            callback=self._callback,
        )

    def _callback(self, indata, frames, time_info, status) -> None:
        if status:
            logger.debug("Input stream status", status=str(status))
        if self._on_frame is None:
            return
        _call_on_loop(self._loop, self._on_frame, indata[:, 0].copy())

    def start(self, on_frame: Callable[[np.ndarray], None]) -> None:
        if self._stream is None:
            raise RuntimeError("Input context already closed")
        self._on_frame = on_frame
        self._stream.start()

    def close(self) -> None:
        stream, self._stream = self._stream, None
        self._on_frame = None
        if stream is None:
            return
        stream.stop()
        stream.close()


class DeviceOutputContext(OutputContext):
    """
    Speaker output with a sample-accurate clock.

    The clock is the number of frames rendered so far; sources are mixed into
    each callback block according to their absolute start time.
    """

    def __init__(
        self,
        sample_rate: int,
        device: Optional[str] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        sd = _require_sounddevice()
        self.sample_rate = sample_rate
        self._loop = loop or asyncio.get_running_loop()
        self._lock = threading.Lock()
        self._active: List[PlaybackSource] = []
        self._frames_rendered = 0
        self._stream = sd.OutputStream(
            samplerate=sample_rate,
            channels=1,
            dtype="float32",
            device=device,
            callback=self._callback,
        )
        self._stream.start()

    @property
    def current_time(self) -> float:
        return self._frames_rendered / float(self.sample_rate)

    def start_source(self, source: PlaybackSource) -> None:
        with self._lock:
            self._active.append(source)

    def stop_source(self, source: PlaybackSource) -> None:
        with self._lock:
            if source in self._active:
                self._active.remove(source)

    def _callback(self, outdata, frames, time_info, status) -> None:
        outdata.fill(0)
        block_start = self._frames_rendered
        block_end = block_start + frames
        finished = []

        with self._lock:
            for source in list(self._active):
                src_start = int(round(source.start_time * self.sample_rate))
                src_end = src_start + len(source.samples)
                if src_start >= block_end:
                    continue
                lo = max(src_start, block_start)
                hi = min(src_end, block_end)
                if hi > lo:
                    outdata[lo - block_start:hi - block_start, 0] += source.samples[lo - src_start:hi - src_start]
                if src_end <= block_end:
                    self._active.remove(source)
                    finished.append(source)

        np.clip(outdata, -1.0, 1.0, out=outdata)
        self._frames_rendered = block_end

        for source in finished:
            _call_on_loop(self._loop, source.finish)

    def close(self) -> None:
        stream, self._stream = self._stream, None
        with self._lock:
            self._active.clear()
        if stream is None:
            return
        stream.stop()
        stream.close()


class AudioDevices:
    """Opens the capture and playback contexts a session needs."""

    def __init__(self, config: AudioConfig):
        self.config = config

    def open_input(self) -> DeviceInputContext:
        return DeviceInputContext(
            sample_rate=self.config.input_sample_rate_hz,
            block_size=self.config.capture_block_size,
            device=self.config.input_device,
        )

    def open_output(self) -> DeviceOutputContext:
        return DeviceOutputContext(
            sample_rate=self.config.output_sample_rate_hz,
            device=self.config.output_device,
        )
