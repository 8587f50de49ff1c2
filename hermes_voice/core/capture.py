"""
Microphone capture pipeline.

Frames arrive periodically from the input device. Each frame is metered
(RMS volume for the UI), converted to PCM16, base64-encoded and put on a
bounded outbound queue. A dedicated sender task drains the queue into the
realtime channel so channel backpressure never blocks frame delivery.
"""

from __future__ import annotations

import asyncio
import contextlib
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional

import numpy as np
import structlog
from prometheus_client import Counter

from hermes_voice.audio.codec import encode_base64, float32_to_pcm16, pcm_mime_type, rms
from hermes_voice.core.models import AudioChunk

logger = structlog.get_logger(__name__)

_CAPTURE_CHUNKS_DROPPED = Counter(
    "hermes_capture_chunks_dropped",
    "Captured audio chunks dropped because the outbound queue was full",
)


class InputContext(ABC):
    """Microphone source delivering float32 mono frames on the event loop."""

    sample_rate: int

    @abstractmethod
    def start(self, on_frame: Callable[[np.ndarray], None]) -> None:
        """Start capturing; ``on_frame`` is invoked on the event loop thread."""

    @abstractmethod
    def close(self) -> None:
        """Stop capturing and release the device; must tolerate repeats."""


class AudioCapturePipeline:
    """Turns a live input context into outbound PCM16 chunks."""

    def __init__(
        self,
        context: InputContext,
        send: Callable[[AudioChunk], Awaitable[None]],
        on_volume: Optional[Callable[[float], None]] = None,
        queue_size: int = 32,
    ):
        self._context = context
        self._send = send
        self._on_volume = on_volume
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self._sender_task: Optional[asyncio.Task] = None
        self._running = False
        self._mime_type = pcm_mime_type(context.sample_rate)
        self.frames_processed = 0
        self.chunks_dropped = 0

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        if self._running:
            raise RuntimeError("Capture pipeline already running")
        self._running = True
        self._sender_task = asyncio.create_task(self._drain(), name="hermes-capture-sender")
        self._context.start(self.process_frame)
        logger.info("Microphone streaming started", sample_rate=self._context.sample_rate)

    def process_frame(self, samples: np.ndarray) -> None:
        """Meter, encode and enqueue one captured frame. Never blocks."""
        if not self._running:
            return
        self.frames_processed += 1

        if self._on_volume:
            self._on_volume(rms(samples))

        chunk = AudioChunk(
            data=encode_base64(float32_to_pcm16(samples)),
            mime_type=self._mime_type,
        )
        try:
            self._queue.put_nowait(chunk)
        except asyncio.QueueFull:
            self.chunks_dropped += 1
            _CAPTURE_CHUNKS_DROPPED.inc()
            logger.debug("Outbound audio queue full, dropping chunk", dropped=self.chunks_dropped)

    async def _drain(self) -> None:
        while True:
            chunk = await self._queue.get()
            try:
                await self._send(chunk)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                # Sends racing a torn-down channel are dropped without surfacing
                logger.debug("Dropped outbound audio chunk", error=str(e))

    async def stop(self) -> None:
        """Stop capture and the sender task. Idempotent."""
        was_running = self._running
        self._running = False
        self._context.close()

        task, self._sender_task = self._sender_task, None
        if task and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        while not self._queue.empty():
            self._queue.get_nowait()

        if was_running:
            logger.info(
                "Microphone streaming stopped",
                frames=self.frames_processed,
                dropped=self.chunks_dropped,
            )
