"""
Gapless playback scheduling for model audio.

Inbound PCM16 payloads are decoded and scheduled back to back on an output
context clock. A single ``next_start_time`` cursor keeps buffers from
overlapping; interruption stops every live source at once.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Optional, Set

import numpy as np
import structlog
from prometheus_client import Counter

from hermes_voice.audio.codec import decode_base64, pcm16_to_float32

logger = structlog.get_logger(__name__)

_PLAYBACK_SOURCES_SCHEDULED = Counter(
    "hermes_playback_sources_scheduled",
    "Total model audio buffers scheduled for playback",
)
_PLAYBACK_INTERRUPTIONS = Counter(
    "hermes_playback_interruptions",
    "Total playback interruptions (barge-in)",
)


class PlaybackSource:
    """
    One scheduled, independently stoppable buffer of decoded audio.

    ``on_ended`` fires exactly once, whether the buffer finished naturally or
    was stopped.
    """

    def __init__(
        self,
        samples: np.ndarray,
        sample_rate: int,
        start_time: float,
        on_ended: Optional[Callable[["PlaybackSource"], None]] = None,
    ):
        self.samples = samples
        self.sample_rate = sample_rate
        self.start_time = start_time
        self.duration = len(samples) / float(sample_rate)
        self.on_ended = on_ended
        self.stopped = False
        self.ended = False
        self._context: Optional[OutputContext] = None

    @property
    def end_time(self) -> float:
        return self.start_time + self.duration

    def stop(self) -> None:
        """Stop immediately. Stopping a finished source is a no-op."""
        if self.ended or self.stopped:
            return
        self.stopped = True
        if self._context is not None:
            self._context.stop_source(self)
        self.finish()

    def finish(self) -> None:
        if self.ended:
            return
        self.ended = True
        if self.on_ended:
            self.on_ended(self)


class OutputContext(ABC):
    """Clocked audio sink that plays sources at absolute start times."""

    sample_rate: int

    @property
    @abstractmethod
    def current_time(self) -> float:
        """Seconds elapsed on the output clock."""

    @abstractmethod
    def start_source(self, source: PlaybackSource) -> None:
        """Begin playing ``source`` at ``source.start_time`` on this clock."""

    @abstractmethod
    def stop_source(self, source: PlaybackSource) -> None:
        """Silence ``source`` now; must tolerate sources already finished."""

    @abstractmethod
    def close(self) -> None:
        """Release the device; must tolerate being called twice."""


class PlaybackScheduler:
    """Schedules non-overlapping playback and tracks live sources."""

    def __init__(self, context: OutputContext, channels: int = 1):
        if channels != 1:
            raise ValueError("Only mono playback is supported")
        self._context = context
        self.channels = channels
        self.next_start_time: float = 0.0
        self._sources: Set[PlaybackSource] = set()
        self._closed = False

    @property
    def sources(self) -> frozenset:
        return frozenset(self._sources)

    @property
    def closed(self) -> bool:
        return self._closed

    def enqueue(self, audio_b64: str) -> Optional[PlaybackSource]:
        """Decode a base64 PCM16 payload and schedule it after the previous one."""
        if self._closed:
            logger.debug("Dropping audio for closed playback scheduler")
            return None

        samples = pcm16_to_float32(decode_base64(audio_b64))
        if samples.size == 0:
            return None

        # Cold start or playback fell behind: never schedule in the past
        self.next_start_time = max(self.next_start_time, self._context.current_time)

        source = PlaybackSource(
            samples,
            sample_rate=self._context.sample_rate,
            start_time=self.next_start_time,
            on_ended=self._sources.discard,
        )
        source._context = self._context
        self._sources.add(source)
        self.next_start_time += source.duration
        self._context.start_source(source)

        _PLAYBACK_SOURCES_SCHEDULED.inc()
        logger.debug(
            "Scheduled playback source",
            start_time=round(source.start_time, 3),
            duration=round(source.duration, 3),
            live_sources=len(self._sources),
        )
        return source

    def interrupt(self) -> int:
        """Stop every live source, clear the set and reset the cursor to zero."""
        stopped = self._stop_all()
        self.next_start_time = 0.0
        _PLAYBACK_INTERRUPTIONS.inc()
        logger.info("Playback interrupted", stopped_sources=stopped)
        return stopped

    def close(self) -> None:
        """Stop everything and release the output context. Idempotent."""
        self._stop_all()
        self.next_start_time = 0.0
        if self._closed:
            return
        self._closed = True
        self._context.close()

    def _stop_all(self) -> int:
        sources = list(self._sources)
        for source in sources:
            try:
                source.stop()
            except Exception as e:
                # Best-effort: a device that already released the source is fine
                logger.debug("Failed to stop playback source", error=str(e))
        self._sources.clear()
        return len(sources)
