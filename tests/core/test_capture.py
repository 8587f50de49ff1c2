"""
Unit tests for AudioCapturePipeline.
"""

import asyncio
from unittest.mock import AsyncMock, Mock

import numpy as np
import pytest

from hermes_voice.audio.codec import decode_base64
from hermes_voice.core.capture import AudioCapturePipeline


async def _settle():
    for _ in range(20):
        await asyncio.sleep(0)


class TestAudioCapturePipeline:

    @pytest.mark.asyncio
    async def test_frame_metered_encoded_and_sent(self, fake_audio):
        send = AsyncMock()
        on_volume = Mock()
        pipeline = AudioCapturePipeline(fake_audio.input, send, on_volume=on_volume)
        pipeline.start()

        fake_audio.input.on_frame(np.array([0.5, -0.5, 0.5, -0.5], dtype=np.float32))
        await _settle()

        on_volume.assert_called_once()
        assert on_volume.call_args.args[0] == pytest.approx(0.5)
        chunk = send.call_args.args[0]
        assert chunk.mime_type == "audio/pcm;rate=16000"
        assert len(decode_base64(chunk.data)) == 8

        await pipeline.stop()

    @pytest.mark.asyncio
    async def test_send_failure_is_dropped_silently(self, fake_audio):
        send = AsyncMock(side_effect=RuntimeError("channel closed"))
        pipeline = AudioCapturePipeline(fake_audio.input, send)
        pipeline.start()

        fake_audio.input.on_frame(np.zeros(4, dtype=np.float32))
        fake_audio.input.on_frame(np.zeros(4, dtype=np.float32))
        await _settle()

        assert send.await_count == 2
        assert pipeline.running
        await pipeline.stop()

    @pytest.mark.asyncio
    async def test_full_queue_drops_chunk(self, fake_audio):
        gate = asyncio.Event()

        async def slow_send(chunk):
            await gate.wait()

        pipeline = AudioCapturePipeline(fake_audio.input, slow_send, queue_size=1)
        pipeline.start()
        frame = np.zeros(4, dtype=np.float32)

        fake_audio.input.on_frame(frame)
        await _settle()  # sender picks the first chunk and blocks
        fake_audio.input.on_frame(frame)
        fake_audio.input.on_frame(frame)

        assert pipeline.chunks_dropped == 1
        gate.set()
        await pipeline.stop()

    @pytest.mark.asyncio
    async def test_stop_is_idempotent_and_ignores_late_frames(self, fake_audio):
        send = AsyncMock()
        pipeline = AudioCapturePipeline(fake_audio.input, send)
        pipeline.start()

        await pipeline.stop()
        await pipeline.stop()
        pipeline.process_frame(np.zeros(4, dtype=np.float32))

        assert fake_audio.input.close_calls == 2
        assert pipeline.frames_processed == 0
        send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_double_start_rejected(self, fake_audio):
        pipeline = AudioCapturePipeline(fake_audio.input, AsyncMock())
        pipeline.start()

        with pytest.raises(RuntimeError):
            pipeline.start()

        await pipeline.stop()
