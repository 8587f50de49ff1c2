"""
Unit tests for the silent audio keepalive.
"""

import numpy as np
import pytest

from hermes_voice.audio.keepalive import start_silent_audio, stop_silent_audio


class FakeStream:
    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.events = []

    def start(self):
        self.events.append("start")

    def stop(self):
        self.events.append("stop")

    def close(self):
        self.events.append("close")


class TestSilentAudio:

    def test_start_and_stop(self):
        handle = start_silent_audio(sample_rate=24000, stream_factory=FakeStream)
        stream = handle._stream

        assert handle.active
        assert stream.kwargs["samplerate"] == 24000
        assert stream.kwargs["channels"] == 1

        stop_silent_audio(handle)

        assert not handle.active
        assert stream.events == ["start", "stop", "close"]

    def test_callback_writes_silence(self):
        handle = start_silent_audio(stream_factory=FakeStream)
        callback = handle._stream.kwargs["callback"]
        out = np.ones((128, 1), dtype=np.float32)

        callback(out, 128, None, None)

        assert not out.any()
        stop_silent_audio(handle)

    def test_double_start_raises(self):
        handle = start_silent_audio(stream_factory=FakeStream)

        with pytest.raises(RuntimeError, match="already running"):
            start_silent_audio(existing=handle, stream_factory=FakeStream)

        stop_silent_audio(handle)

    def test_restart_after_stop_allowed(self):
        handle = start_silent_audio(stream_factory=FakeStream)
        stop_silent_audio(handle)

        again = start_silent_audio(existing=handle, stream_factory=FakeStream)

        assert again.active
        stop_silent_audio(again)

    def test_double_stop_raises(self):
        handle = start_silent_audio(stream_factory=FakeStream)
        stop_silent_audio(handle)

        with pytest.raises(RuntimeError, match="already stopped"):
            stop_silent_audio(handle)
