"""
PCM16 / float32 / base64 conversions for the realtime wire format.

Gemini Live takes 16-bit little-endian PCM at 16 kHz and returns 16-bit
PCM at 24 kHz, both base64-encoded inside JSON messages.
"""

import base64

import numpy as np


def float32_to_pcm16(samples: np.ndarray) -> bytes:
    """Convert float samples in [-1.0, 1.0] to PCM16 LE bytes (asymmetric scaling)."""
    clipped = np.clip(np.asarray(samples, dtype=np.float32).reshape(-1), -1.0, 1.0)
    scaled = np.where(clipped < 0, clipped * 0x8000, clipped * 0x7FFF)
    return scaled.astype("<i2").tobytes()


def pcm16_to_float32(data: bytes) -> np.ndarray:
    """Convert PCM16 LE bytes to float32 samples in [-1.0, 1.0)."""
    if len(data) % 2:
        # Odd trailing byte cannot form a sample
        data = data[:-1]
    return np.frombuffer(data, dtype="<i2").astype(np.float32) / 32768.0


def rms(samples: np.ndarray) -> float:
    """Root-mean-square level of float samples; 0.0 for an empty frame."""
    frame = np.asarray(samples, dtype=np.float32).reshape(-1)
    if frame.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(np.square(frame))))


def encode_base64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def decode_base64(data: str) -> bytes:
    return base64.b64decode(data)


def pcm_mime_type(sample_rate: int) -> str:
    return f"audio/pcm;rate={sample_rate}"
