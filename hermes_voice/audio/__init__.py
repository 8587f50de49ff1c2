"""Audio codecs and device bindings."""

from hermes_voice.audio.codec import (
    decode_base64,
    encode_base64,
    float32_to_pcm16,
    pcm16_to_float32,
    pcm_mime_type,
    rms,
)

__all__ = [
    "decode_base64",
    "encode_base64",
    "float32_to_pcm16",
    "pcm16_to_float32",
    "pcm_mime_type",
    "rms",
]
