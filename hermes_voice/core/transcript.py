"""
Streaming transcript accumulation.

Gemini Live sends transcriptions as INCREMENTAL fragments, not cumulative
updates (" What" -> " is" -> " the" -> " la" -> "ten" -> "cy"), so fragments
are concatenated per speaker until the turn completes.
"""

from typing import Callable, Dict, Optional

import structlog

logger = structlog.get_logger(__name__)

ROLES = ("user", "model")


class TranscriptAccumulator:
    """Two independent append buffers, one per speaker role."""

    def __init__(self, on_transcription: Optional[Callable[[str, str, bool], None]] = None):
        self._on_transcription = on_transcription
        self._buffers: Dict[str, str] = {role: "" for role in ROLES}

    def text(self, role: str) -> str:
        return self._buffers[self._check_role(role)]

    def append(self, role: str, fragment: str) -> str:
        """Append a fragment and emit the full accumulated text as non-final."""
        role = self._check_role(role)
        if not fragment:
            return self._buffers[role]
        self._buffers[role] += fragment
        accumulated = self._buffers[role]
        if self._on_transcription:
            self._on_transcription(role, accumulated, False)
        return accumulated

    def flush(self, role: str) -> Optional[str]:
        """Emit the accumulated text as final and clear it. No-op when empty."""
        role = self._check_role(role)
        text = self._buffers[role]
        if not text:
            return None
        self._buffers[role] = ""
        logger.debug("Final transcription", role=role, text_preview=text[:150])
        if self._on_transcription:
            self._on_transcription(role, text, True)
        return text

    def reset(self) -> None:
        """Drop both buffers without emitting anything."""
        for role in ROLES:
            self._buffers[role] = ""

    @staticmethod
    def _check_role(role: str) -> str:
        if role not in ROLES:
            raise ValueError(f"Unknown transcript role: {role!r}")
        return role
