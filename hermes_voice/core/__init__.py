"""Realtime session core: coordinator, audio pipelines, transcripts."""
