"""Realtime channel connectors."""

from hermes_voice.providers.base import (
    ConnectConfig,
    ConnectorCallbacks,
    ConnectorError,
    RealtimeConnector,
    RealtimeHandle,
)

__all__ = [
    "ConnectConfig",
    "ConnectorCallbacks",
    "ConnectorError",
    "RealtimeConnector",
    "RealtimeHandle",
]
