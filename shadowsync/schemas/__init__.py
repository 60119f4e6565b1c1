"""
Schemas
=======

Pydantic models for settings, shadow documents and queue events.
"""

from shadowsync.schemas.events import DeltaUpdate, GetResponse, Reconnected, ShadowEvent, TransportClosed
from shadowsync.schemas.settings import IoTClientConfig, Settings, ZoneConfig
from shadowsync.schemas.shadow import (
    DeltaDocument,
    GetAcceptedDocument,
    ReportedStateDocument,
    decode_delta_state,
    decode_desired_state,
    encode_reported_state,
)

__all__ = [
    # Events
    "Reconnected",
    "GetResponse",
    "DeltaUpdate",
    "TransportClosed",
    "ShadowEvent",
    # Settings
    "IoTClientConfig",
    "ZoneConfig",
    "Settings",
    # Shadow documents
    "GetAcceptedDocument",
    "DeltaDocument",
    "ReportedStateDocument",
    "decode_desired_state",
    "decode_delta_state",
    "encode_reported_state",
]
