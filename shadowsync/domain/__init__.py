"""
Domain Models

Zone entity and the exception hierarchy.
"""

from .exceptions import (
    ConfigurationError,
    ConnectError,
    HardwareError,
    ShadowDecodeError,
    ShadowSyncError,
    TransportClosedError,
    TransportOpError,
    UnknownZoneError,
)
from .zone import Zone

__all__ = [
    "ShadowSyncError",
    "ConfigurationError",
    "ConnectError",
    "TransportClosedError",
    "TransportOpError",
    "ShadowDecodeError",
    "UnknownZoneError",
    "HardwareError",
    "Zone",
]
