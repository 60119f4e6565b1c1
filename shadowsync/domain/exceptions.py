"""Centralized exception hierarchy for shadowsync.

All controller and transport exceptions inherit from :class:`ShadowSyncError`
so that the event loop can catch a single base class for per-event failures,
yet still match on specific subclasses where narrower handling is
appropriate.

Hierarchy
---------
::

    ShadowSyncError (base)
    ├── ConfigurationError    (fatal at startup: settings missing / invalid)
    ├── ConnectError          (fatal: no MQTT session could be established)
    ├── TransportClosedError  (fatal: receive worker ended, rebuild client)
    ├── TransportOpError      (per call: one subscribe / publish failed)
    ├── ShadowDecodeError     (per event: topic or payload has the wrong shape)
    ├── UnknownZoneError      (per event: no zone for the device name)
    └── HardwareError         (per event: a GPIO line could not be driven)
"""

from __future__ import annotations


class ShadowSyncError(Exception):
    """Base exception for all shadowsync errors.

    Parameters
    ----------
    message:
        Human-readable description, logged as-is.
    detail:
        Optional machine-readable context dict (device name, topic, pin,
        raw payload) attached to the error for structured logging.
    """

    def __init__(self, message: str = "", *, detail: dict | None = None) -> None:
        super().__init__(message)
        self.detail = detail or {}


# ── Fatal errors ─────────────────────────────────────────────────────


class ConfigurationError(ShadowSyncError):
    """Missing or invalid settings file."""


class ConnectError(ShadowSyncError):
    """The MQTT session could not be established at construction time."""


class TransportClosedError(ShadowSyncError):
    """The transport's receive worker ended; no further events will arrive."""


# ── Per-operation / per-event errors ─────────────────────────────────


class TransportOpError(ShadowSyncError):
    """A single subscribe or publish attempt failed."""


class ShadowDecodeError(ShadowSyncError):
    """Topic or shadow document did not match the expected shape."""


class UnknownZoneError(ShadowSyncError):
    """An event referenced a device name with no configured zone."""

    def __init__(self, device_name: str) -> None:
        super().__init__(f"Unknown zone for device {device_name}", detail={"device_name": device_name})
        self.device_name = device_name


class HardwareError(ShadowSyncError):
    """A GPIO output line could not be acquired or written."""
