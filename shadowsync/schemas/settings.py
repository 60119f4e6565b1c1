"""
Settings Schemas
================

Pydantic models for the settings document (``Settings.yaml``): MQTT
connection parameters and the list of zones.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class IoTClientConfig(BaseModel):
    """Connection parameters for the MQTT shadow endpoint."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    client_id: str = Field(..., min_length=1)
    host: str = Field(..., min_length=1)
    port: int = Field(default=8883, gt=0, le=65535)
    root_ca_path: str = Field(..., min_length=1, description="Path to the root CA certificate (PEM)")
    certificate_path: str = Field(..., min_length=1, description="Path to the client certificate (PEM)")
    private_key_path: str = Field(..., min_length=1, description="Path to the client private key (PEM)")
    keep_alive: int = Field(default=10, gt=0, description="MQTT keep-alive in seconds")
    reconnect_delay: int = Field(default=5, gt=0, description="Seconds between automatic reconnect attempts")
    connect_timeout: float = Field(default=30.0, gt=0, description="Seconds to wait for the broker CONNACK")


class ZoneConfig(BaseModel):
    """One zone: a named group of GPIO lines bound to a shadow thing name."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1)
    device_name: str = Field(..., min_length=1, description="Shadow thing name")
    pins: list[int] = Field(..., min_length=1, description="Output pins, switched in this order")
    delay_millis: int = Field(default=0, ge=0, description="Delay between switching consecutive pins")

    @field_validator("device_name")
    def _no_topic_separators(cls, v: str) -> str:
        """A thing name becomes a single topic level."""
        if "/" in v or "+" in v or "#" in v:
            raise ValueError(f"device_name {v!r} must not contain '/', '+' or '#'")
        return v


class Settings(BaseModel):
    """Validated settings document."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    iot_client: IoTClientConfig
    zones: list[ZoneConfig] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_device_names(self) -> "Settings":
        seen: set[str] = set()
        for zone in self.zones:
            if zone.device_name in seen:
                raise ValueError(f"duplicate device_name {zone.device_name!r}")
            seen.add(zone.device_name)
        return self
