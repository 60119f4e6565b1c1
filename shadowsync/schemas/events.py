"""
Shadow events handed from the transport's receive worker to the controller.

Each inbound message or connectivity transition becomes exactly one event on
the shared queue and is consumed exactly once.
"""

from __future__ import annotations

from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class _Event(BaseModel):
    model_config = ConfigDict(frozen=True)


class Reconnected(_Event):
    """The session came back after a disconnect; subscriptions are gone."""

    kind: Literal["reconnected"] = "reconnected"


class GetResponse(_Event):
    """Accepted response to a shadow get request."""

    kind: Literal["get_response"] = "get_response"
    device_name: str
    document: dict[str, Any] = Field(default_factory=dict)


class DeltaUpdate(_Event):
    """Desired-state delta for one device."""

    kind: Literal["delta_update"] = "delta_update"
    device_name: str
    document: dict[str, Any] = Field(default_factory=dict)


class TransportClosed(_Event):
    """Last event of a client: its receive worker has stopped."""

    kind: Literal["transport_closed"] = "transport_closed"
    reason: str = ""


ShadowEvent = Union[Reconnected, GetResponse, DeltaUpdate, TransportClosed]
