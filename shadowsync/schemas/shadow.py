"""
Shadow Document Schemas
=======================

The controller only ever looks at one string field of a shadow document:

- get accepted: ``state.desired.state``
- update delta: ``state.state``

Each shape has a model here and an explicit decode function so that a
missing or wrongly-typed field surfaces as :class:`ShadowDecodeError`
instead of a ``KeyError`` deep in the event loop. Unknown fields
(``metadata``, ``version``, ``timestamp`` ...) are ignored.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, StrictStr, ValidationError

from shadowsync.domain.exceptions import ShadowDecodeError
from shadowsync.enums import ZoneState


class _StateField(BaseModel):
    model_config = ConfigDict(extra="ignore")

    state: StrictStr


class _DesiredSection(BaseModel):
    model_config = ConfigDict(extra="ignore")

    desired: _StateField


class GetAcceptedDocument(BaseModel):
    """Payload of ``things/{id}/shadow/get/accepted``."""

    model_config = ConfigDict(extra="ignore")

    state: _DesiredSection


class DeltaDocument(BaseModel):
    """Payload of ``things/{id}/shadow/update/delta``."""

    model_config = ConfigDict(extra="ignore")

    state: _StateField


class _ReportedState(BaseModel):
    state: ZoneState


class _ReportedSection(BaseModel):
    reported: _ReportedState


class ReportedStateDocument(BaseModel):
    """Payload published to ``things/{id}/shadow/update``."""

    state: _ReportedSection

    @classmethod
    def for_state(cls, state: bool) -> "ReportedStateDocument":
        return cls(state=_ReportedSection(reported=_ReportedState(state=ZoneState.from_bool(state))))


def decode_desired_state(document: Any) -> str:
    """Return ``state.desired.state`` of a get-accepted document."""
    try:
        return GetAcceptedDocument.model_validate(document).state.desired.state
    except ValidationError as e:
        raise ShadowDecodeError(
            "get response has no string state.desired.state",
            detail={"document": document, "errors": e.errors(include_url=False)},
        ) from e


def decode_delta_state(document: Any) -> str:
    """Return ``state.state`` of a delta document."""
    try:
        return DeltaDocument.model_validate(document).state.state
    except ValidationError as e:
        raise ShadowDecodeError(
            "delta has no string state.state",
            detail={"document": document, "errors": e.errors(include_url=False)},
        ) from e


def encode_reported_state(state: bool) -> str:
    """Compact JSON, e.g. ``{"state":{"reported":{"state":"ON"}}}``."""
    return ReportedStateDocument.for_state(state).model_dump_json()
