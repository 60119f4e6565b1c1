"""
Shadow Controller
=================

Keeps zones in step with their device shadows.

The controller is the only thread that switches zones and the only caller of
the transport's shadow operations during normal running. It:

1. Resyncs on start: for every zone, requests the current shadow and
   subscribes to its delta topic.
2. Blocks on the event queue and handles one event at a time, in order:
   - Reconnected  -> resync again (subscriptions do not survive a reconnect,
     and deltas published while offline were missed).
   - GetResponse  -> apply ``state.desired.state``; always report back.
   - DeltaUpdate  -> apply ``state.state``; report back only on change.
   - TransportClosed -> stop; the caller rebuilds client and controller.

A failure while handling one event is logged and the loop moves on.
"""

from __future__ import annotations

import logging
from queue import Queue
from typing import Protocol

from shadowsync.domain.exceptions import ShadowSyncError, TransportClosedError, TransportOpError, UnknownZoneError
from shadowsync.domain.zone import Zone
from shadowsync.enums import ZoneState
from shadowsync.schemas.events import DeltaUpdate, GetResponse, Reconnected, ShadowEvent, TransportClosed
from shadowsync.schemas.shadow import decode_delta_state, decode_desired_state

logger = logging.getLogger(__name__)


class ShadowTransport(Protocol):
    """Operations the controller needs from the transport client."""

    def request_shadow(self, device_name: str) -> None: ...

    def subscribe_to_delta(self, device_name: str) -> None: ...

    def report_state(self, device_name: str, state: bool) -> None: ...


class ShadowController:
    """Routes shadow events to zones and reports applied state."""

    def __init__(self, zones: dict[str, Zone], client: ShadowTransport, events: "Queue[ShadowEvent]"):
        """
        Args:
            zones: Zones keyed by shadow device name.
            client: Transport used for get / subscribe / report.
            events: Queue fed by the transport's receive worker.
        """
        self.zones = zones
        self.client = client
        self.events = events

    def run(self) -> None:
        """
        Resync, then handle events until the transport closes.

        Raises:
            TransportClosedError: the receive worker stopped.
        """
        self.resync()
        logger.info("Shadow controller running with %s zone(s)", len(self.zones))
        while True:
            event = self.events.get()
            if isinstance(event, TransportClosed):
                raise TransportClosedError(
                    f"Shadow transport closed: {event.reason}", detail={"reason": event.reason}
                )
            self.handle_event(event)

    def resync(self) -> None:
        """Request every zone's shadow and (re)subscribe to its delta."""
        for zone in self.zones.values():
            try:
                self.client.request_shadow(zone.device_name)
            except TransportOpError as e:
                logger.error("Unable to get shadow for %s: %s", zone.name, e)
            try:
                self.client.subscribe_to_delta(zone.device_name)
            except TransportOpError as e:
                logger.error("Unable to subscribe to shadow delta for %s: %s", zone.name, e)

    def handle_event(self, event: ShadowEvent) -> None:
        """Handle one event; never raises."""
        if isinstance(event, Reconnected):
            logger.info("Reconnected; resyncing %s zone(s)", len(self.zones))
            self.resync()
            return

        if isinstance(event, GetResponse):
            handler, kind = self._handle_get, "get response"
        elif isinstance(event, DeltaUpdate):
            handler, kind = self._handle_delta, "delta"
        else:
            logger.warning("Ignoring unexpected event %r", event)
            return

        try:
            handler(event.device_name, event.document)
        except ShadowSyncError as e:
            logger.error(
                "Failed to handle %s for %s: %s (document=%s)",
                kind,
                event.device_name,
                e,
                event.document,
            )
        except Exception:
            logger.exception("Unexpected error handling %s for %s (document=%s)", kind, event.device_name, event.document)

    def _handle_get(self, device_name: str, document: dict) -> None:
        logger.debug("Receive get response %s, %s", device_name, document)
        desired = decode_desired_state(document)
        zone = self._zone(device_name)
        state = ZoneState.parse(desired)
        zone.set_state(state)
        # A get is an explicit status request: always answer it.
        self.client.report_state(device_name, state)

    def _handle_delta(self, device_name: str, document: dict) -> None:
        logger.debug("Receive shadow delta %s, %s", device_name, document)
        desired = decode_delta_state(document)
        zone = self._zone(device_name)
        state = ZoneState.parse(desired)
        if not zone.set_state(state):
            logger.debug("No change for %s", device_name)
            return
        self.client.report_state(device_name, state)

    def _zone(self, device_name: str) -> Zone:
        zone = self.zones.get(device_name)
        if zone is None:
            raise UnknownZoneError(device_name)
        return zone

    def zone_states(self) -> dict[str, bool]:
        return {device_name: zone.state for device_name, zone in self.zones.items()}
