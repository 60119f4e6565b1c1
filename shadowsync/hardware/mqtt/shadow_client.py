"""
    This module provides the MQTT transport for device shadows.
    It owns the paho session (mutual TLS, keep-alive, automatic reconnect),
    exposes the shadow get / delta-subscribe / report operations, and runs a
    receive worker that turns inbound notifications into typed events on a
    single ordered queue.

    paho's network thread never touches zones or the event queue directly: its
    callbacks only enqueue raw notifications, which the receive worker
    decodes in arrival order.
"""

from __future__ import annotations

import json
import logging
import os
import ssl
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from queue import Queue
from typing import Any, NamedTuple

import paho.mqtt.client as mqtt

from shadowsync.domain.exceptions import ConnectError, ShadowDecodeError, TransportOpError
from shadowsync.enums import ShadowAction
from shadowsync.hardware.mqtt.client_factory import configure_tls, create_mqtt_client
from shadowsync.hardware.mqtt.topics import (
    classify_topic,
    shadow_delta_topic,
    shadow_get_accepted_topic,
    shadow_get_topic,
    shadow_update_topic,
)
from shadowsync.schemas.events import DeltaUpdate, GetResponse, Reconnected, ShadowEvent, TransportClosed
from shadowsync.schemas.settings import IoTClientConfig
from shadowsync.schemas.shadow import encode_reported_state

logger = logging.getLogger(__name__)

_LOG_MQTT_TRACE = os.getenv("SHADOWSYNC_MQTT_TRACE", "").lower() in {"1", "true", "t", "yes", "on"}

# Gives the broker time to acknowledge the get/accepted subscription before
# the get request is published, otherwise the response can arrive first.
SHADOW_GET_SETTLE_SECONDS = 0.25

QOS_AT_MOST_ONCE = 0


class Connected(NamedTuple):
    rc: int


class Disconnected(NamedTuple):
    rc: int


class Message(NamedTuple):
    topic: str
    payload: bytes


class _Stop(NamedTuple):
    pass


Notification = Connected | Disconnected | Message | _Stop

_STOP = _Stop()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def decode_payload(payload: bytes) -> dict[str, Any]:
    """Decode a UTF-8 JSON object payload."""
    try:
        document = json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ShadowDecodeError(f"payload is not UTF-8 JSON: {e}", detail={"payload": payload}) from e
    if not isinstance(document, dict):
        raise ShadowDecodeError("payload is not a JSON object", detail={"payload": payload})
    return document


@dataclass
class HealthStatus:
    """
    Tracks the health status of the MQTT shadow session.
    """

    is_connected: bool = False
    last_error: str | None = None
    last_error_time: datetime | None = None
    reconnections: int = 0
    successful_publishes: int = 0
    failed_publishes: int = 0
    dropped_messages: int = 0
    subscriptions: set[str] = field(default_factory=set)
    # subscriptions is written by both the controller and the receive worker
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    @property
    def success_rate(self) -> float:
        """Calculate publish success rate percentage"""
        total_publishes = self.successful_publishes + self.failed_publishes
        if total_publishes == 0:
            return 0.0
        return (self.successful_publishes / total_publishes) * 100

    def mark_connected(self):
        self.is_connected = True

    def mark_disconnected(self):
        """Subscriptions do not survive a dropped session."""
        self.is_connected = False
        with self._lock:
            self.subscriptions.clear()

    def add_subscription(self, topic: str):
        with self._lock:
            self.subscriptions.add(topic)

    def record_error(self, error: Exception | str):
        self.last_error = str(error)
        self.last_error_time = utc_now()

    def to_dict(self):
        """Return health status as a dictionary."""
        with self._lock:
            active_subscriptions = len(self.subscriptions)
        return {
            "is_connected": self.is_connected,
            "last_error": self.last_error,
            "last_error_time": self.last_error_time.isoformat() if self.last_error_time else None,
            "reconnections": self.reconnections,
            "successful_publishes": self.successful_publishes,
            "failed_publishes": self.failed_publishes,
            "dropped_messages": self.dropped_messages,
            "active_subscriptions": active_subscriptions,
            "publish_success_rate": round(self.success_rate, 2),
        }


class ShadowClient:
    """
    MQTT transport for device shadows.

    Events are put on ``events`` in the order paho delivered the underlying
    notifications. The last event a client ever produces is
    :class:`TransportClosed`.
    """

    def __init__(
        self,
        config: IoTClientConfig,
        events: "Queue[ShadowEvent]",
        *,
        settle_delay: float = SHADOW_GET_SETTLE_SECONDS,
    ):
        """
        Connects to the broker and starts the receive worker.

        Args:
            config: Connection parameters.
            events: Queue the receive worker feeds.
            settle_delay: Seconds between the get/accepted subscribe and the
                get publish.

        Raises:
            ConnectError: no session could be established.
        """
        self.config = config
        self.events = events
        self.settle_delay = settle_delay
        self.health_status = HealthStatus()
        self._notifications: "Queue[Notification]" = Queue()
        self._connack = threading.Event()
        self._connack_rc: int | None = None
        self._disconnected = False
        self._closed = False
        self._worker: threading.Thread | None = None

        self.client = create_mqtt_client(client_id=config.client_id)
        self.client.enable_logger(logging.getLogger("paho.mqtt"))
        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect
        self.client.on_message = self._on_message
        self._connect()

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    def _connect(self) -> None:
        endpoint = f"{self.config.host}:{self.config.port}"
        try:
            configure_tls(self.client, self.config)
            self.client.reconnect_delay_set(
                min_delay=self.config.reconnect_delay,
                max_delay=self.config.reconnect_delay,
            )
            self.client.connect(self.config.host, self.config.port, self.config.keep_alive)
        except ConnectError as e:
            self.health_status.record_error(e)
            logger.error("Error connecting to MQTT broker %s: %s", endpoint, e)
            raise
        except (OSError, ssl.SSLError, ValueError) as e:
            self.health_status.record_error(e)
            logger.error("Error connecting to MQTT broker %s: %s", endpoint, e)
            raise ConnectError(f"Unable to connect to {endpoint}: {e}", detail={"endpoint": endpoint}) from e

        self._worker = threading.Thread(target=self._receive_loop, name="shadow-receive", daemon=True)
        self._worker.start()
        self.client.loop_start()

        if not self._connack.wait(self.config.connect_timeout):
            self.close()
            raise ConnectError(
                f"No CONNACK from {endpoint} within {self.config.connect_timeout}s",
                detail={"endpoint": endpoint},
            )
        if self._connack_rc != 0:
            self.close()
            raise ConnectError(
                f"Connection to {endpoint} refused: {mqtt.connack_string(self._connack_rc)}",
                detail={"endpoint": endpoint, "rc": self._connack_rc},
            )
        logger.info("Connected to MQTT broker %s as %s", endpoint, self.config.client_id)

    def close(self) -> None:
        """
        Stops the receive worker and disconnects. Safe to call repeatedly.
        """
        if self._closed:
            return
        self._closed = True
        self._notifications.put(_STOP)
        try:
            self.client.disconnect()
            self.client.loop_stop()
        except (OSError, RuntimeError) as e:
            logger.error("Error disconnecting from MQTT broker: %s", e)
            self.health_status.record_error(e)
        worker = self._worker
        if worker is not None and worker is not threading.current_thread():
            worker.join(timeout=5)
        self.health_status.mark_disconnected()
        logger.info("Disconnected from MQTT broker.")

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # paho callbacks (network thread): enqueue only
    # ------------------------------------------------------------------

    def _on_connect(self, client, userdata, flags, rc) -> None:
        self._connack_rc = rc
        self._connack.set()
        self._notifications.put(Connected(rc))

    def _on_disconnect(self, client, userdata, rc) -> None:
        self._notifications.put(Disconnected(rc))

    def _on_message(self, client, userdata, msg) -> None:
        self._notifications.put(Message(msg.topic, bytes(msg.payload)))

    # ------------------------------------------------------------------
    # Receive worker
    # ------------------------------------------------------------------

    def _receive_loop(self) -> None:
        logger.debug("shadow receive worker started")
        reason = "client closed"
        try:
            while True:
                notification = self._notifications.get()
                if isinstance(notification, _Stop):
                    break
                self.handle_notification(notification)
        except Exception as e:
            reason = f"receive worker crashed: {e}"
            logger.exception("Shadow receive worker crashed")
        finally:
            logger.debug("shadow receive worker stopped (%s)", reason)
            self.events.put(TransportClosed(reason=reason))

    def handle_notification(self, notification: Notification) -> None:
        """Translate one session notification into at most one event."""
        if isinstance(notification, Disconnected):
            if not self._disconnected:
                logger.warning("MQTT session lost (rc=%s); waiting for reconnect", notification.rc)
            self._disconnected = True
            self.health_status.mark_disconnected()
        elif isinstance(notification, Connected):
            if notification.rc != 0:
                logger.warning("MQTT reconnect refused: %s", mqtt.connack_string(notification.rc))
                return
            self.health_status.mark_connected()
            if self._disconnected:
                self._disconnected = False
                self.health_status.reconnections += 1
                logger.info("MQTT session re-established")
                self.events.put(Reconnected())
        elif isinstance(notification, Message):
            self._handle_message(notification.topic, notification.payload)

    def _handle_message(self, topic: str, payload: bytes) -> None:
        if _LOG_MQTT_TRACE:
            logger.debug("MQTT message: topic=%s payload=%r", topic, payload)

        classified = classify_topic(topic)
        if classified is None:
            self.health_status.dropped_messages += 1
            logger.warning("Ignoring message on unrecognised topic %s", topic)
            return
        device_name, action = classified

        try:
            document = decode_payload(payload)
        except ShadowDecodeError as e:
            self.health_status.dropped_messages += 1
            logger.warning("Ignoring undecodable message on %s: %s (payload=%r)", topic, e, payload)
            return

        if action is ShadowAction.GET_ACCEPTED:
            self.events.put(GetResponse(device_name=device_name, document=document))
        elif action is ShadowAction.DELTA:
            self.events.put(DeltaUpdate(device_name=device_name, document=document))

    # ------------------------------------------------------------------
    # Shadow operations (controller thread)
    # ------------------------------------------------------------------

    def request_shadow(self, device_name: str) -> None:
        """
        Subscribes to the get/accepted topic, then publishes an empty get.

        Raises:
            TransportOpError: either step failed.
        """
        self._subscribe(shadow_get_accepted_topic(device_name), device_name)
        time.sleep(self.settle_delay)
        self._publish(shadow_get_topic(device_name), "{}", device_name)

    def subscribe_to_delta(self, device_name: str) -> None:
        """
        Subscribes to the desired-state delta topic.

        Raises:
            TransportOpError: the subscribe failed.
        """
        self._subscribe(shadow_delta_topic(device_name), device_name)

    def report_state(self, device_name: str, state: bool) -> None:
        """
        Publishes ``{"state":{"reported":{"state":"ON"|"OFF"}}}``.

        Raises:
            TransportOpError: the publish failed.
        """
        self._publish(shadow_update_topic(device_name), encode_reported_state(state), device_name)

    def _subscribe(self, topic: str, device_name: str) -> None:
        detail = {"device_name": device_name, "operation": "subscribe", "topic": topic}
        try:
            result, _mid = self.client.subscribe(topic, qos=QOS_AT_MOST_ONCE)
        except (ValueError, OSError) as e:
            self.health_status.record_error(e)
            raise TransportOpError(f"Error subscribing to {topic}: {e}", detail=detail) from e
        if result != mqtt.MQTT_ERR_SUCCESS:
            self.health_status.record_error(mqtt.error_string(result))
            raise TransportOpError(
                f"Failed to subscribe to {topic}: {mqtt.error_string(result)}",
                detail={**detail, "rc": result},
            )
        self.health_status.add_subscription(topic)
        logger.debug("Subscribed to topic %s", topic)

    def _publish(self, topic: str, payload: str, device_name: str) -> None:
        detail = {"device_name": device_name, "operation": "publish", "topic": topic, "payload": payload}
        try:
            msg_info = self.client.publish(topic, payload, qos=QOS_AT_MOST_ONCE, retain=False)
        except (ValueError, OSError) as e:
            self.health_status.failed_publishes += 1
            self.health_status.record_error(e)
            raise TransportOpError(f"Error publishing to {topic}: {e}", detail=detail) from e
        if msg_info.rc != mqtt.MQTT_ERR_SUCCESS:
            self.health_status.failed_publishes += 1
            self.health_status.record_error(mqtt.error_string(msg_info.rc))
            raise TransportOpError(
                f"Failed to publish to {topic}: {mqtt.error_string(msg_info.rc)}",
                detail={**detail, "rc": msg_info.rc},
            )
        self.health_status.successful_publishes += 1
        logger.debug("Published to %s: %s", topic, payload)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()
