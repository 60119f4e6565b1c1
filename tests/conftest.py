"""
Shared test fixtures for the shadowsync test suite.

Provides:
- Fake GPIO outputs / provider that record every write
- A fake paho client (no network) and a ShadowClient wired to it
- A fake shadow transport for controller tests
- Helpers for draining the event queue

Usage:
    def test_example(shadow_client, fake_mqtt):
        shadow_client.subscribe_to_delta("pump-01")
        assert fake_mqtt.subscriptions == ["things/pump-01/shadow/update/delta"]
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from queue import Empty, Queue
from types import SimpleNamespace
from unittest.mock import patch

import pytest

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from shadowsync.domain.exceptions import HardwareError, TransportOpError
from shadowsync.domain.zone import Zone
from shadowsync.hardware.mqtt.shadow_client import ShadowClient
from shadowsync.schemas.events import TransportClosed
from shadowsync.schemas.settings import IoTClientConfig, ZoneConfig

# ---------------------------------------------------------------------------
# Logging: keep test output clean
# ---------------------------------------------------------------------------
logging.getLogger("shadowsync").setLevel(logging.DEBUG)


# ========================== GPIO Fakes =====================================


class FakeOutput:
    def __init__(self, pin: int, writes: list, fail: bool = False):
        self.pin = pin
        self.writes = writes
        self.fail = fail
        self.released = False

    def set(self, level):
        if self.fail:
            raise HardwareError(f"pin {self.pin} write failed", detail={"pin": self.pin})
        self.writes.append((self.pin, level))

    def release(self):
        self.released = True


class FakeOutputProvider:
    """Records every write as (pin, level) in ``writes``, across all pins."""

    def __init__(self, unavailable_pins=(), failing_pins=()):
        self.unavailable_pins = set(unavailable_pins)
        self.failing_pins = set(failing_pins)
        self.writes: list = []
        self.outputs: dict[int, FakeOutput] = {}

    def acquire_output(self, pin: int) -> FakeOutput:
        if pin in self.unavailable_pins:
            raise HardwareError(f"pin {pin} unavailable", detail={"pin": pin})
        output = FakeOutput(pin, self.writes, fail=pin in self.failing_pins)
        self.outputs[pin] = output
        return output


@pytest.fixture
def output_provider():
    return FakeOutputProvider()


@pytest.fixture
def make_zone(output_provider):
    def _make(name="pump", device_name="pump-01", pins=(5,), delay_millis=0, provider=None):
        config = ZoneConfig(name=name, device_name=device_name, pins=list(pins), delay_millis=delay_millis)
        return Zone.from_config(config, provider or output_provider)

    return _make


# ========================== MQTT Fakes =====================================


class FakeMQTTClient:
    """Stands in for paho.mqtt.client.Client; records calls in order."""

    def __init__(self, connack_rc: int = 0, auto_connack: bool = True):
        self.on_connect = None
        self.on_disconnect = None
        self.on_message = None
        self.connack_rc = connack_rc
        self.auto_connack = auto_connack
        self.calls: list[tuple] = []
        self.subscribe_rc = 0
        self.publish_rc = 0
        self.connect_error: Exception | None = None
        self.tls_args: dict | None = None
        self.reconnect_delay: tuple | None = None

    def enable_logger(self, logger=None):
        return None

    def tls_set(self, **kwargs):
        self.tls_args = kwargs

    def reconnect_delay_set(self, min_delay=1, max_delay=120):
        self.reconnect_delay = (min_delay, max_delay)

    def connect(self, host, port=1883, keepalive=60):
        if self.connect_error is not None:
            raise self.connect_error
        self.calls.append(("connect", host, port, keepalive))
        return 0

    def loop_start(self):
        if self.auto_connack:
            self.on_connect(self, None, {}, self.connack_rc)

    def loop_stop(self):
        return 0

    def disconnect(self):
        self.calls.append(("disconnect",))
        return 0

    def subscribe(self, topic, qos=0):
        self.calls.append(("subscribe", topic, qos))
        return (self.subscribe_rc, len(self.calls))

    def publish(self, topic, payload=None, qos=0, retain=False):
        self.calls.append(("publish", topic, payload, qos, retain))
        return SimpleNamespace(rc=self.publish_rc, mid=len(self.calls))

    @property
    def subscriptions(self):
        return [c[1] for c in self.calls if c[0] == "subscribe"]

    @property
    def publishes(self):
        return [(c[1], c[2]) for c in self.calls if c[0] == "publish"]

    def shadow_calls(self):
        return [c[:3] if c[0] == "publish" else c[:2] for c in self.calls if c[0] in {"subscribe", "publish"}]


class DummyMessage:
    def __init__(self, topic: str, payload: bytes):
        self.topic = topic
        self.payload = payload


@pytest.fixture
def tls_files(tmp_path):
    paths = {}
    for name in ("root_ca_path", "certificate_path", "private_key_path"):
        path = tmp_path / f"{name}.pem"
        path.write_text("-----BEGIN TEST-----\n")
        paths[name] = str(path)
    return paths


@pytest.fixture
def iot_config(tls_files):
    return IoTClientConfig(
        client_id="test-controller",
        host="broker.test",
        port=8883,
        connect_timeout=0.2,
        **tls_files,
    )


@pytest.fixture
def fake_mqtt():
    return FakeMQTTClient()


@pytest.fixture
def events():
    return Queue()


@pytest.fixture
def build_client(iot_config, events):
    clients = []

    def _build(mqtt_client, config=None, queue=None):
        with patch("shadowsync.hardware.mqtt.shadow_client.create_mqtt_client", return_value=mqtt_client):
            client = ShadowClient(config or iot_config, queue if queue is not None else events, settle_delay=0)
        clients.append(client)
        return client

    yield _build
    for client in clients:
        client.close()


@pytest.fixture
def shadow_client(build_client, fake_mqtt):
    return build_client(fake_mqtt)


def drain(queue: Queue, timeout: float = 2.0) -> list:
    """Collect events up to and including TransportClosed."""
    collected = []
    while True:
        try:
            event = queue.get(timeout=timeout)
        except Empty:
            raise AssertionError(f"no TransportClosed after {collected!r}") from None
        collected.append(event)
        if isinstance(event, TransportClosed):
            return collected


# ========================== Controller Fakes ===============================


class FakeShadowTransport:
    """Records shadow operations; can fail per (operation, device_name)."""

    def __init__(self):
        self.calls: list[tuple] = []
        self.failures: set[tuple] = set()

    def _record(self, operation, device_name, *args):
        self.calls.append((operation, device_name, *args))
        if (operation, device_name) in self.failures:
            raise TransportOpError(f"{operation} failed for {device_name}")

    def request_shadow(self, device_name):
        self._record("request_shadow", device_name)

    def subscribe_to_delta(self, device_name):
        self._record("subscribe_to_delta", device_name)

    def report_state(self, device_name, state):
        self._record("report_state", device_name, state)

    @property
    def reports(self):
        return [c[1:] for c in self.calls if c[0] == "report_state"]


@pytest.fixture
def transport():
    return FakeShadowTransport()
