"""
Helpers for constructing MQTT clients that work across paho-mqtt 1.x and 2.x.

The 2.x releases add a callback API version flag; we prefer the legacy
v3.1.1 callback signature for the shadow client's handlers while remaining
compatible with older installations that do not expose the enum.
"""
from __future__ import annotations

import ssl
from pathlib import Path
from typing import Any, Dict

import paho.mqtt.client as mqtt

from shadowsync.domain.exceptions import ConnectError
from shadowsync.schemas.settings import IoTClientConfig


def create_mqtt_client(client_id: str = "", **kwargs: Any) -> mqtt.Client:
    """
    Build an MQTT client that is forward-compatible with paho-mqtt 2.x and
    gracefully degrades when running with 1.x.

    Args:
        client_id: Optional client identifier.
        kwargs: Extra keyword arguments forwarded to the client constructor.
    """
    client_kwargs: Dict[str, Any] = {"client_id": client_id or ""}

    # AWS IoT device shadows speak MQTT v3.1.1.
    client_kwargs["protocol"] = kwargs.pop("protocol", getattr(mqtt, "MQTTv311", 4))
    client_kwargs.update(kwargs)

    callback_api_version = getattr(mqtt, "CallbackAPIVersion", None)
    if callback_api_version:
        api_candidates = ("VERSION1", "V1")
        callback_value = next(
            (getattr(callback_api_version, attr) for attr in api_candidates if hasattr(callback_api_version, attr)),
            None,
        )
        if callback_value is not None:
            client_kwargs["callback_api_version"] = callback_value

    try:
        return mqtt.Client(**client_kwargs)
    except TypeError:
        # Older paho versions do not support callback_api_version; retry with basics.
        client_kwargs.pop("callback_api_version", None)
        return mqtt.Client(**client_kwargs)


def configure_tls(client: mqtt.Client, config: IoTClientConfig) -> None:
    """
    Enable mutually authenticated TLS from the configured PEM files.

    Raises:
        ConnectError: a file is missing or the TLS context can't be built.
    """
    paths = {
        "root_ca_path": config.root_ca_path,
        "certificate_path": config.certificate_path,
        "private_key_path": config.private_key_path,
    }
    for name, path in paths.items():
        if not Path(path).is_file():
            raise ConnectError(f"{name} not found: {path}", detail={name: path})

    try:
        client.tls_set(
            ca_certs=config.root_ca_path,
            certfile=config.certificate_path,
            keyfile=config.private_key_path,
            cert_reqs=ssl.CERT_REQUIRED,
        )
    except (ssl.SSLError, OSError, ValueError) as e:
        raise ConnectError(f"Unable to configure TLS: {e}", detail=paths) from e
