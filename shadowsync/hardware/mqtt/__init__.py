"""
MQTT shadow transport
"""

from .client_factory import configure_tls, create_mqtt_client
from .shadow_client import HealthStatus, ShadowClient
from .topics import classify_topic, decode_topic_name

__all__ = [
    "create_mqtt_client",
    "configure_tls",
    "ShadowClient",
    "HealthStatus",
    "classify_topic",
    "decode_topic_name",
]
