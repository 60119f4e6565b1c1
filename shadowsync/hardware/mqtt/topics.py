"""
Device shadow topic convention.

| Purpose                 | Topic                              | Direction |
|-------------------------|------------------------------------|-----------|
| request current shadow  | things/{id}/shadow/get             | publish   |
| accepted get response   | things/{id}/shadow/get/accepted    | subscribe |
| desired-state delta     | things/{id}/shadow/update/delta    | subscribe |
| report new state        | things/{id}/shadow/update          | publish   |
"""

from __future__ import annotations

import re

from shadowsync.enums import ShadowAction

_TOPIC_RE = re.compile(r"^things/([^/]+)/shadow/([^/]+)/(accepted|delta)$")


def shadow_get_topic(device_name: str) -> str:
    return f"things/{device_name}/shadow/get"


def shadow_get_accepted_topic(device_name: str) -> str:
    return f"things/{device_name}/shadow/get/accepted"


def shadow_delta_topic(device_name: str) -> str:
    return f"things/{device_name}/shadow/update/delta"


def shadow_update_topic(device_name: str) -> str:
    return f"things/{device_name}/shadow/update"


def decode_topic_name(topic: str) -> tuple[str, str] | None:
    """
    Split ``things/<id>/shadow/<action>/<accepted|delta>`` into
    ``(id, action)``. Returns None for anything else.
    """
    match = _TOPIC_RE.match(topic)
    if match is None:
        return None
    return match.group(1), match.group(2)


def classify_topic(topic: str) -> tuple[str, ShadowAction] | None:
    """Resolve an inbound topic to the device name and the event it carries."""
    decoded = decode_topic_name(topic)
    if decoded is None:
        return None
    device_name, action = decoded
    suffix = topic.rsplit("/", 1)[-1]
    try:
        return device_name, ShadowAction(f"{action}/{suffix}")
    except ValueError:
        return None
