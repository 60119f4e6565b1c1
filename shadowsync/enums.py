from enum import Enum


class ZoneState(str, Enum):
    """Wire values of the shadow ``state`` field."""

    ON = "ON"
    OFF = "OFF"

    @classmethod
    def from_bool(cls, state: bool) -> "ZoneState":
        return cls.ON if state else cls.OFF

    @classmethod
    def parse(cls, value: str) -> bool:
        """Anything other than ``"ON"`` switches the zone off."""
        return value == cls.ON.value


class ShadowAction(str, Enum):
    """Inbound shadow topics the transport turns into events."""

    GET_ACCEPTED = "get/accepted"
    DELTA = "update/delta"


class OutputLevel(str, Enum):
    """Electrical level of a GPIO output line."""

    HIGH = "high"
    LOW = "low"

    @classmethod
    def for_state(cls, state: bool) -> "OutputLevel":
        return cls.HIGH if state else cls.LOW
