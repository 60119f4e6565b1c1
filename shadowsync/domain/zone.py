"""
Zone Domain Entity

A zone is a named group of output lines (valves, relays) switched together
as one unit and bound to a single shadow thing name.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

from shadowsync.domain.exceptions import HardwareError
from shadowsync.enums import OutputLevel, ZoneState
from shadowsync.hardware.gpio.output import OutputHandle, OutputProvider
from shadowsync.schemas.settings import ZoneConfig

logger = logging.getLogger(__name__)


@dataclass
class Zone:
    """
    Zone entity owned by the controller thread.

    ``state`` is the last value this process applied, not a hardware
    read-back. It starts OFF because the power-on level of the lines is
    unknown until first set.
    """

    device_name: str
    name: str
    outputs: list[OutputHandle] = field(default_factory=list)
    delay: float = 0.0
    state: bool = False

    @classmethod
    def from_config(cls, config: ZoneConfig, provider: OutputProvider) -> "Zone":
        """
        Acquire every configured pin in order.

        A pin that cannot be acquired is logged and left out; the zone keeps
        operating the remaining lines.
        """
        outputs: list[OutputHandle] = []
        for pin in config.pins:
            try:
                outputs.append(provider.acquire_output(pin))
            except HardwareError as e:
                logger.error("Can't initialise GPIO pin %s for zone %s: %s", pin, config.name, e)
        if not outputs:
            logger.warning("Zone %s (%s) has no working output lines", config.name, config.device_name)
        return cls(
            device_name=config.device_name,
            name=config.name,
            outputs=outputs,
            delay=config.delay_millis / 1000.0,
        )

    @property
    def pins(self) -> list[int]:
        return [output.pin for output in self.outputs]

    def set_state(self, desired: bool) -> bool:
        """
        Apply ``desired`` to every line in configured order.

        Returns:
            True if the lines were switched, False if ``desired`` already
            matched the cached state (no hardware I/O).

        Raises:
            HardwareError: a line write failed. Lines after it are left
            untouched and the cached state is unchanged.
        """
        if desired == self.state:
            logger.debug("Zone %s already %s", self.name, ZoneState.from_bool(desired).value)
            return False

        level = OutputLevel.for_state(desired)
        logger.info("Zone %s (%s) -> %s", self.name, self.device_name, ZoneState.from_bool(desired).value)
        for index, output in enumerate(self.outputs):
            if index and self.delay:
                time.sleep(self.delay)
            try:
                output.set(level)
            except HardwareError as e:
                e.detail.setdefault("zone", self.name)
                e.detail.setdefault("device_name", self.device_name)
                raise

        self.state = desired
        return True

    def close(self) -> None:
        """Release every output line."""
        for output in self.outputs:
            output.release()
        logger.info("Zone %s released %s output line(s)", self.name, len(self.outputs))

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "device_name": self.device_name,
            "pins": self.pins,
            "delay_seconds": self.delay,
            "state": ZoneState.from_bool(self.state).value,
        }
