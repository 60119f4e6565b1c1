"""
Simulated GPIO outputs for running the controller away from a Raspberry Pi.

Every level change is logged and recorded so the behaviour of a zone can be
followed from the logs alone.
"""

from __future__ import annotations

import logging

from shadowsync.enums import OutputLevel

logger = logging.getLogger(__name__)


class SimulatedOutput:
    """In-memory output line."""

    def __init__(self, pin: int):
        self.pin = pin
        self.level: OutputLevel | None = None
        self.history: list[OutputLevel] = []
        self.released = False

    def set(self, level: OutputLevel) -> None:
        self.level = level
        self.history.append(level)
        logger.info("[simulated] GPIO pin %s -> %s", self.pin, level.value)

    def release(self) -> None:
        self.released = True


class SimulatedOutputProvider:
    """Hands out SimulatedOutput lines; remembers them by pin."""

    def __init__(self):
        self.outputs: dict[int, SimulatedOutput] = {}

    def acquire_output(self, pin: int) -> SimulatedOutput:
        output = self.outputs.get(pin)
        if output is None:
            output = SimulatedOutput(pin)
            self.outputs[pin] = output
            logger.info("[simulated] GPIO pin %s set as OUTPUT", pin)
        return output
