# Description: GPIO output lines for Raspberry Pi.
#
import logging
import threading
from typing import Protocol

from shadowsync.domain.exceptions import HardwareError
from shadowsync.enums import OutputLevel

logger = logging.getLogger(__name__)


class OutputHandle(Protocol):
    """Protocol for an acquired, write-mode output line"""

    pin: int

    def set(self, level: OutputLevel) -> None:
        """Drive the line to ``level``; raises HardwareError on failure."""
        ...

    def release(self) -> None:
        """Release the line. Never raises."""
        ...


class OutputProvider(Protocol):
    """Protocol for whatever hands out output lines (real GPIO or simulated)"""

    def acquire_output(self, pin: int) -> OutputHandle:
        """Acquire ``pin`` in write mode; raises HardwareError on failure."""
        ...


class GPIOOutput:
    """
    A single Raspberry Pi GPIO pin configured as an output.

    Attributes:
        pin (int): The BCM pin number.

    Methods:
        set(level): Drives the pin HIGH or LOW.
        release(): Releases the GPIO pin resources.
    """

    def __init__(self, gpio, pin: int):
        """
        Args:
            gpio: The imported ``RPi.GPIO`` module.
            pin (int): The BCM pin number, already set up as OUTPUT.
        """
        self._gpio = gpio
        self.pin = pin
        self._released = False

    def set(self, level: OutputLevel) -> None:
        """Drives the pin to the requested level."""
        value = self._gpio.HIGH if level is OutputLevel.HIGH else self._gpio.LOW
        try:
            self._gpio.output(self.pin, value)
        except (RuntimeError, ValueError, OSError) as e:
            raise HardwareError(
                f"Error setting GPIO pin {self.pin} {level.value}: {e}",
                detail={"pin": self.pin, "level": level.value},
            ) from e
        logger.debug("GPIO pin %s set %s", self.pin, level.value)

    def release(self) -> None:
        """Releases the GPIO pin resources."""
        if self._released:
            return
        self._released = True
        try:
            self._gpio.cleanup(self.pin)
            logger.info("Cleaned up GPIO pin %s", self.pin)
        except (RuntimeError, ValueError, OSError) as e:
            logger.error("Error cleaning up GPIO pin %s: %s", self.pin, e)

    def __repr__(self) -> str:
        return f"GPIOOutput(pin={self.pin})"


class RPiGPIOProvider:
    """
    Hands out GPIOOutput lines backed by ``RPi.GPIO`` in BCM numbering.

    The library is imported on first use so the rest of the package can be
    loaded off the Pi.
    """

    def __init__(self):
        self._gpio = None
        self._lock = threading.Lock()

    def _setup_gpio(self):
        """Imports and sets up GPIO only if running on Raspberry Pi."""
        with self._lock:
            if self._gpio is None:
                try:
                    import RPi.GPIO as GPIO  # type: ignore
                except (ImportError, RuntimeError) as e:
                    raise HardwareError(f"GPIO not available: {e}") from e
                try:
                    GPIO.setmode(GPIO.BCM)
                    GPIO.setwarnings(False)
                except (RuntimeError, ValueError) as e:
                    raise HardwareError(f"Can't select BCM pin numbering: {e}") from e
                self._gpio = GPIO
            return self._gpio

    def acquire_output(self, pin: int) -> GPIOOutput:
        gpio = self._setup_gpio()
        try:
            gpio.setup(pin, gpio.OUT)
        except (RuntimeError, ValueError, OSError) as e:
            raise HardwareError(f"Can't initialise GPIO pin {pin}: {e}", detail={"pin": pin}) from e
        logger.info("GPIO pin %s set as OUTPUT", pin)
        return GPIOOutput(gpio, pin)
