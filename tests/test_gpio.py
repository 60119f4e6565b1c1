"""
Unit Tests for GPIO outputs
===========================
RPiGPIOProvider against a stand-in ``RPi.GPIO`` module, plus the simulated provider.
"""

import sys
import types
from unittest.mock import Mock

import pytest

from shadowsync.domain.exceptions import HardwareError
from shadowsync.domain.zone import Zone
from shadowsync.enums import OutputLevel
from shadowsync.hardware.gpio import RPiGPIOProvider, SimulatedOutputProvider
from shadowsync.schemas.settings import ZoneConfig


@pytest.fixture
def fake_gpio(monkeypatch):
    gpio = Mock()
    gpio.BCM = "BCM"
    gpio.OUT = "OUT"
    gpio.HIGH = 1
    gpio.LOW = 0
    package = types.ModuleType("RPi")
    package.GPIO = gpio
    monkeypatch.setitem(sys.modules, "RPi", package)
    monkeypatch.setitem(sys.modules, "RPi.GPIO", gpio)
    return gpio


class TestRPiGPIOProvider:
    def test_sets_up_bcm_once_and_pins_as_output(self, fake_gpio):
        provider = RPiGPIOProvider()

        provider.acquire_output(17)
        provider.acquire_output(27)

        fake_gpio.setmode.assert_called_once_with("BCM")
        fake_gpio.setwarnings.assert_called_once_with(False)
        assert [c.args for c in fake_gpio.setup.call_args_list] == [(17, "OUT"), (27, "OUT")]

    def test_set_drives_level(self, fake_gpio):
        output = RPiGPIOProvider().acquire_output(17)

        output.set(OutputLevel.HIGH)
        output.set(OutputLevel.LOW)

        assert [c.args for c in fake_gpio.output.call_args_list] == [(17, 1), (17, 0)]

    def test_write_failure_is_hardware_error(self, fake_gpio):
        fake_gpio.output.side_effect = RuntimeError("not set up")
        output = RPiGPIOProvider().acquire_output(17)

        with pytest.raises(HardwareError) as exc_info:
            output.set(OutputLevel.HIGH)
        assert exc_info.value.detail == {"pin": 17, "level": "high"}

    def test_setup_failure_is_hardware_error(self, fake_gpio):
        fake_gpio.setup.side_effect = ValueError("bad pin")
        with pytest.raises(HardwareError):
            RPiGPIOProvider().acquire_output(99)

    def test_release_cleans_up_once(self, fake_gpio):
        output = RPiGPIOProvider().acquire_output(17)
        output.release()
        output.release()
        fake_gpio.cleanup.assert_called_once_with(17)

    def test_missing_library_is_hardware_error(self, monkeypatch):
        # A None entry makes the import raise ImportError.
        monkeypatch.setitem(sys.modules, "RPi", None)
        monkeypatch.setitem(sys.modules, "RPi.GPIO", None)
        with pytest.raises(HardwareError, match="GPIO not available"):
            RPiGPIOProvider().acquire_output(17)

    def test_conflicting_pin_numbering_is_hardware_error(self, fake_gpio):
        fake_gpio.setmode.side_effect = ValueError("A different mode has already been set!")
        with pytest.raises(HardwareError, match="BCM pin numbering"):
            RPiGPIOProvider().acquire_output(17)
        fake_gpio.setup.assert_not_called()

    def test_zone_leaves_out_lines_when_numbering_conflicts(self, fake_gpio):
        fake_gpio.setmode.side_effect = ValueError("A different mode has already been set!")

        zone = Zone.from_config(ZoneConfig(name="pump", device_name="pump-01", pins=[4]), RPiGPIOProvider())

        assert zone.outputs == []
        assert zone.state is False


def test_simulated_provider_records_levels():
    provider = SimulatedOutputProvider()
    output = provider.acquire_output(4)

    output.set(OutputLevel.HIGH)
    output.set(OutputLevel.LOW)
    output.release()

    assert provider.acquire_output(4) is output
    assert output.history == [OutputLevel.HIGH, OutputLevel.LOW]
    assert output.level is OutputLevel.LOW
    assert output.released
