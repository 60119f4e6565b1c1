"""Process entry point for the shadowsync controller.

Zones are built once from the settings file. The MQTT client and the
controller around it are rebuilt after a cooldown whenever the session can't
be established or the client's receive worker ends.
"""
from __future__ import annotations

import argparse
import logging
import time
from queue import Queue
from typing import Callable

from shadowsync.config import AppConfig, load_config, load_settings, setup_logging
from shadowsync.domain.exceptions import ConfigurationError, ConnectError, TransportClosedError
from shadowsync.domain.zone import Zone
from shadowsync.hardware.gpio import OutputProvider, RPiGPIOProvider, SimulatedOutputProvider
from shadowsync.hardware.mqtt.shadow_client import ShadowClient
from shadowsync.schemas.settings import IoTClientConfig, Settings
from shadowsync.services.shadow_controller import ShadowController

logger = logging.getLogger(__name__)

ClientFactory = Callable[..., ShadowClient]


def build_zones(settings: Settings, provider: OutputProvider) -> dict[str, Zone]:
    """Zones keyed by device name, in settings order."""
    zones: dict[str, Zone] = {}
    for zone_config in settings.zones:
        zones[zone_config.device_name] = Zone.from_config(zone_config, provider)
    return zones


def close_zones(zones: dict[str, Zone]) -> None:
    for zone in zones.values():
        zone.close()


def run_forever(
    config: AppConfig,
    iot_config: IoTClientConfig,
    zones: dict[str, Zone],
    *,
    client_factory: ClientFactory = ShadowClient,
    sleep: Callable[[float], None] = time.sleep,
    max_restarts: int | None = None,
) -> None:
    """
    Run client + controller, rebuilding both after a fatal transport error.

    Args:
        max_restarts: Stop after this many rebuilds (None: never).
    """
    restarts = 0
    while True:
        # A fresh queue per client so a stale TransportClosed can't stop the next controller.
        events: Queue = Queue()
        client = None
        controller = None
        try:
            client = client_factory(iot_config, events, settle_delay=config.settle_delay_seconds)
            controller = ShadowController(zones, client, events)
            controller.run()
        except ConnectError as e:
            logger.error("Unable to initialise IoT client: %s", e)
        except TransportClosedError as e:
            logger.error("%s; rebuilding IoT client", e)
        finally:
            if controller is not None:
                logger.info("Zone states: %s", controller.zone_states())
            if client is not None:
                logger.info("MQTT health: %s", client.health_status.to_dict())
                client.close()

        restarts += 1
        if max_restarts is not None and restarts > max_restarts:
            return
        logger.info("Restarting IoT client in %ss", config.restart_cooldown_seconds)
        sleep(config.restart_cooldown_seconds)


def main(argv: list[str] | None = None) -> int:
    """Run the shadow controller until interrupted."""
    parser = argparse.ArgumentParser(prog="shadowsync")
    parser.add_argument("--settings", help="Path to the YAML settings file (default: $SHADOWSYNC_SETTINGS)")
    parser.add_argument("--simulate-gpio", action="store_true", help="Log pin changes instead of driving GPIO")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    config = load_config()
    if args.settings:
        config.settings_path = args.settings
    if args.simulate_gpio:
        config.simulate_gpio = True
    if args.debug:
        config.DEBUG = True
    setup_logging(debug=config.DEBUG, level=config.log_level, log_file=config.log_file)

    try:
        settings = load_settings(config.settings_path)
    except ConfigurationError as e:
        logger.error("Unable to load settings: %s", e)
        return 2

    provider: OutputProvider = SimulatedOutputProvider() if config.simulate_gpio else RPiGPIOProvider()
    zones = build_zones(settings, provider)
    logger.info("Configured zones: %s", [zone.to_dict() for zone in zones.values()])

    try:
        run_forever(config, settings.iot_client, zones)
    except KeyboardInterrupt:
        logger.info("Stopped by user.")
    finally:
        close_zones(zones)
    return 0


if __name__ == "__main__":
    import sys

    raise SystemExit(main(sys.argv[1:]))
