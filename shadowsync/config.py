"""
Configuration for shadowsync
============================
Process runtime settings come from environment variables (``AppConfig``);
connection parameters and zones come from the YAML settings document
(``load_settings``). Sets up the logging configuration as well.
"""

import logging
import os
import sys
from contextlib import suppress
from dataclasses import dataclass, field
from logging.handlers import RotatingFileHandler
from pathlib import Path

import yaml
from pydantic import ValidationError

from shadowsync.domain.exceptions import ConfigurationError
from shadowsync.schemas.settings import Settings

logger = logging.getLogger(__name__)


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "t", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer.") from None


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be a number.") from None


@dataclass
class AppConfig:
    """Runtime configuration loaded from environment variables."""

    settings_path: str = field(default_factory=lambda: os.getenv("SHADOWSYNC_SETTINGS", "Settings.yaml"))

    DEBUG: bool = field(default_factory=lambda: _env_bool("SHADOWSYNC_DEBUG", False))
    log_level: str = field(default_factory=lambda: os.getenv("SHADOWSYNC_LOG_LEVEL", "INFO"))
    # Empty string disables the rotating log file.
    log_file: str = field(default_factory=lambda: os.getenv("SHADOWSYNC_LOG_FILE", "logs/shadowsync.log"))

    # Pause before rebuilding the MQTT client after a fatal transport error.
    restart_cooldown_seconds: float = field(default_factory=lambda: _env_float("SHADOWSYNC_RESTART_COOLDOWN", 5.0))
    simulate_gpio: bool = field(default_factory=lambda: _env_bool("SHADOWSYNC_SIMULATE_GPIO", False))
    settle_delay_ms: int = field(default_factory=lambda: _env_int("SHADOWSYNC_SETTLE_DELAY_MS", 250))

    @property
    def settle_delay_seconds(self) -> float:
        return self.settle_delay_ms / 1000.0


def load_config() -> AppConfig:
    """Helper for callers to load and validate runtime configuration."""
    config = AppConfig()
    if config.restart_cooldown_seconds < 0:
        raise ValueError("SHADOWSYNC_RESTART_COOLDOWN must not be negative.")
    if config.settle_delay_ms < 0:
        raise ValueError("SHADOWSYNC_SETTLE_DELAY_MS must not be negative.")
    return config


def load_settings(path: str | os.PathLike) -> Settings:
    """
    Read and validate the YAML settings document.

    Raises:
        ConfigurationError: the file can't be read, isn't valid YAML, or
            doesn't match the settings schema.
    """
    settings_path = Path(path)
    detail = {"path": str(settings_path)}
    try:
        raw = yaml.safe_load(settings_path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigurationError(f"Unable to read settings {settings_path}: {e}", detail=detail) from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {settings_path}: {e}", detail=detail) from e

    if not isinstance(raw, dict):
        raise ConfigurationError(f"Settings {settings_path} must be a mapping", detail=detail)

    try:
        settings = Settings.model_validate(raw)
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid settings {settings_path}: {e}",
            detail={**detail, "errors": e.errors(include_url=False)},
        ) from e

    logger.debug("settings: %s", settings)
    return settings


def setup_logging(debug: bool = False, level: str = "INFO", log_file: str | None = None) -> None:
    """Setup logging configuration."""
    log_level = logging.DEBUG if debug else logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    root = logging.getLogger()
    root.setLevel(log_level)

    # Avoid adding duplicates when main() is re-entered (tests, restarts)
    has_console = any(getattr(h, "name", "") == "shadowsync_console" for h in root.handlers)
    has_file = any(getattr(h, "name", "") == "shadowsync_file" for h in root.handlers)
    added_handler = False

    stream = sys.stdout
    with suppress(AttributeError, ValueError):
        stream.reconfigure(encoding="utf-8", errors="replace")
    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    if not has_console:
        console_handler = logging.StreamHandler(stream=stream)
        console_handler.name = "shadowsync_console"
        console_handler.setFormatter(formatter)
        root.addHandler(console_handler)
        added_handler = True

    if log_file and not has_file:
        os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.name = "shadowsync_file"
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
        added_handler = True

    for handler in root.handlers:
        if getattr(handler, "name", "") in {"shadowsync_console", "shadowsync_file"}:
            handler.setLevel(log_level)

    if added_handler:
        root.info("Logging initialized at level: %s", logging.getLevelName(log_level))

    # paho logs every keep-alive ping at DEBUG
    logging.getLogger("paho").setLevel(logging.WARNING)
