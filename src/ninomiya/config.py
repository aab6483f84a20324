"""
Centralized configuration for ninomiya.

Configuration sources (priority order):
1. Environment variables (NINOMIYA_*)
2. Config file ($XDG_CONFIG_HOME/ninomiya/config.toml)
3. Default values

Environment variables:
- NINOMIYA_DEFAULT_TIMEOUT: Seconds before a notification with the default timeout expires (default: 3)
- NINOMIYA_LOG: Log level, one of error|warn|info|debug|trace (default: warn)
- NINOMIYA_REPLACE: Take the bus name over from a running daemon (default: false)
- NINOMIYA_SHUTDOWN_TIMEOUT: Seconds to wait for notifications to close on shutdown (default: 5)
- NINOMIYA_CONFIG: Explicit config file path

Config file keys:
- duration: Same as NINOMIYA_DEFAULT_TIMEOUT
- log_level: Same as NINOMIYA_LOG
- replace: Same as NINOMIYA_REPLACE
"""

import os
import tomllib
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import structlog

from .errors import ConfigError

__all__ = [
    "BUS_NAME",
    "INTERFACE_NAME",
    "NinomiyaConfig",
    "OBJECT_PATH",
    "TESTING_BUS_NAME",
    "default_config_path",
]

logger = structlog.get_logger(__name__)

BUS_NAME = "org.freedesktop.Notifications"
TESTING_BUS_NAME = "org.freedesktop.NotificationsNinomiyaTesting"
OBJECT_PATH = "/org/freedesktop/Notifications"
INTERFACE_NAME = "org.freedesktop.Notifications"

DEFAULT_TIMEOUT = 3.0

# File key -> (field name, accepted types)
_FILE_KEYS: dict[str, tuple[str, tuple[type, ...]]] = {
    "duration": ("default_timeout", (int, float)),
    "log_level": ("log_level", (str,)),
    "replace": ("replace_existing", (bool,)),
}


def _get_env(key: str) -> str | None:
    """Get environment variable with NINOMIYA_ prefix."""
    return os.environ.get(f"NINOMIYA_{key}")


def _get_env_float(key: str) -> float | None:
    val = _get_env(key)
    if val is None:
        return None
    try:
        return float(val)
    except ValueError:
        raise ConfigError(f"NINOMIYA_{key} must be a number (got {val!r})") from None


def _get_env_bool(key: str) -> bool | None:
    val = _get_env(key)
    if val is None:
        return None
    return val.lower() in ("true", "1", "yes", "on")


def default_config_path() -> Path:
    """The config file location, honouring XDG_CONFIG_HOME."""
    explicit = _get_env("CONFIG")
    if explicit:
        return Path(explicit)
    base = os.environ.get("XDG_CONFIG_HOME")
    config_home = Path(base) if base else Path.home() / ".config"
    return config_home / "ninomiya" / "config.toml"


@dataclass(frozen=True)
class NinomiyaConfig:
    """Immutable daemon configuration."""

    default_timeout: float = DEFAULT_TIMEOUT
    log_level: str = "warn"
    bus_name: str = BUS_NAME
    testing_bus_name: str = TESTING_BUS_NAME
    replace_existing: bool = False
    shutdown_timeout: float = 5.0
    interactive: bool = False

    def bus_name_for(self, testing: bool) -> str:
        """Well-known name to own or address."""
        return self.testing_bus_name if testing else self.bus_name

    def with_overrides(self, **changes: Any) -> "NinomiyaConfig":
        """Copy with the non-None values applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    @classmethod
    def from_file(cls, path: Path | str) -> "NinomiyaConfig":
        """Load configuration from a TOML file.

        Raises:
            ConfigError: If the file is unreadable, does not parse,
                or holds unknown keys or wrongly typed values
        """
        path = Path(path)
        try:
            with path.open("rb") as f:
                data = tomllib.load(f)
        except OSError as e:
            raise ConfigError(f"Cannot read {path}: {e}") from e
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Cannot parse {path}: {e}") from e

        values: dict[str, Any] = {}
        for key, value in data.items():
            if key not in _FILE_KEYS:
                raise ConfigError(f"Unknown key '{key}' in {path}")
            field_name, types = _FILE_KEYS[key]
            # bool is an int subclass; only accept it where bool is expected
            if not isinstance(value, types) or (isinstance(value, bool) and bool not in types):
                raise ConfigError(f"Key '{key}' in {path} has the wrong type")
            values[field_name] = float(value) if field_name == "default_timeout" else value

        config = cls(**values)
        config.validate()
        return config

    @classmethod
    def load(cls, path: Path | str | None = None, strict: bool = True) -> "NinomiyaConfig":
        """Build configuration from file and environment.

        A missing config file is not an error. With strict=False a broken
        file is logged and replaced by defaults; the environment still applies.
        """
        path = Path(path) if path is not None else default_config_path()
        base = cls()
        if path.exists():
            try:
                base = cls.from_file(path)
            except ConfigError as e:
                if strict:
                    raise
                logger.warning("config_load_failed", path=str(path), error=str(e))

        config = base.with_overrides(
            default_timeout=_get_env_float("DEFAULT_TIMEOUT"),
            log_level=_get_env("LOG"),
            replace_existing=_get_env_bool("REPLACE"),
            shutdown_timeout=_get_env_float("SHUTDOWN_TIMEOUT"),
        )
        config.validate()
        return config

    def validate(self) -> None:
        if self.default_timeout <= 0:
            raise ConfigError(f"Default timeout must be positive (got {self.default_timeout})")
        if self.shutdown_timeout < 0:
            raise ConfigError(f"Shutdown timeout must not be negative (got {self.shutdown_timeout})")
