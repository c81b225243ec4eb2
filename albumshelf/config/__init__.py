"""
Configuration management for albumshelf.

This module loads store and web settings from TOML files. The packaged
`albumshelf.toml` supplies the defaults; a user file may override any key.
"""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# Path to the config directory
CONFIG_DIR = Path(__file__).parent
DEFAULT_CONFIG_PATH = CONFIG_DIR / "albumshelf.toml"


class ConfigError(ValueError):
    """Raised when a configuration value has the wrong type."""


@dataclass
class StoreConfig:
    """Settings for the record store (`[store]` section)."""

    data_file: Path = Path("data/music_collection.json")
    lock_file: Path = Path("data/music_collection.lock")
    lock_timeout: float = 10.0
    lock_poll_interval: float = 0.05
    strict_queries: bool = True
    reload_on_read: bool = False


@dataclass
class WebConfig:
    """Settings for the REST adapter (`[web]` section)."""

    host: str = "127.0.0.1"
    port: int = 8080
    cors_origins: list[str] = field(default_factory=lambda: ["*"])


@dataclass
class AppConfig:
    """Loaded application configuration."""

    store: StoreConfig = field(default_factory=StoreConfig)
    web: WebConfig = field(default_factory=WebConfig)
    source: Path | None = None


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise ConfigError(f"[{name}] must be a table")
    return section


def _number(section: dict[str, Any], key: str, default: float) -> float:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{key} must be a number, got {value!r}")
    return float(value)


def _integer(section: dict[str, Any], key: str, default: int) -> int:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{key} must be an integer, got {value!r}")
    return value


def _flag(section: dict[str, Any], key: str, default: bool) -> bool:
    value = section.get(key, default)
    if not isinstance(value, bool):
        raise ConfigError(f"{key} must be true or false, got {value!r}")
    return value


def _string(section: dict[str, Any], key: str, default: str) -> str:
    value = section.get(key, default)
    if not isinstance(value, str):
        raise ConfigError(f"{key} must be a string, got {value!r}")
    return value


def _path(section: dict[str, Any], key: str, default: Path, base: Path | None) -> Path:
    path = Path(_string(section, key, str(default))).expanduser()
    if base is not None and not path.is_absolute():
        path = base / path
    return path


def _parse_store(data: dict[str, Any], base: Path | None) -> StoreConfig:
    """Parse the [store] section of the TOML data."""
    section = _section(data, "store")
    defaults = StoreConfig()
    return StoreConfig(
        data_file=_path(section, "data_file", defaults.data_file, base),
        lock_file=_path(section, "lock_file", defaults.lock_file, base),
        lock_timeout=_number(section, "lock_timeout", defaults.lock_timeout),
        lock_poll_interval=_number(section, "lock_poll_interval", defaults.lock_poll_interval),
        strict_queries=_flag(section, "strict_queries", defaults.strict_queries),
        reload_on_read=_flag(section, "reload_on_read", defaults.reload_on_read),
    )


def _parse_web(data: dict[str, Any]) -> WebConfig:
    """Parse the [web] section of the TOML data."""
    section = _section(data, "web")
    defaults = WebConfig()
    origins = section.get("cors_origins", defaults.cors_origins)
    if not isinstance(origins, list) or not all(isinstance(o, str) for o in origins):
        raise ConfigError(f"cors_origins must be a list of strings, got {origins!r}")
    return WebConfig(
        host=_string(section, "host", defaults.host),
        port=_integer(section, "port", defaults.port),
        cors_origins=list(origins),
    )


def load_config(config_path: Path | None = None) -> AppConfig:
    """
    Load configuration from a TOML file.

    Args:
        config_path: Path to a user config. If None, uses the packaged defaults.

    Returns:
        Loaded AppConfig instance.
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH
        base = None  # packaged defaults resolve against the working directory
    else:
        config_path = Path(config_path)
        base = config_path.resolve().parent

    logger.debug("Loading config from %s", config_path)

    with config_path.open("rb") as f:
        data = tomllib.load(f)

    return AppConfig(
        store=_parse_store(data, base),
        web=_parse_web(data),
        source=config_path,
    )


# Global singleton instance (lazy loaded)
_config: AppConfig | None = None


def get_config() -> AppConfig:
    """
    Get the global configuration (lazy loaded singleton).

    Returns:
        The AppConfig instance.
    """
    global _config

    if _config is None:
        _config = load_config()

    return _config


def reload_config(config_path: Path | None = None) -> AppConfig:
    """
    Force reload of the configuration.

    Returns:
        The newly loaded AppConfig instance.
    """
    global _config
    _config = load_config(config_path)
    return _config
