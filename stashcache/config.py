# stashcache/config.py
"""
Configuration for stashcache.

`CacheContext` is the runtime object shared by a pool and every item it
creates; flipping `disabled` turns caching off for all of them at once.
`load_config` reads the INI file / environment settings used to build a pool.
"""

from __future__ import annotations
import configparser
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict

from .drivers import (
    BlackHoleDriver,
    CompositeDriver,
    EphemeralDriver,
    FileSystemDriver,
    RedisDriver,
)
from .drivers.filesystem import DEFAULT_DISK_CACHE_DIR
from .drivers.redis_driver import DEFAULT_REDIS_URL
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# --- Configuration Defaults ---
DEFAULT_CACHE_TIME = 432000  # five days
DEFAULT_PRECOMPUTE_TIME = 40
DEFAULT_SLEEP_TIME = 500  # milliseconds
DEFAULT_SLEEP_ATTEMPTS = 1
DEFAULT_STAMPEDE_TTL = 30
DEFAULT_JITTER_RATIO = 0.15

DRIVER_TYPES = {
    "ephemeral": EphemeralDriver,
    "filesystem": FileSystemDriver,
    "redis": RedisDriver,
    "blackhole": BlackHoleDriver,
}


@dataclass
class CacheContext:
    """
    Settings and the kill-switch shared by a pool and its items.

    Attributes:
        disabled: When True every item short-circuits to its safe default.
        cache_time: Lifetime in seconds used when an item has no expiration.
        precompute_time: Default PRECOMPUTE window in seconds.
        sleep_time: Default SLEEP interval in milliseconds.
        sleep_attempts: Default number of SLEEP attempts.
        stampede_ttl: Default lifetime of a stampede flag in seconds.
        jitter_ratio: Upper bound of the random expiration reduction.
    """

    disabled: bool = False
    cache_time: int = DEFAULT_CACHE_TIME
    precompute_time: float = DEFAULT_PRECOMPUTE_TIME
    sleep_time: float = DEFAULT_SLEEP_TIME
    sleep_attempts: int = DEFAULT_SLEEP_ATTEMPTS
    stampede_ttl: int = DEFAULT_STAMPEDE_TTL
    jitter_ratio: float = DEFAULT_JITTER_RATIO

    def disable(self) -> None:
        if not self.disabled:
            logger.warning("Cache disabled for every item sharing this context.")
        self.disabled = True

    def enable(self) -> None:
        self.disabled = False


def _as_bool(value: str) -> bool:
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def load_config(config_file: str = "stashcache.ini") -> Dict[str, Any]:
    """
    Read cache settings from an INI file, with environment overrides.

    The file may contain a `[cache]` section (context fields) and a `[driver]`
    section (`drivers`, `path`, `redis_url`, `max_items`). Missing files fall
    back to the defaults.

    Args:
        config_file: Path to the INI file.

    Returns:
        A dict with a `context` entry (CacheContext) and a `driver` entry
        (dict of driver settings).
    """
    config = configparser.ConfigParser()
    config["cache"] = {
        "disabled": "false",
        "cache_time": str(DEFAULT_CACHE_TIME),
        "precompute_time": str(DEFAULT_PRECOMPUTE_TIME),
        "sleep_time": str(DEFAULT_SLEEP_TIME),
        "sleep_attempts": str(DEFAULT_SLEEP_ATTEMPTS),
        "stampede_ttl": str(DEFAULT_STAMPEDE_TTL),
        "jitter_ratio": str(DEFAULT_JITTER_RATIO),
    }
    config["driver"] = {
        "drivers": "ephemeral",
        "path": DEFAULT_DISK_CACHE_DIR,
        "redis_url": DEFAULT_REDIS_URL,
        "max_items": "0",
    }

    if os.path.exists(config_file):
        try:
            config.read(config_file, encoding="utf-8")
            logger.info(f"Loaded cache configuration from {config_file}")
        except configparser.Error as e:
            raise ConfigurationError(f"Could not parse config file {config_file}: {e}") from e
    else:
        logger.debug(f"Config file {config_file} not found. Using defaults.")

    # Environment overrides
    env_map = {
        ("cache", "disabled"): "STASHCACHE_DISABLE",
        ("driver", "drivers"): "STASHCACHE_DRIVERS",
        ("driver", "path"): "STASHCACHE_PATH",
        ("driver", "redis_url"): "STASHCACHE_REDIS_URL",
    }
    for (section, option), env_name in env_map.items():
        if env_name in os.environ:
            config[section][option] = os.environ[env_name]

    cache = config["cache"]
    driver = config["driver"]
    try:
        context = CacheContext(
            disabled=_as_bool(cache.get("disabled")),
            cache_time=cache.getint("cache_time"),
            precompute_time=cache.getfloat("precompute_time"),
            sleep_time=cache.getfloat("sleep_time"),
            sleep_attempts=cache.getint("sleep_attempts"),
            stampede_ttl=cache.getint("stampede_ttl"),
            jitter_ratio=cache.getfloat("jitter_ratio"),
        )
        driver_settings = {
            "drivers": [d.strip().lower() for d in driver.get("drivers").split(",") if d.strip()],
            "path": driver.get("path"),
            "redis_url": driver.get("redis_url"),
            "max_items": driver.getint("max_items"),
        }
    except ValueError as e:
        raise ConfigurationError(f"Invalid cache configuration value: {e}") from e

    return {"context": context, "driver": driver_settings}


def build_driver(settings: Dict[str, Any]):
    """
    Construct the driver described by `settings["drivers"]`.

    A single name yields that driver; several names yield a CompositeDriver
    with the drivers in the listed priority order.

    Raises:
        ConfigurationError: For an empty list or an unknown driver name.
    """
    names = settings.get("drivers") or []
    if not names:
        raise ConfigurationError("At least one driver must be configured.")

    drivers = []
    for name in names:
        if name not in DRIVER_TYPES:
            raise ConfigurationError(
                f"Unknown driver '{name}'. Expected one of {sorted(DRIVER_TYPES)}."
            )
        if name == "ephemeral":
            drivers.append(EphemeralDriver(max_items=settings.get("max_items", 0)))
        elif name == "filesystem":
            drivers.append(FileSystemDriver(path=settings.get("path", DEFAULT_DISK_CACHE_DIR)))
        elif name == "redis":
            drivers.append(RedisDriver(url=settings.get("redis_url", DEFAULT_REDIS_URL)))
        else:
            drivers.append(BlackHoleDriver())

    if len(drivers) == 1:
        return drivers[0]
    return CompositeDriver(drivers)
