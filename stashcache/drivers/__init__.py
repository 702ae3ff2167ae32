# stashcache/drivers/__init__.py
"""
Drivers Subpackage for stashcache.

Storage backends behind the item/pool layer: memory, disk, Redis, a
do-nothing driver, and the composite driver that chains them.
"""

from .black_hole import BlackHoleDriver
from .composite import CompositeDriver
from .ephemeral import EphemeralDriver
from .filesystem import FileSystemDriver
from .interface import CACHE_MISS, BaseDriver, Record, key_index
from .redis_driver import RedisDriver

__all__ = [
    "CACHE_MISS",
    "BaseDriver",
    "BlackHoleDriver",
    "CompositeDriver",
    "EphemeralDriver",
    "FileSystemDriver",
    "Record",
    "RedisDriver",
    "key_index",
]
