# stashcache/__init__.py
"""
stashcache Root Package.

A caching layer with pluggable storage drivers and stampede protection.
"""

from .cache.invalidation import InvalidationMethod
from .cache.item import Item
from .cache.pool import Pool
from .config import CacheContext
from .exceptions import (
    BackendError,
    CacheError,
    ConfigurationError,
    DriverUnavailableError,
    InvalidArgumentError,
)

# Version information
__version__ = "0.1.0"

__all__ = [
    "BackendError",
    "CacheContext",
    "CacheError",
    "ConfigurationError",
    "DriverUnavailableError",
    "InvalidArgumentError",
    "InvalidationMethod",
    "Item",
    "Pool",
]
