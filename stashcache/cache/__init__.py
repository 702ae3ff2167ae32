# stashcache/cache/__init__.py
"""
Cache Subpackage for stashcache.

Items (one cached entry with stampede protection), the invalidation methods
they apply to stale data, key handling, and the Pool that hands out Items.
"""

from .invalidation import InvalidationMethod, Outcome
from .item import Item
from .pool import Pool

__all__ = ["InvalidationMethod", "Item", "Outcome", "Pool"]
