# stashcache/drivers/black_hole.py
"""Driver that accepts every write and never returns anything."""

from typing import Any, Optional

from .interface import CACHE_MISS, BaseDriver, KeyType


class BlackHoleDriver(BaseDriver):
    """Useful as a placeholder or to switch caching off at the storage level."""

    def get_data(self, key: KeyType):
        return CACHE_MISS

    def store_data(self, key: KeyType, data: Any, expiration: Optional[int]) -> bool:
        return True

    def clear(self, key: Optional[KeyType] = None) -> bool:
        return True

    def purge(self) -> bool:
        return True
