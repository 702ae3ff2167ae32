# stashcache/drivers/ephemeral.py
"""
In-process memory driver.

Records live in a `cachetools.FIFOCache`, so a bounded store drops its oldest
entries first. Nothing survives the process. The cache is not thread-safe on
its own; every access goes through the driver's lock.
"""

import logging
import math
import threading
import time
from typing import Any, Optional

from cachetools import FIFOCache

from ..exceptions import InvalidArgumentError
from .interface import CACHE_MISS, BaseDriver, KeyType, Record, key_index

logger = logging.getLogger(__name__)


class EphemeralDriver(BaseDriver):
    """Stores records in memory for the lifetime of the driver instance."""

    def __init__(self, max_items: int = 0):
        """
        Args:
            max_items: Maximum number of records to hold, 0 for unbounded.
        """
        super().__init__()
        if isinstance(max_items, bool) or not isinstance(max_items, int) or max_items < 0:
            raise InvalidArgumentError("max_items must be a non-negative integer.")
        self.max_items = max_items
        self._store = FIFOCache(maxsize=max_items or math.inf)
        self._lock = threading.RLock()
        logger.debug(f"EphemeralDriver initialised (max_items={max_items}).")

    def get_data(self, key: KeyType):
        with self._lock:
            return self._store.get(key_index(key), CACHE_MISS)

    def store_data(self, key: KeyType, data: Any, expiration: Optional[int]) -> bool:
        with self._lock:
            self._store[key_index(key)] = Record(data, expiration)
        return True

    def clear(self, key: Optional[KeyType] = None) -> bool:
        with self._lock:
            if not key:
                self._store.clear()
                return True

            prefix = key_index(key)
            for index in [i for i in self._store.keys() if i.startswith(prefix)]:
                del self._store[index]
        return True

    def purge(self) -> bool:
        now = time.time()
        with self._lock:
            expired = [
                index
                for index, record in self._store.items()
                if record.expiration is not None and record.expiration <= now
            ]
            for index in expired:
                del self._store[index]
        if expired:
            logger.debug(f"Purged {len(expired)} expired records from memory.")
        return True

    def __len__(self):
        with self._lock:
            return len(self._store)
