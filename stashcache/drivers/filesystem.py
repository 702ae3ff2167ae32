# stashcache/drivers/filesystem.py
"""
Persistent disk driver backed by `diskcache`.

Records are stored as `(data, expiration)` tuples under the flattened key
index. diskcache's own expiry is not used: expired records must stay readable
for the `OLD` invalidation policy until `purge()` removes them.
"""

import logging
import sqlite3
import time
from pathlib import Path
from typing import Any, Optional

from ..exceptions import BackendError
from .interface import CACHE_MISS, BaseDriver, KeyType, Record, key_index

try:
    import diskcache
except ImportError:
    diskcache = None
    logging.warning("diskcache library not found. FileSystemDriver will be unavailable.")

logger = logging.getLogger(__name__)

# --- Configuration Defaults ---
DEFAULT_DISK_CACHE_DIR = "./data/cache"

_MISSING = object()


class FileSystemDriver(BaseDriver):
    """Stores records in a diskcache directory."""

    def __init__(self, path: str = DEFAULT_DISK_CACHE_DIR, timeout: float = 60.0):
        """
        Args:
            path: Directory holding the cache database.
            timeout: SQLite busy timeout in seconds.
        """
        super().__init__()
        cache_path = Path(path)
        cache_path.mkdir(parents=True, exist_ok=True)
        self.path = str(cache_path)
        self._cache = diskcache.Cache(self.path, timeout=timeout)
        logger.info(f"Disk cache enabled (Directory: {self.path}).")

    @classmethod
    def is_available(cls) -> bool:
        return diskcache is not None

    def get_data(self, key: KeyType):
        try:
            entry = self._cache.get(key_index(key), default=_MISSING, retry=True)
        except (OSError, sqlite3.Error, diskcache.Timeout) as e:
            raise BackendError(f"Disk cache read failed: {e}", driver=self) from e
        if entry is _MISSING:
            return CACHE_MISS
        data, expiration = entry
        return Record(data, expiration)

    def store_data(self, key: KeyType, data: Any, expiration: Optional[int]) -> bool:
        try:
            return bool(self._cache.set(key_index(key), (data, expiration), retry=True))
        except (OSError, sqlite3.Error, diskcache.Timeout) as e:
            raise BackendError(f"Disk cache write failed: {e}", driver=self) from e

    def clear(self, key: Optional[KeyType] = None) -> bool:
        try:
            if not key:
                self._cache.clear(retry=True)
                return True

            prefix = key_index(key)
            for index in list(self._cache.iterkeys()):
                if isinstance(index, str) and index.startswith(prefix):
                    self._cache.delete(index, retry=True)
            return True
        except (OSError, sqlite3.Error, diskcache.Timeout) as e:
            raise BackendError(f"Disk cache clear failed: {e}", driver=self) from e

    def purge(self) -> bool:
        now = time.time()
        removed = 0
        try:
            for index in list(self._cache.iterkeys()):
                entry = self._cache.get(index, default=_MISSING, retry=True)
                if entry is _MISSING:
                    continue
                expiration = entry[1]
                if expiration is not None and expiration <= now:
                    self._cache.delete(index, retry=True)
                    removed += 1
            self._cache.cull(retry=True)
        except (OSError, sqlite3.Error, diskcache.Timeout) as e:
            raise BackendError(f"Disk cache purge failed: {e}", driver=self) from e
        logger.debug(f"Purged {removed} expired records from {self.path}.")
        return True

    def is_persistent(self) -> bool:
        return True

    def close(self) -> None:
        self._cache.close()
        logger.info("Disk cache closed.")
