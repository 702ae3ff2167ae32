# stashcache/drivers/redis_driver.py
"""
Redis driver.

Records are pickled `(data, expiration)` tuples stored under
`<prefix><key index>`. Redis expires keys natively, so `purge()` has nothing
to do. Hierarchical clears walk the keyspace with SCAN.
"""

import logging
import pickle
import time
from typing import Any, Optional

from tenacity import before_sleep_log, retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..exceptions import BackendError
from .interface import CACHE_MISS, BaseDriver, KeyType, Record, key_index

try:
    import redis
    from redis.exceptions import ConnectionError as RedisConnectionError
    from redis.exceptions import RedisError
    from redis.exceptions import TimeoutError as RedisTimeoutError

    REDIS_AVAILABLE = True
    RETRYABLE_EXCEPTIONS = (RedisConnectionError, RedisTimeoutError)
except ImportError:
    redis = None
    RedisError = ConnectionError
    REDIS_AVAILABLE = False
    RETRYABLE_EXCEPTIONS = (ConnectionError, TimeoutError)
    logging.warning("redis library not found. RedisDriver will be unavailable.")

logger = logging.getLogger(__name__)

# --- Configuration Defaults ---
DEFAULT_REDIS_URL = "redis://localhost:6379/0"
DEFAULT_KEY_PREFIX = "stash:"

_GLOB_SPECIAL = "\\*?[]"


def _escape_glob(text: str) -> str:
    """Escape characters that SCAN MATCH treats as glob syntax."""
    return "".join("\\" + ch if ch in _GLOB_SPECIAL else ch for ch in text)


class RedisDriver(BaseDriver):
    """Stores records in a Redis database."""

    def __init__(
        self,
        url: str = DEFAULT_REDIS_URL,
        client: Optional["redis.Redis"] = None,
        prefix: str = DEFAULT_KEY_PREFIX,
        scan_count: int = 500,
        max_retries: int = 3,
        retry_wait_base_secs: float = 0.1,
    ):
        """
        Args:
            url: Redis connection URL, ignored when `client` is given.
            client: A ready `redis.Redis` (or compatible) client.
            prefix: Prepended to every stored key.
            scan_count: COUNT hint for SCAN during hierarchical clears.
            max_retries: Attempts per command on connection or timeout errors.
            retry_wait_base_secs: Multiplier of the exponential back-off.
        """
        super().__init__()
        self.prefix = prefix
        self.scan_count = scan_count

        self.retry_decorator = retry(
            stop=stop_after_attempt(max_retries),
            wait=wait_exponential(multiplier=retry_wait_base_secs, max=2),
            retry=retry_if_exception_type(RETRYABLE_EXCEPTIONS),
            reraise=True,
            before_sleep=before_sleep_log(logger, logging.WARNING),
        )
        if client is not None:
            self.client = client
        else:
            # Store bytes for pickle compatibility
            self.client = redis.Redis.from_url(url, decode_responses=False)
            logger.info(f"Redis cache enabled (URL: {url}).")

    @classmethod
    def is_available(cls) -> bool:
        return REDIS_AVAILABLE

    def _make_key(self, key: KeyType) -> str:
        return self.prefix + key_index(key)

    def get_data(self, key: KeyType):
        try:
            raw = self.retry_decorator(self.client.get)(self._make_key(key))
        except RedisError as e:
            raise BackendError(f"Redis GET failed: {e}", driver=self) from e
        if raw is None:
            return CACHE_MISS
        data, expiration = pickle.loads(raw)
        return Record(data, expiration)

    def store_data(self, key: KeyType, data: Any, expiration: Optional[int]) -> bool:
        payload = pickle.dumps((data, expiration))
        try:
            if expiration is None:
                return bool(self.retry_decorator(self.client.set)(self._make_key(key), payload))

            ttl = int(expiration - time.time())
            # Redis would keep a non-positive TTL forever, so skip the write.
            if ttl < 1:
                return True
            return bool(self.retry_decorator(self.client.set)(self._make_key(key), payload, ex=ttl))
        except RedisError as e:
            raise BackendError(f"Redis SET failed: {e}", driver=self) from e

    def clear(self, key: Optional[KeyType] = None) -> bool:
        try:
            if not key:
                self.retry_decorator(self.client.flushdb)()
                logger.info("Redis cache flushed (FLUSHDB).")
                return True

            pattern = _escape_glob(self._make_key(key)) + "*"
            batch = []
            for found in self.client.scan_iter(match=pattern, count=self.scan_count):
                batch.append(found)
                if len(batch) >= self.scan_count:
                    self.client.delete(*batch)
                    batch = []
            if batch:
                self.client.delete(*batch)
            return True
        except RedisError as e:
            raise BackendError(f"Redis clear failed: {e}", driver=self) from e

    def purge(self) -> bool:
        return True

    def is_persistent(self) -> bool:
        return True

    def close(self) -> None:
        try:
            self.client.close()
            logger.debug("Redis client closed.")
        except RedisError as e:
            logger.error(f"Error closing Redis client: {e}", exc_info=True)
