# stashcache/cache/item.py
"""
Cache Item Module.

An Item is one caller's handle on one cached entry. It reads the record from
the driver, applies the bound invalidation method, and coordinates
regeneration with other callers through an advisory stampede flag stored
next to the data (same key, first segment "sp" instead of "cache").

The flag is last-write-wins: two callers that both miss it before either
writes it will both regenerate. Nothing stronger is attempted.
"""

from __future__ import annotations
import logging
import math
import random
import time
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, Iterator, List, Optional, Tuple, Union

from ..config import CacheContext
from ..drivers.interface import BaseDriver
from .cache_key import normalize_key, stampede_key
from .invalidation import InvalidationMethod, resolve

logger = logging.getLogger(__name__)

TTLType = Union[None, int, timedelta, datetime]


class Item:
    """
    A single cache entry with stampede protection.

    Items are cheap and meant to be used by one caller at a time; concurrency
    only happens between items (in any thread or process) sharing a driver.
    Driver failures never reach the caller: the item logs them, disables
    itself, and answers with safe defaults from then on.
    """

    def __init__(
        self,
        driver: Optional[BaseDriver] = None,
        key: Optional[List[str]] = None,
        namespace: Optional[str] = None,
        context: Optional[CacheContext] = None,
    ):
        """
        Args:
            driver: The storage driver.
            key: Key segments. When `namespace` is given the first segment is
                 the namespace and is left out of `get_key()`.
            namespace: Namespace the item lives in.
            context: Shared settings and kill-switch; a private one is created
                     if omitted.
        """
        self.context = context if context is not None else CacheContext()
        self._driver = driver
        self._enabled = True

        self._key: List[str] = []
        self._key_string = ""
        self._namespace: Optional[str] = None

        self._data: Any = None
        self._expiration: Optional[datetime] = None
        self._is_hit: Optional[bool] = None
        self._stampede_running = False

        self._invalidation_method: Any = InvalidationMethod.PRECOMPUTE
        self._invalidation_arg1: Any = None
        self._invalidation_arg2: Any = None

        if key is not None:
            self.set_key(key, namespace)

    # --- Setup ---

    def set_driver(self, driver: BaseDriver) -> "Item":
        self._driver = driver
        return self

    def set_key(self, key: List[str], namespace: Optional[str] = None) -> "Item":
        self._namespace = namespace
        visible = list(key[1:]) if namespace is not None else list(key)
        self._key_string = "/".join(str(segment) for segment in visible)
        self._key = normalize_key(key)
        return self

    def get_key(self) -> str:
        return self._key_string

    @property
    def namespace(self) -> Optional[str]:
        return self._namespace

    @property
    def stampede_running(self) -> bool:
        """True while this item holds the stampede flag and has not saved."""
        return self._stampede_running

    def set_invalidation_method(
        self,
        method: Any = InvalidationMethod.PRECOMPUTE,
        arg1: Any = None,
        arg2: Any = None,
    ) -> "Item":
        """
        Choose how stale data is handled for this item.

        Args:
            method: An InvalidationMethod.
            arg1: PRECOMPUTE window (s), VALUE stand-in, or SLEEP interval (ms).
            arg2: SLEEP attempts.
        """
        self._invalidation_method = method
        self._invalidation_arg1 = arg1
        self._invalidation_arg2 = arg2
        return self

    def get_invalidation_method(self) -> Tuple[Any, Any, Any]:
        return self._invalidation_method, self._invalidation_arg1, self._invalidation_arg2

    # --- Disable ---

    def disable(self) -> bool:
        self._enabled = False
        return True

    def is_disabled(self) -> bool:
        return self.context.disabled or not self._enabled

    def _log_exception(self, message: str, exc: BaseException) -> None:
        logger.critical(f"{message} Key: '{self._key_string}'. Error: {exc}", exc_info=exc)

    # --- Reading ---

    def get(self) -> Any:
        """
        Return the cached value, or None on a miss.

        The first call reads the driver and applies the invalidation method;
        later calls reuse that result.
        """
        if self.is_disabled():
            return None
        try:
            if self._data is None:
                self._data = self._execute_get()
            if self._is_hit is False:
                return None
            return self._data
        except Exception as e:
            self._log_exception("Retrieving from cache caused exception.", e)
            self.disable()
            return None

    def fetch(self) -> Tuple[Any, bool]:
        """Return `(value, is_hit)` in one call."""
        value = self.get()
        return value, self.is_hit()

    def is_hit(self) -> bool:
        return not self.is_miss()

    def is_miss(self) -> bool:
        if self._is_hit is None:
            self.get()
        if self.is_disabled():
            return True
        return not self._is_hit

    def _execute_get(self) -> Any:
        self._is_hit = False

        if self.is_disabled() or not self._key:
            return None

        method = self._invalidation_method
        arg1 = self._invalidation_arg1
        arg2 = self._invalidation_arg2

        # SLEEP asks for retries; each retry re-reads the record.
        while True:
            record = self._driver.get_data(self._key)
            outcome = resolve(record, method, arg1, arg2, self._stampede_active, self.context)
            if outcome.retry_after is None:
                break
            logger.debug(
                f"Waiting {outcome.retry_after:.3f}s for regeneration of '{self._key_string}' "
                f"({outcome.attempts_left} attempt(s) left)."
            )
            time.sleep(outcome.retry_after)
            arg2 = outcome.attempts_left

        self._is_hit = outcome.hit
        return outcome.value

    def _stampede_active(self) -> bool:
        """True if a live stampede flag exists for this key."""
        record = self._driver.get_data(stampede_key(self._key))
        if not record:
            return False
        if record.expiration is not None and record.expiration < time.time():
            return False
        return bool(record.data)

    # --- Stampede lock ---

    def lock(self, ttl: Optional[int] = None) -> bool:
        """
        Announce that this caller is regenerating the value.

        Args:
            ttl: Seconds the flag stays valid, default `context.stampede_ttl`.

        Returns:
            True if the flag was written, or there was nothing to lock
            (disabled item, no key). False if the write failed.
        """
        if self.is_disabled() or not self._key:
            return True

        self._stampede_running = True
        expiration = int(time.time()) + (ttl if ttl is not None else self.context.stampede_ttl)
        try:
            return bool(self._driver.store_data(stampede_key(self._key), True, expiration))
        except Exception as e:
            self._log_exception("Setting stampede flag caused exception.", e)
            self.disable()
            return False

    def release(self) -> bool:
        """Drop the stampede flag held by this item without saving a value."""
        if not self._stampede_running:
            return True
        self._stampede_running = False
        if self.is_disabled():
            return False
        try:
            return bool(self._driver.clear(stampede_key(self._key)))
        except Exception as e:
            self._log_exception("Clearing stampede flag caused exception.", e)
            self.disable()
            return False

    @contextmanager
    def locked(self, ttl: Optional[int] = None) -> Iterator[bool]:
        """
        Hold the stampede flag for the duration of a `with` block.

        If the block exits without `save()` having run (early return, error),
        the flag is released so other callers stop waiting for it.

        Usage:
            item = pool.get_item("reports/daily")
            if item.is_miss():
                with item.locked():
                    item.set(build_report()).save()
        """
        acquired = self.lock(ttl)
        try:
            yield acquired
        finally:
            if self._stampede_running:
                logger.debug(f"Releasing unused stampede flag for '{self._key_string}'.")
                self.release()

    # --- Writing ---

    def set(self, value: Any) -> "Item":
        if not self._key or self.is_disabled():
            return self
        self._data = value
        return self

    def set_ttl(self, ttl: TTLType = None) -> "Item":
        if isinstance(ttl, datetime):
            return self.expires_at(ttl)
        if isinstance(ttl, (int, float, timedelta)) and not isinstance(ttl, bool):
            return self.expires_after(ttl)
        self._expiration = None
        return self

    def expires_at(self, expiration: Optional[datetime] = None) -> "Item":
        self._expiration = expiration
        return self

    def expires_after(self, time_: Union[None, int, float, timedelta]) -> "Item":
        if time_ is None:
            self._expiration = None
            return self
        if not isinstance(time_, timedelta):
            time_ = timedelta(seconds=time_)
        self._expiration = datetime.now(timezone.utc) + time_
        return self

    def save(self, ttl: TTLType = None) -> bool:
        """
        Write the value set on this item.

        If this item holds the stampede flag, the flag is cleared right before
        the value is written.

        Args:
            ttl: Optional lifetime, applied with `set_ttl()` before writing.
                 None keeps whatever expiration was already set.
        """
        if ttl is not None:
            self.set_ttl(ttl)
        try:
            return self._execute_set(self._data, self._expiration)
        except Exception as e:
            self._log_exception("Setting value in cache caused exception.", e)
            self.disable()
            return False

    def _execute_set(self, data: Any, expiration: Optional[datetime]) -> bool:
        if self.is_disabled() or not self._key:
            return False

        created_on = int(time.time())
        store = {"return": data, "created_on": created_on}

        if expiration is not None:
            cache_time = int(expiration.timestamp()) - created_on
        else:
            cache_time = self.context.cache_time

        record_expiration = created_on + cache_time
        if cache_time > 0:
            # Spread the expirations of entries written together.
            record_expiration -= random.randint(0, math.floor(cache_time * self.context.jitter_ratio))

        if self._stampede_running:
            self._driver.clear(stampede_key(self._key))
            self._stampede_running = False

        return bool(self._driver.store_data(self._key, store, record_expiration))

    def extend(self, ttl: Union[None, int, float, timedelta] = None) -> bool:
        """
        Push the expiration of the stored value back by `ttl`.

        Without `ttl` the value is re-saved with the default cache time.
        """
        if self.is_disabled():
            return False
        try:
            expiration = self.get_expiration()
            if ttl is None or isinstance(ttl, bool):
                expiration = None
            else:
                if not isinstance(ttl, timedelta):
                    ttl = timedelta(seconds=ttl)
                base = expiration if expiration is not None else datetime.now(timezone.utc)
                expiration = base + ttl
            return self._execute_set(self.get(), expiration)
        except Exception as e:
            self._log_exception("Extending cache value caused exception.", e)
            self.disable()
            return False

    def clear(self) -> bool:
        """Remove this entry and every entry below it."""
        try:
            self._data = None
            self._expiration = None
            if self.is_disabled():
                return False
            return bool(self._driver.clear(self._key or None))
        except Exception as e:
            self._log_exception("Clearing cache caused exception.", e)
            self.disable()
            return False

    # --- Metadata ---

    def get_creation(self) -> Optional[datetime]:
        if self.is_disabled() or not self._key:
            return None
        try:
            record = self._driver.get_data(self._key)
        except Exception as e:
            self._log_exception("Reading creation time caused exception.", e)
            self.disable()
            return None
        if not record or not isinstance(record.data, dict) or "created_on" not in record.data:
            return None
        return datetime.fromtimestamp(record.data["created_on"], tz=timezone.utc)

    def get_expiration(self) -> Optional[datetime]:
        if self._expiration is None and not self.is_disabled() and self._key:
            try:
                record = self._driver.get_data(self._key)
            except Exception as e:
                self._log_exception("Reading expiration caused exception.", e)
                self.disable()
                return None
            if not record or record.expiration is None:
                return None
            self._expiration = datetime.fromtimestamp(record.expiration, tz=timezone.utc)
        return self._expiration

    def __repr__(self):
        return f"<{self.__class__.__name__} key='{self._key_string}' namespace={self._namespace!r}>"
