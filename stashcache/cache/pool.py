# stashcache/cache/pool.py
"""
Cache Pool Module.

The Pool is the entry point for callers: it validates and namespaces keys,
hands out Items bound to its driver, and offers bulk operations and a
memoising decorator on top of them.
"""

from __future__ import annotations
import asyncio
import functools
import logging
from typing import Any, Callable, Dict, Iterable, Optional, Type

from ..config import CacheContext, build_driver, load_config
from ..drivers.ephemeral import EphemeralDriver
from ..drivers.interface import BaseDriver
from ..exceptions import InvalidArgumentError
from .cache_key import KeyValidator, function_name, generate_cache_key
from .invalidation import InvalidationMethod
from .item import Item

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "stash_default"


class Pool:
    """
    Factory and coordinator for cache Items.

    Every Item created by a pool shares the pool's driver and CacheContext,
    so `pool.context.disable()` switches caching off for all of them.
    """

    def __init__(
        self,
        driver: Optional[BaseDriver] = None,
        context: Optional[CacheContext] = None,
        validator: Optional[KeyValidator] = None,
    ):
        """
        Args:
            driver: Storage driver. Defaults to an EphemeralDriver.
            context: Shared settings and kill-switch.
            validator: Key validator, defaults to the reserved-character check.
        """
        self.context = context if context is not None else CacheContext()
        self._validator = validator or KeyValidator()
        self._driver: BaseDriver = driver if driver is not None else EphemeralDriver()
        self._namespace: Optional[str] = None
        self._item_class: Type[Item] = Item
        self._disabled = False
        self._invalidation_method: Any = InvalidationMethod.PRECOMPUTE
        self._invalidation_arg1: Any = None
        self._invalidation_arg2: Any = None
        logger.debug(f"Pool initialised with driver {self._driver.__class__.__name__}.")

    @classmethod
    def from_config(cls, config_file: str = "stashcache.ini") -> "Pool":
        """Build a pool (driver chain and context) from an INI file."""
        settings = load_config(config_file)
        return cls(driver=build_driver(settings["driver"]), context=settings["context"])

    # --- Configuration ---

    def set_driver(self, driver: BaseDriver) -> "Pool":
        self._driver = driver
        return self

    def get_driver(self) -> BaseDriver:
        return self._driver

    def set_item_class(self, item_class: Type[Item]) -> "Pool":
        if not isinstance(item_class, type):
            raise InvalidArgumentError(f"Item class {item_class!r} does not exist")
        if not issubclass(item_class, Item):
            raise InvalidArgumentError(
                f"Item class {item_class.__name__} must inherit from {Item.__name__}"
            )
        self._item_class = item_class
        return self

    def set_namespace(self, namespace: Optional[str] = None) -> "Pool":
        errors = self.validate_namespace(namespace)
        if errors:
            raise InvalidArgumentError(errors[0])
        self._namespace = namespace
        return self

    def get_namespace(self) -> Optional[str]:
        return self._namespace

    @staticmethod
    def validate_namespace(namespace: Optional[str]) -> list:
        if namespace is None or (isinstance(namespace, str) and namespace.isalnum() and namespace.isascii()):
            return []
        return ["Namespace must be None or alphanumeric string."]

    def set_invalidation_method(
        self,
        method: Any = InvalidationMethod.PRECOMPUTE,
        arg1: Any = None,
        arg2: Any = None,
    ) -> "Pool":
        """Default invalidation method for Items created from now on."""
        self._invalidation_method = method
        self._invalidation_arg1 = arg1
        self._invalidation_arg2 = arg2
        return self

    def is_disabled(self) -> bool:
        return self._disabled or self.context.disabled

    # --- Items ---

    def get_item(self, key: str) -> Item:
        """
        Return an Item for `key`.

        `key` is a '/'-separated path; each level can be cleared together
        with everything below it.

        Raises:
            InvalidArgumentError: For non-string keys, reserved characters or
                                  empty path segments.
        """
        self._validator.assert_key(key)

        segments = key.strip("/").split("/")
        namespace = self._namespace or DEFAULT_NAMESPACE
        segments.insert(0, namespace)

        if any(len(segment) < 1 for segment in segments):
            raise InvalidArgumentError("Invalid or Empty Node passed to get_item.")

        item = self._item_class(self._driver, segments, namespace, self.context)
        item.set_invalidation_method(
            self._invalidation_method, self._invalidation_arg1, self._invalidation_arg2
        )
        if self._disabled:
            item.disable()
        return item

    def get_items(self, keys: Iterable[str] = ()) -> Dict[str, Item]:
        keys = self._validator.assert_keys(keys)
        items = {}
        for key in keys:
            item = self.get_item(key)
            items[item.get_key()] = item
        return items

    def has_item(self, key: str) -> bool:
        return self.get_item(key).is_hit()

    def save(self, item: Item) -> bool:
        return item.save()

    def save_deferred(self, item: Item) -> bool:
        return self.save(item)

    def commit(self) -> bool:
        return True

    def delete_item(self, key: str) -> bool:
        return self.get_item(key).clear()

    def delete_items(self, keys: Iterable[str]) -> bool:
        keys = self._validator.assert_keys(keys)
        results = True
        for key in keys:
            results = self.delete_item(key) and results
        return results

    # --- Maintenance ---

    def clear(self) -> bool:
        """
        Remove every entry in the current namespace, or everything when no
        namespace is set. Stampede flags of the namespace go too.
        """
        if self.is_disabled():
            return False
        try:
            if self._namespace is not None:
                namespace = self._namespace.lower()
                results = self._driver.clear(["cache", namespace])
                results = self._driver.clear(["sp", namespace]) and results
            else:
                results = self._driver.clear()
        except Exception as e:
            self._disabled = True
            logger.critical(f"Flushing Cache Pool caused exception. Error: {e}", exc_info=e)
            return False
        return bool(results)

    def purge(self) -> bool:
        """Ask the driver to drop expired records."""
        if self.is_disabled():
            return False
        try:
            results = self._driver.purge()
        except Exception as e:
            self._disabled = True
            logger.critical(f"Purging Cache Pool caused exception. Error: {e}", exc_info=e)
            return False
        return bool(results)

    # --- Decorator ---

    def cached(
        self,
        ttl: Optional[int] = None,
        key_func: Optional[Callable[..., str]] = None,
        invalidation: Optional[tuple] = None,
    ):
        """
        Decorator to cache the results of a function (sync or async).

        The first caller to miss takes the stampede flag, runs the function
        and stores the result; other callers follow the invalidation method.
        `None` results are not cached.

        Args:
            ttl: Lifetime in seconds. Uses the context default if None.
            key_func: Custom function producing the final key segment from
                      `(func, *args, **kwargs)`. Defaults to generate_cache_key.
            invalidation: Optional `(method, arg1, arg2)` overriding the pool
                          default for these items.
        """
        key_generator = key_func or generate_cache_key

        def decorator(func):
            prefix = f"functions/{function_name(func)}"

            def _item_for(args, kwargs) -> Item:
                item = self.get_item(f"{prefix}/{key_generator(func, *args, **kwargs)}")
                if invalidation is not None:
                    item.set_invalidation_method(*invalidation)
                return item

            def _store(item: Item, result: Any) -> None:
                if result is None:
                    logger.debug(f"Function {func.__name__} returned None. Not caching.")
                    return
                item.set(result).save(ttl)

            if asyncio.iscoroutinefunction(func):

                @functools.wraps(func)
                async def async_wrapper(*args, **kwargs):
                    # Item calls block on driver I/O and SLEEP waits; keep them off the loop.
                    loop = asyncio.get_running_loop()
                    item = _item_for(args, kwargs)
                    value, hit = await loop.run_in_executor(None, item.fetch)
                    if hit:
                        return value
                    await loop.run_in_executor(None, item.lock)
                    try:
                        result = await func(*args, **kwargs)
                        await loop.run_in_executor(None, functools.partial(_store, item, result))
                    finally:
                        if item.stampede_running:
                            await loop.run_in_executor(None, item.release)
                    return result

                return async_wrapper

            @functools.wraps(func)
            def sync_wrapper(*args, **kwargs):
                item = _item_for(args, kwargs)
                value = item.get()
                if item.is_hit():
                    return value
                with item.locked():
                    result = func(*args, **kwargs)
                    _store(item, result)
                return result

            return sync_wrapper

        return decorator
