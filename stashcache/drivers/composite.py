# stashcache/drivers/composite.py
"""
Composite (fallback chain) driver.

Wraps an ordered list of drivers, fastest first:
1. Reads walk the list front to back and stop at the first hit; drivers that
   missed are back-filled with the found record.
2. Writes, clears and purges walk the list back to front, so the slowest,
   most durable driver is updated before the fast ones.

Reads and writes deliberately run in opposite orders.
"""

import logging
from typing import Any, Optional, Sequence

from ..exceptions import ConfigurationError
from .interface import CACHE_MISS, BaseDriver, KeyType

logger = logging.getLogger(__name__)


class CompositeDriver(BaseDriver):
    """
    Lets small or volatile drivers be backed by slower, larger, persistent ones.

    There is no limit on how many drivers can be stacked. Errors raised by a
    member propagate unchanged; the item/pool layer decides what to do with
    them.
    """

    def __init__(self, drivers: Sequence[BaseDriver]):
        """
        Args:
            drivers: Member drivers in priority order. Entries that are not
                     drivers are skipped.

        Raises:
            ConfigurationError: If no usable driver remains.
        """
        super().__init__()
        if drivers is None:
            raise ConfigurationError("One or more secondary drivers are required.")
        if not isinstance(drivers, (list, tuple)):
            raise ConfigurationError("The drivers option requires a list.")
        if len(drivers) < 1:
            raise ConfigurationError("One or more secondary drivers are required.")

        usable = []
        for driver in drivers:
            if not isinstance(driver, BaseDriver):
                logger.warning(f"Skipping non-driver entry in composite: {driver!r}")
                continue
            usable.append(driver)

        if not usable:
            raise ConfigurationError("None of the secondary drivers can be enabled.")

        self._drivers = tuple(usable)
        logger.info(
            f"CompositeDriver initialised with: {[d.__class__.__name__ for d in self._drivers]}"
        )

    @property
    def drivers(self):
        return self._drivers

    def get_data(self, key: KeyType):
        """
        Return the first record found, back-filling the drivers that missed it.

        The back-fill runs from the most distant miss to the nearest one.
        """
        missed = []
        for driver in self._drivers:
            record = driver.get_data(key)
            if record:
                for failed in reversed(missed):
                    failed.store_data(key, record.data, record.expiration)
                if missed:
                    logger.debug(f"Back-filled {len(missed)} driver(s) for key {list(key)}")
                return record
            missed.append(driver)
        return CACHE_MISS

    def store_data(self, key: KeyType, data: Any, expiration: Optional[int]) -> bool:
        return self._act_on_all(lambda d: d.store_data(key, data, expiration))

    def clear(self, key: Optional[KeyType] = None) -> bool:
        return self._act_on_all(lambda d: d.clear(key))

    def purge(self) -> bool:
        return self._act_on_all(lambda d: d.purge())

    def is_persistent(self) -> bool:
        # One durable member is enough.
        return any(driver.is_persistent() for driver in self._drivers)

    def close(self) -> None:
        for driver in self._drivers:
            driver.close()

    def _act_on_all(self, action) -> bool:
        """Run `action` on every driver, slowest first, without short-circuiting."""
        result = True
        for driver in reversed(self._drivers):
            result = bool(action(driver)) and result
        return result
