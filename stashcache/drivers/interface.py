# stashcache/drivers/interface.py
# -*- coding: utf-8 -*-
"""
Defines the Abstract Base Class for all storage drivers.

Drivers are simple key/record stores addressed by hierarchical keys. They know
nothing about stampede control or invalidation policies; that logic lives in
`stashcache.cache.item`.
"""
from __future__ import annotations
import abc
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from ..exceptions import DriverUnavailableError

# A cache key as seen by drivers: ["cache" | "sp", namespace, segment, ...]
KeyType = Sequence[str]


@dataclass(frozen=True)
class Record:
    """A stored value and its absolute expiration (epoch seconds, None = never)."""

    data: Any
    expiration: Optional[int] = None


class _CacheMiss:
    """Falsy marker returned by drivers when a key holds no record."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self):
        return False

    def __repr__(self):
        return "CACHE_MISS"


CACHE_MISS = _CacheMiss()


def key_index(key: KeyType) -> str:
    """
    Flatten a hierarchical key into a string index.

    Every segment is terminated by '#', with literal '#' escaped as '#:', so
    the index of a key is a string prefix of the index of each of its
    descendants and of nothing else.

    Args:
        key: The key segments.

    Returns:
        The flat index string.
    """
    return "".join(str(segment).replace("#", "#:") + "#" for segment in key)


class BaseDriver(abc.ABC):
    """
    Abstract Base Class (Interface) for storage drivers.

    Subclasses implement the record store; `is_available` lets a driver refuse
    construction when its library or service is missing.
    """

    def __init__(self):
        if not self.is_available():
            raise DriverUnavailableError(f"{self.__class__.__name__} is not available.")

    @classmethod
    def is_available(cls) -> bool:
        """Return True if the driver can be used in this environment."""
        return True

    @abc.abstractmethod
    def get_data(self, key: KeyType) -> Record | _CacheMiss:
        """
        Retrieve the record stored under `key`.

        Args:
            key: The hierarchical key.

        Returns:
            The Record, or CACHE_MISS if nothing is stored. Expired records
            may still be returned; judging freshness is the caller's job.
        """
        raise NotImplementedError

    @abc.abstractmethod
    def store_data(self, key: KeyType, data: Any, expiration: Optional[int]) -> bool:
        """
        Store `data` under `key`.

        Args:
            key: The hierarchical key.
            data: Any picklable value.
            expiration: Absolute expiration in epoch seconds, None for never.

        Returns:
            True if the write succeeded.
        """
        raise NotImplementedError

    @abc.abstractmethod
    def clear(self, key: Optional[KeyType] = None) -> bool:
        """
        Remove `key` and every key below it, or everything when `key` is None.

        Returns:
            True if the clear succeeded.
        """
        raise NotImplementedError

    @abc.abstractmethod
    def purge(self) -> bool:
        """
        Remove expired records. Must never remove a record that has not expired.

        Returns:
            True if maintenance succeeded.
        """
        raise NotImplementedError

    def is_persistent(self) -> bool:
        """Return True if stored data survives the process."""
        return False

    def close(self) -> None:
        """Release any connections or file handles."""
        return None
