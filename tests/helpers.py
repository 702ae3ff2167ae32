# tests/helpers.py
# -*- coding: utf-8 -*-
"""
Stub drivers and fakes shared by the test suite.
"""
import re
import time

from stashcache.drivers.ephemeral import EphemeralDriver
from stashcache.drivers.interface import CACHE_MISS, BaseDriver
from stashcache.exceptions import BackendError


class CallCheckDriver(BaseDriver):
    """Records every call; stores nothing."""

    def __init__(self):
        super().__init__()
        self.calls = []

    def was_called(self):
        return bool(self.calls)

    def get_data(self, key):
        self.calls.append(("get_data", list(key)))
        return CACHE_MISS

    def store_data(self, key, data, expiration):
        self.calls.append(("store_data", list(key)))
        return True

    def clear(self, key=None):
        self.calls.append(("clear", key))
        return True

    def purge(self):
        self.calls.append(("purge", None))
        return True


class ExceptionDriver(BaseDriver):
    """Fails every operation, like a backend whose server went away."""

    def get_data(self, key):
        raise BackendError("Test exception for get_data", driver=self)

    def store_data(self, key, data, expiration):
        raise BackendError("Test exception for store_data", driver=self)

    def clear(self, key=None):
        raise BackendError("Test exception for clear", driver=self)

    def purge(self):
        raise BackendError("Test exception for purge", driver=self)


class RecordingDriver(EphemeralDriver):
    """EphemeralDriver that appends `(name, operation)` to a shared journal."""

    def __init__(self, name, journal, persistent=False, result=True):
        super().__init__()
        self.name = name
        self.journal = journal
        self.persistent = persistent
        self.result = result

    def get_data(self, key):
        self.journal.append((self.name, "get_data"))
        return super().get_data(key)

    def store_data(self, key, data, expiration):
        self.journal.append((self.name, "store_data"))
        super().store_data(key, data, expiration)
        return self.result

    def clear(self, key=None):
        self.journal.append((self.name, "clear"))
        super().clear(key)
        return self.result

    def purge(self):
        self.journal.append((self.name, "purge"))
        super().purge()
        return self.result

    def is_persistent(self):
        return self.persistent


class FakeRedisClient:
    """In-memory stand-in for the handful of redis.Redis calls RedisDriver makes."""

    def __init__(self):
        self.store = {}
        self.ttls = {}
        self.closed = False

    def get(self, name):
        return self.store.get(name)

    def set(self, name, value, ex=None):
        self.store[name] = value
        if ex is not None:
            self.ttls[name] = ex
        else:
            self.ttls.pop(name, None)
        return True

    def delete(self, *names):
        removed = 0
        for name in names:
            if self.store.pop(name, None) is not None:
                removed += 1
            self.ttls.pop(name, None)
        return removed

    def scan_iter(self, match=None, count=None):
        regex = _redis_glob(match) if match is not None else None
        for name in list(self.store):
            if regex is None or regex.match(name):
                yield name

    def flushdb(self):
        self.store.clear()
        self.ttls.clear()
        return True

    def close(self):
        self.closed = True


def write_record(driver, key, value, expires_in):
    """Store an item-shaped record directly, bypassing Item's jitter."""
    now = int(time.time())
    driver.store_data(key, {"return": value, "created_on": now}, now + expires_in)


def _redis_glob(pattern):
    """Compile the subset of Redis glob syntax RedisDriver emits (*, ?, backslash escapes)."""
    out = []
    i = 0
    while i < len(pattern):
        ch = pattern[i]
        if ch == "\\" and i + 1 < len(pattern):
            out.append(re.escape(pattern[i + 1]))
            i += 2
            continue
        if ch == "*":
            out.append(".*")
        elif ch == "?":
            out.append(".")
        else:
            out.append(re.escape(ch))
        i += 1
    return re.compile("^" + "".join(out) + "$", re.S)
