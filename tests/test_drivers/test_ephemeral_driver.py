# tests/test_drivers/test_ephemeral_driver.py
# -*- coding: utf-8 -*-
"""
Tests for the in-memory EphemeralDriver.
"""
import threading
import time

import pytest

from stashcache.drivers.ephemeral import EphemeralDriver
from stashcache.drivers.interface import CACHE_MISS, Record, key_index
from stashcache.exceptions import InvalidArgumentError


def test_store_and_get_round_trip():
    """A stored record comes back with its data and expiration."""
    driver = EphemeralDriver()
    expiration = int(time.time()) + 60
    assert driver.store_data(["cache", "a", "b"], {"x": 1}, expiration) is True
    assert driver.get_data(["cache", "a", "b"]) == Record({"x": 1}, expiration)


def test_missing_key_returns_cache_miss():
    driver = EphemeralDriver()
    result = driver.get_data(["cache", "nothing"])
    assert result is CACHE_MISS
    assert not result


def test_record_with_none_payload_is_not_a_miss():
    """A stored None must stay distinguishable from an absent key."""
    driver = EphemeralDriver()
    driver.store_data(["cache", "none"], None, None)
    record = driver.get_data(["cache", "none"])
    assert record
    assert record.data is None


def test_hierarchical_clear_removes_key_and_descendants_only():
    driver = EphemeralDriver()
    driver.store_data(["a", "b"], 1, None)
    driver.store_data(["a", "b", "c"], 2, None)
    driver.store_data(["a", "d"], 3, None)
    driver.store_data(["a", "bc"], 4, None)

    assert driver.clear(["a", "b"]) is True

    assert driver.get_data(["a", "b"]) is CACHE_MISS
    assert driver.get_data(["a", "b", "c"]) is CACHE_MISS
    assert driver.get_data(["a", "d"]).data == 3
    assert driver.get_data(["a", "bc"]).data == 4


def test_clear_without_key_empties_everything():
    driver = EphemeralDriver()
    driver.store_data(["a"], 1, None)
    driver.store_data(["b"], 2, None)
    assert driver.clear() is True
    assert len(driver) == 0


def test_purge_only_removes_expired_records():
    driver = EphemeralDriver()
    now = int(time.time())
    driver.store_data(["old"], "old", now - 10)
    driver.store_data(["fresh"], "fresh", now + 100)
    driver.store_data(["forever"], "forever", None)

    assert driver.purge() is True

    assert driver.get_data(["old"]) is CACHE_MISS
    assert driver.get_data(["fresh"]).data == "fresh"
    assert driver.get_data(["forever"]).data == "forever"


def test_max_items_evicts_oldest_first():
    driver = EphemeralDriver(max_items=2)
    driver.store_data(["one"], 1, None)
    driver.store_data(["two"], 2, None)
    driver.store_data(["three"], 3, None)

    assert driver.get_data(["one"]) is CACHE_MISS
    assert driver.get_data(["two"]).data == 2
    assert driver.get_data(["three"]).data == 3


@pytest.mark.parametrize("bad", [-1, "10", 1.5, True])
def test_invalid_max_items_is_rejected(bad):
    with pytest.raises(InvalidArgumentError, match="max_items"):
        EphemeralDriver(max_items=bad)


def test_key_index_escapes_separator():
    """Segments containing the separator cannot collide with deeper keys."""
    assert key_index(["a#b"]) != key_index(["a", "b"])
    assert key_index(["a", "b", "c"]).startswith(key_index(["a", "b"]))
    assert not key_index(["a", "bc"]).startswith(key_index(["a", "b"]))


def test_is_not_persistent():
    assert EphemeralDriver().is_persistent() is False


def test_concurrent_writes_during_clear_and_purge():
    """Maintenance calls must not trip over records inserted by other threads."""
    driver = EphemeralDriver()
    errors = []
    stop = threading.Event()

    def writer(name):
        i = 0
        try:
            while not stop.is_set():
                expiration = int(time.time()) + (-5 if i % 2 else 60)
                driver.store_data(["cache", name, str(i)], i, expiration)
                driver.get_data(["cache", name, str(i)])
                i += 1
        except Exception as e:
            errors.append(e)

    def maintainer():
        try:
            while not stop.is_set():
                driver.purge()
                driver.clear(["cache", "w0"])
                len(driver)
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=writer, args=(f"w{n}",)) for n in range(4)]
    threads.append(threading.Thread(target=maintainer))
    for t in threads:
        t.start()
    time.sleep(1.0)
    stop.set()
    for t in threads:
        t.join()

    assert errors == []
