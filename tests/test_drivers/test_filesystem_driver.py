# tests/test_drivers/test_filesystem_driver.py
# -*- coding: utf-8 -*-
"""
Tests for the diskcache-backed FileSystemDriver.
"""
import time

import pytest

from stashcache.drivers.filesystem import FileSystemDriver
from stashcache.drivers.interface import CACHE_MISS, Record


@pytest.fixture
def fs_driver(tmp_path):
    driver = FileSystemDriver(path=str(tmp_path / "cache"))
    yield driver
    driver.close()


def test_store_and_get_round_trip(fs_driver):
    expiration = int(time.time()) + 60
    data = {"list": [1, 2, 3], "text": "hello"}
    assert fs_driver.store_data(["cache", "ns", "a"], data, expiration) is True
    assert fs_driver.get_data(["cache", "ns", "a"]) == Record(data, expiration)


def test_missing_key_returns_cache_miss(fs_driver):
    assert fs_driver.get_data(["cache", "missing"]) is CACHE_MISS


def test_expired_records_stay_readable_until_purged(fs_driver):
    """Expired data is still served to the OLD policy until purge runs."""
    expired = int(time.time()) - 5
    fs_driver.store_data(["cache", "old"], "stale", expired)
    fs_driver.store_data(["cache", "new"], "fresh", int(time.time()) + 100)

    assert fs_driver.get_data(["cache", "old"]).data == "stale"

    assert fs_driver.purge() is True
    assert fs_driver.get_data(["cache", "old"]) is CACHE_MISS
    assert fs_driver.get_data(["cache", "new"]).data == "fresh"


def test_hierarchical_clear(fs_driver):
    fs_driver.store_data(["a", "b"], 1, None)
    fs_driver.store_data(["a", "b", "c"], 2, None)
    fs_driver.store_data(["a", "d"], 3, None)

    assert fs_driver.clear(["a", "b"]) is True

    assert fs_driver.get_data(["a", "b"]) is CACHE_MISS
    assert fs_driver.get_data(["a", "b", "c"]) is CACHE_MISS
    assert fs_driver.get_data(["a", "d"]).data == 3


def test_clear_all(fs_driver):
    fs_driver.store_data(["a"], 1, None)
    fs_driver.store_data(["b"], 2, None)
    assert fs_driver.clear() is True
    assert fs_driver.get_data(["a"]) is CACHE_MISS
    assert fs_driver.get_data(["b"]) is CACHE_MISS


def test_data_survives_a_new_driver_instance(tmp_path):
    path = str(tmp_path / "persist")
    first = FileSystemDriver(path=path)
    first.store_data(["cache", "kept"], "value", None)
    first.close()

    second = FileSystemDriver(path=path)
    try:
        assert second.get_data(["cache", "kept"]).data == "value"
        assert second.is_persistent() is True
    finally:
        second.close()
