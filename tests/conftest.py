# tests/conftest.py
# -*- coding: utf-8 -*-
"""
Shared fixtures for the stashcache test suite.
"""
import pytest

from stashcache.cache.item import Item
from stashcache.cache.pool import Pool
from stashcache.config import CacheContext
from stashcache.drivers.ephemeral import EphemeralDriver


@pytest.fixture
def driver():
    return EphemeralDriver()


@pytest.fixture
def context():
    return CacheContext()


@pytest.fixture
def make_item(driver, context):
    """Factory for items sharing one driver and context, like a pool would."""

    def _make(key=("base", "key"), method=None, arg1=None, arg2=None):
        item = Item(driver, list(key), context=context)
        if method is not None:
            item.set_invalidation_method(method, arg1, arg2)
        return item

    return _make


@pytest.fixture
def pool(driver, context):
    return Pool(driver=driver, context=context)
