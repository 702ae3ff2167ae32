# tests/test_config.py
# -*- coding: utf-8 -*-
"""
Tests for configuration loading and driver construction.
"""
import logging

import pytest

from stashcache.config import CacheContext, build_driver, load_config
from stashcache.drivers import (
    BlackHoleDriver,
    CompositeDriver,
    EphemeralDriver,
    FileSystemDriver,
)
from stashcache.exceptions import ConfigurationError

ENV_VARS = ("STASHCACHE_DISABLE", "STASHCACHE_DRIVERS", "STASHCACHE_PATH", "STASHCACHE_REDIS_URL")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults_when_file_is_missing(tmp_path):
    settings = load_config(str(tmp_path / "missing.ini"))
    assert settings["context"] == CacheContext()
    assert settings["driver"]["drivers"] == ["ephemeral"]
    assert settings["driver"]["max_items"] == 0


def test_values_from_file(tmp_path):
    config_file = tmp_path / "stashcache.ini"
    config_file.write_text(
        "[cache]\n"
        "cache_time = 600\n"
        "precompute_time = 15\n"
        "sleep_time = 250\n"
        "sleep_attempts = 3\n"
        "stampede_ttl = 10\n"
        "jitter_ratio = 0\n"
        "\n"
        "[driver]\n"
        "drivers = Ephemeral, filesystem\n"
        f"path = {tmp_path / 'disk'}\n"
        "max_items = 100\n",
        encoding="utf-8",
    )
    settings = load_config(str(config_file))

    assert settings["context"] == CacheContext(
        cache_time=600,
        precompute_time=15,
        sleep_time=250,
        sleep_attempts=3,
        stampede_ttl=10,
        jitter_ratio=0,
    )
    assert settings["driver"]["drivers"] == ["ephemeral", "filesystem"]
    assert settings["driver"]["path"] == str(tmp_path / "disk")
    assert settings["driver"]["max_items"] == 100


def test_environment_overrides_file(tmp_path, monkeypatch):
    config_file = tmp_path / "stashcache.ini"
    config_file.write_text("[driver]\ndrivers = redis\n", encoding="utf-8")
    monkeypatch.setenv("STASHCACHE_DRIVERS", "ephemeral, blackhole")
    monkeypatch.setenv("STASHCACHE_DISABLE", "yes")

    settings = load_config(str(config_file))
    assert settings["driver"]["drivers"] == ["ephemeral", "blackhole"]
    assert settings["context"].disabled is True


def test_invalid_value_raises_configuration_error(tmp_path):
    config_file = tmp_path / "stashcache.ini"
    config_file.write_text("[cache]\ncache_time = soon\n", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="Invalid cache configuration value"):
        load_config(str(config_file))


def test_unparseable_file_raises_configuration_error(tmp_path):
    config_file = tmp_path / "stashcache.ini"
    config_file.write_text("no section header here\n", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="Could not parse"):
        load_config(str(config_file))


def test_build_single_driver():
    driver = build_driver({"drivers": ["ephemeral"], "max_items": 5})
    assert isinstance(driver, EphemeralDriver)
    assert driver.max_items == 5


def test_build_filesystem_driver(tmp_path):
    driver = build_driver({"drivers": ["filesystem"], "path": str(tmp_path / "disk")})
    try:
        assert isinstance(driver, FileSystemDriver)
        assert driver.is_persistent()
    finally:
        driver.close()


def test_build_composite_driver_keeps_order():
    driver = build_driver({"drivers": ["ephemeral", "blackhole"]})
    assert isinstance(driver, CompositeDriver)
    assert [type(d) for d in driver.drivers] == [EphemeralDriver, BlackHoleDriver]


@pytest.mark.parametrize("names", [[], ["memcache"], ["ephemeral", "apc"]])
def test_build_driver_rejects_bad_lists(names):
    with pytest.raises(ConfigurationError):
        build_driver({"drivers": names})


def test_context_disable_and_enable(caplog):
    context = CacheContext()
    with caplog.at_level(logging.WARNING, logger="stashcache"):
        context.disable()
        context.disable()
    assert context.disabled
    assert len([r for r in caplog.records if r.levelno == logging.WARNING]) == 1
    context.enable()
    assert not context.disabled
