from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from tests.unit.helpers import FakeDriver, FakeSession, make_settings
from wdsession.transport.reuse import ReuseDecider
from wdsession.transport.session_cache import SessionCache


def _probe_stub() -> MagicMock:
    driver = MagicMock()
    driver.get_session = AsyncMock(return_value=FakeSession())
    return driver


@pytest.mark.asyncio
@pytest.mark.parametrize("with_driver, with_info", [(False, False), (True, False), (True, True)])
async def test_reuse_not_requested_performs_no_io(with_driver: bool, with_info: bool) -> None:
    driver = _probe_stub()
    cache = SessionCache(driver=driver if with_driver else None)
    if with_info:
        cache.remember_session("abc", {"browserName": "chrome"})

    decider = ReuseDecider(make_settings(), cache)

    assert await decider.should_reuse_driver(False) is False
    driver.get_session.assert_not_awaited()
    assert cache.driver is (driver if with_driver else None)


@pytest.mark.asyncio
async def test_no_cached_driver_means_no_reuse() -> None:
    cache = SessionCache()

    assert await ReuseDecider(make_settings(), cache).should_reuse_driver(True) is False


@pytest.mark.asyncio
async def test_capability_mismatch_clears_cache_without_probing() -> None:
    driver = _probe_stub()
    cache = SessionCache(driver=driver)
    cache.remember_session("abc", {"browserName": "firefox"})

    decider = ReuseDecider(make_settings({"browserName": "chrome"}), cache)

    assert await decider.should_reuse_driver(True) is False
    driver.get_session.assert_not_awaited()
    assert cache.driver is None
    assert cache.session_info is None


@pytest.mark.asyncio
async def test_probe_timeout_clears_cache() -> None:
    probe_finished = asyncio.Event()

    async def hanging_get_session() -> FakeSession:
        await asyncio.sleep(5)
        probe_finished.set()
        return FakeSession()

    driver = MagicMock()
    driver.get_session = hanging_get_session
    cache = SessionCache(driver=driver)
    cache.remember_session("abc", {"browserName": "chrome"})

    decider = ReuseDecider(make_settings(probe_timeout_ms=20), cache)

    assert await decider.should_reuse_driver(True) is False
    assert cache.driver is None
    assert cache.session_info is None
    assert not probe_finished.is_set()


def test_mobile_targets_get_the_longer_probe_allowance() -> None:
    settings = make_settings({"platformName": "Android"}, probe_timeout_ms=100, probe_timeout_mobile_ms=3000)

    assert settings.probe_timeout() == 3.0
    assert make_settings({"browserName": "chrome"}, probe_timeout_ms=100).probe_timeout() == 0.1


@pytest.mark.asyncio
async def test_probe_error_clears_cache() -> None:
    cache = SessionCache(driver=FakeDriver(error=ConnectionError("gone")))
    cache.remember_session("abc", {"browserName": "chrome"})

    assert await ReuseDecider(make_settings(), cache).should_reuse_driver(True) is False
    assert cache.driver is None
    assert cache.session_info is None


@pytest.mark.asyncio
async def test_successful_probe_fills_missing_snapshot() -> None:
    driver = FakeDriver(FakeSession("live-session", {"browserName": "chrome", "browserVersion": "120.0"}))
    cache = SessionCache(driver=driver)

    assert await ReuseDecider(make_settings(), cache).should_reuse_driver(True) is True
    assert driver.get_session_calls == 1
    assert cache.session_info is not None
    assert cache.session_info.session_id == "live-session"
    assert cache.session_info.capabilities == {"browserName": "chrome", "browserVersion": "120.0"}


@pytest.mark.asyncio
async def test_failed_snapshot_fill_does_not_fail_the_reuse() -> None:
    session = MagicMock()
    session.get_id = AsyncMock(side_effect=RuntimeError("no id"))
    driver = MagicMock()
    driver.get_session = AsyncMock(return_value=session)
    cache = SessionCache(driver=driver)

    assert await ReuseDecider(make_settings(), cache).should_reuse_driver(True) is True
    assert cache.driver is driver
    assert cache.session_info is None


@pytest.mark.asyncio
async def test_matching_snapshot_keeps_existing_info() -> None:
    driver = FakeDriver()
    cache = SessionCache(driver=driver)
    info = cache.remember_session("abc", {"browserName": "chrome"})

    assert await ReuseDecider(make_settings(), cache).should_reuse_driver(True) is True
    assert driver.get_session_calls == 1
    assert cache.session_info is info


@pytest.mark.asyncio
async def test_nested_vendor_options_are_matched_against_the_snapshot() -> None:
    driver = _probe_stub()
    cache = SessionCache(driver=driver)
    cache.remember_session("abc", {"platformName": "android", "appium:udid": "emulator-5554"})

    settings = make_settings({"platformName": "Android", "appium:options": {"udid": "emulator-5556"}})

    assert await ReuseDecider(settings, cache).should_reuse_driver(True) is False
    driver.get_session.assert_not_awaited()
    assert cache.driver is None
