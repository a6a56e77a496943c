"""Tests for FeedBoundaryLocator."""
from unittest.mock import MagicMock

import pytest

from feed_sync.engine.boundary import FeedBoundaryLocator
from feed_sync.engine.errors import SyncError, SyncSignal
from feed_sync.sites.google_photos import GooglePhotosAdapter

LANDING = "https://photos.google.com/"


def _item(item_id):
    return f"https://photos.google.com/photo/{item_id}"


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now

    def wait(self, seconds):
        self.now += seconds


def _driver(clock):
    driver = MagicMock()
    driver.wait.side_effect = clock.wait
    return driver


def _locator(driver, clock, **kwargs):
    kwargs.setdefault("stable_probes", 2)
    return FeedBoundaryLocator(driver, GooglePhotosAdapter(), clock=clock, **kwargs)


def test_locate_newest_reads_focused_link():
    clock = FakeClock()
    driver = _driver(clock)
    driver.active_element_attributes.side_effect = [
        {},
        {"href": "/settings"},
        {"href": "./photo/NEWEST", "aria-label": "Photo"},
    ]
    assert _locator(driver, clock).locate_newest() == "NEWEST"
    driver.press.assert_called_with("ArrowRight")


def test_locate_newest_times_out():
    clock = FakeClock()
    driver = _driver(clock)
    driver.active_element_attributes.return_value = {}
    with pytest.raises(SyncError) as exc:
        _locator(driver, clock, newest_timeout=10.0).locate_newest()
    assert exc.value.signal == SyncSignal.BOUNDARY_NOT_FOUND


def test_locate_newest_ignores_bare_prefix():
    clock = FakeClock()
    driver = _driver(clock)
    driver.active_element_attributes.side_effect = [{"href": "./photo/"}, {"href": "./photo/Z"}]
    assert _locator(driver, clock).locate_newest() == "Z"


def test_seek_oldest():
    clock = FakeClock()
    driver = _driver(clock)
    driver.screenshot.side_effect = [b"1", b"2", b"3", b"3", b"3"]
    driver.current_url.side_effect = [
        LANDING, _item("C"), _item("B"), _item("A"), _item("A"), _item("A"),
    ]
    assert _locator(driver, clock).locate_oldest_and_seek() == _item("A")
    assert driver.screenshot.call_count == 5
    keys = [c.args[0] for c in driver.press.call_args_list]
    assert "End" in keys and "PageDown" in keys
    # detail view opened exactly until it was seen
    assert keys.count("Enter") == 2


def test_scroll_never_settles():
    clock = FakeClock()
    driver = _driver(clock)
    counter = iter(range(10_000))
    driver.screenshot.side_effect = lambda: str(next(counter)).encode()
    with pytest.raises(SyncError) as exc:
        _locator(driver, clock, max_scroll_probes=20).locate_oldest_and_seek()
    assert exc.value.signal == SyncSignal.BOUNDARY_NOT_FOUND
    assert driver.screenshot.call_count == 20


def test_detail_view_never_opens():
    clock = FakeClock()
    driver = _driver(clock)
    driver.screenshot.return_value = b"same"
    driver.current_url.return_value = LANDING
    with pytest.raises(SyncError) as exc:
        _locator(driver, clock, max_seek_steps=15).locate_oldest_and_seek()
    assert exc.value.signal == SyncSignal.BOUNDARY_NOT_FOUND
    assert "never opened" in str(exc.value)
