"""Tests for failure bundle capture and save."""
import json
import os
import tempfile
from unittest.mock import MagicMock

from feed_sync.engine.errors import SyncError, SyncSignal
from feed_sync.engine.failure_bundle import (
    BundleVerbosity,
    FailureBundle,
    capture_failure_bundle,
    save_failure_bundle,
)


def _make_driver(url="https://photos.google.com/photo/A", title="Photo - Google Photos"):
    driver = MagicMock()
    driver.current_url.return_value = url
    driver.evaluate.return_value = title
    driver.screenshot.return_value = b"\x89PNG fake"
    return driver


def _error():
    return SyncError(SyncSignal.DOWNLOAD_STALLED, "no progress for 60s")


def test_capture_minimal():
    """MINIMAL verbosity captures only the error and counters."""
    driver = _make_driver()
    bundle = capture_failure_bundle(
        driver, _error(),
        site="gphotos", state="iterating", items_done=7,
        last_location="https://photos.google.com/photo/Z",
        verbosity=BundleVerbosity.MINIMAL,
    )
    assert bundle.signal == "download_stalled"
    assert bundle.message == "no progress for 60s"
    assert bundle.items_done == 7
    assert bundle.page_url == ""
    assert bundle.screenshot_path == ""
    driver.current_url.assert_not_called()


def test_capture_standard_lists_staging_dir():
    """STANDARD adds page info and the staging listing, skipping directories."""
    with tempfile.TemporaryDirectory() as tmpdir:
        with open(os.path.join(tmpdir, "IMG_1.jpg.crdownload"), "wb") as f:
            f.write(b"12345")
        os.mkdir(os.path.join(tmpdir, "ITEM"))
        bundle = capture_failure_bundle(
            _make_driver(), _error(),
            site="gphotos", staging_dir=tmpdir,
            verbosity=BundleVerbosity.STANDARD,
        )
        assert bundle.page_url == "https://photos.google.com/photo/A"
        assert bundle.page_title == "Photo - Google Photos"
        assert bundle.staged_files == {"IMG_1.jpg.crdownload": 5}


def test_capture_full_writes_screenshot():
    with tempfile.TemporaryDirectory() as tmpdir:
        bundle = capture_failure_bundle(
            _make_driver(), _error(),
            verbosity=BundleVerbosity.FULL, screenshot_dir=tmpdir,
        )
        assert bundle.screenshot_path.startswith(tmpdir)
        with open(bundle.screenshot_path, "rb") as f:
            assert f.read() == b"\x89PNG fake"


def test_capture_never_raises():
    """A dead page does not break capture."""
    driver = MagicMock()
    driver.current_url.side_effect = RuntimeError("target closed")
    driver.evaluate.side_effect = RuntimeError("target closed")
    driver.screenshot.side_effect = RuntimeError("target closed")
    with tempfile.TemporaryDirectory() as tmpdir:
        bundle = capture_failure_bundle(
            driver, _error(),
            staging_dir=os.path.join(tmpdir, "missing"),
            verbosity=BundleVerbosity.FULL, screenshot_dir=tmpdir,
        )
    assert bundle.page_url == ""
    assert bundle.screenshot_path == ""
    assert bundle.site == "unknown"


def test_capture_plain_exception():
    bundle = capture_failure_bundle(_make_driver(), ValueError("bad"),
                                    verbosity=BundleVerbosity.MINIMAL)
    assert bundle.signal == "ValueError"


def test_save_and_load():
    """Bundle round-trips through JSON under <base>/<site>/."""
    with tempfile.TemporaryDirectory() as tmpdir:
        bundle = FailureBundle(
            signal="navigation_timeout", message="stuck", site="gphotos",
            state="iterating", items_done=3,
        )
        path = save_failure_bundle(bundle, base_dir=tmpdir)
        assert path.startswith(os.path.join(tmpdir, "gphotos"))
        assert path.endswith("_navigation_timeout.json")
        with open(path) as f:
            data = json.load(f)
        assert data["message"] == "stuck"
        assert data["items_done"] == 3


def test_save_failure_returns_empty():
    with tempfile.TemporaryDirectory() as tmpdir:
        blocker = os.path.join(tmpdir, "file")
        with open(blocker, "w") as f:
            f.write("x")
        bundle = FailureBundle(signal="driver", message="", site="gphotos", state="locating")
        assert save_failure_bundle(bundle, base_dir=blocker) == ""
