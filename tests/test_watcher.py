"""Tests for DownloadWatcher: completion detection, deadlines and relocation."""
import os
import tempfile

import pytest

from feed_sync.engine.errors import SyncError, SyncSignal
from feed_sync.engine.sentinel import SentinelStore
from feed_sync.engine.watcher import DownloadWatcher


class Timeline:
    """Fake clock whose sleep() applies scheduled filesystem actions."""

    def __init__(self):
        self.now = 0.0
        self._events = []

    def __call__(self):
        return self.now

    def at(self, when, action):
        self._events.append((when, action))
        self._events.sort(key=lambda e: e[0])

    def sleep(self, seconds):
        self.now += seconds
        while self._events and self._events[0][0] <= self.now:
            _, action = self._events.pop(0)
            action()


def _write(path, size):
    def action():
        with open(path, "wb") as f:
            f.write(b"\0" * size)
    return action


def _rename(src, dst):
    return lambda: os.rename(src, dst)


def _watcher(tmpdir, timeline, **kwargs):
    store = SentinelStore(tmpdir)
    kwargs.setdefault("partial_suffixes", (".part", ".crdownload"))
    return DownloadWatcher(
        tmpdir,
        is_reserved=store.owns,
        tick=0.5,
        start_timeout=60,
        progress_timeout=60,
        sleep=timeline.sleep,
        clock=timeline,
        **kwargs,
    )


def test_detects_completion_after_growth():
    with tempfile.TemporaryDirectory() as tmpdir:
        tl = Timeline()
        part = os.path.join(tmpdir, "x.part")
        tl.at(2.1, _write(part, 256))
        tl.at(2.6, _write(part, 512))
        tl.at(3.1, _write(part, 1024))
        tl.at(3.6, _rename(part, os.path.join(tmpdir, "x")))
        name = _watcher(tmpdir, tl).await_completion()
        assert name == "x"
        assert tl.now <= 120


def test_ignores_store_files_and_directories():
    with tempfile.TemporaryDirectory() as tmpdir:
        SentinelStore(tmpdir).write("https://photos.google.com/photo/OLD")
        os.mkdir(os.path.join(tmpdir, "OLD"))
        tl = Timeline()
        tl.at(1.0, _write(os.path.join(tmpdir, "IMG_1.jpg"), 10))
        assert _watcher(tmpdir, tl).await_completion() == "IMG_1.jpg"


def test_not_started_times_out():
    with tempfile.TemporaryDirectory() as tmpdir:
        tl = Timeline()
        with pytest.raises(SyncError) as exc:
            _watcher(tmpdir, tl).await_completion()
        assert exc.value.signal == SyncSignal.DOWNLOAD_NOT_STARTED
        assert 60 < tl.now <= 61


def test_stalled_download_times_out():
    with tempfile.TemporaryDirectory() as tmpdir:
        tl = Timeline()
        part = os.path.join(tmpdir, "big.crdownload")
        tl.at(1.0, _write(part, 100))
        tl.at(20.0, _write(part, 200))
        with pytest.raises(SyncError) as exc:
            _watcher(tmpdir, tl).await_completion()
        assert exc.value.signal == SyncSignal.DOWNLOAD_STALLED
        # deadline was pushed back to 20 + 60 by the last growth
        assert 80 < tl.now <= 81


def test_steady_growth_never_times_out():
    with tempfile.TemporaryDirectory() as tmpdir:
        tl = Timeline()
        part = os.path.join(tmpdir, "video.part")
        for step in range(10):
            tl.at(1.0 + step * 50, _write(part, 1 + step))
        tl.at(500.0, _rename(part, os.path.join(tmpdir, "video.mp4")))
        assert _watcher(tmpdir, tl).await_completion() == "video.mp4"
        assert tl.now > 60


def test_multiple_artifacts_is_fatal():
    with tempfile.TemporaryDirectory() as tmpdir:
        tl = Timeline()
        tl.at(1.0, _write(os.path.join(tmpdir, "a.jpg"), 1))
        tl.at(1.0, _write(os.path.join(tmpdir, "b.jpg"), 1))
        with pytest.raises(SyncError) as exc:
            _watcher(tmpdir, tl).await_completion()
        assert exc.value.signal == SyncSignal.MULTIPLE_ARTIFACTS
        assert exc.value.is_invariant_violation


def test_is_partial():
    w = DownloadWatcher("/tmp", partial_suffixes=(".crdownload",))
    assert w.is_partial("a.jpg.crdownload")
    assert not w.is_partial("a.jpg")


def test_clean_removes_files_only():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = SentinelStore(tmpdir)
        store.write("https://photos.google.com/photo/X")
        os.mkdir(os.path.join(tmpdir, "X"))
        for name in ("stale.crdownload", "stale.jpg"):
            with open(os.path.join(tmpdir, name), "w") as f:
                f.write("x")
        w = DownloadWatcher(tmpdir, is_reserved=store.owns)
        assert w.clean() == 2
        assert sorted(os.listdir(tmpdir)) == [".lastdone", "X"]
        assert w.clean() == 0


def test_relocate_moves_into_item_dir():
    with tempfile.TemporaryDirectory() as tmpdir:
        with open(os.path.join(tmpdir, "IMG_1.jpg"), "w") as f:
            f.write("pixels")
        w = DownloadWatcher(tmpdir)
        dst = w.relocate("IMG_1.jpg", "AF1Qip")
        assert dst == os.path.join(tmpdir, "AF1Qip", "IMG_1.jpg")
        assert os.path.isfile(dst)
        assert not os.path.exists(os.path.join(tmpdir, "IMG_1.jpg"))


def test_relocate_is_idempotent():
    with tempfile.TemporaryDirectory() as tmpdir:
        with open(os.path.join(tmpdir, "IMG_1.jpg"), "w") as f:
            f.write("pixels")
        w = DownloadWatcher(tmpdir)
        first = w.relocate("IMG_1.jpg", "ID1")
        assert w.relocate("IMG_1.jpg", "ID1") == first


def test_relocate_same_item_again_keeps_existing_file():
    """A re-download of an item relocated but never committed is dropped."""
    with tempfile.TemporaryDirectory() as tmpdir:
        os.mkdir(os.path.join(tmpdir, "ID1"))
        with open(os.path.join(tmpdir, "ID1", "IMG_1.jpg"), "w") as f:
            f.write("old")
        with open(os.path.join(tmpdir, "IMG_1.jpg"), "w") as f:
            f.write("new")
        w = DownloadWatcher(tmpdir)
        dst = w.relocate("IMG_1.jpg", "ID1")
        assert dst == os.path.join(tmpdir, "ID1", "IMG_1.jpg")
        with open(dst) as f:
            assert f.read() == "old"
        assert not os.path.exists(os.path.join(tmpdir, "IMG_1.jpg"))
        assert w.staged_files() == []


def test_relocate_target_not_a_file():
    with tempfile.TemporaryDirectory() as tmpdir:
        os.makedirs(os.path.join(tmpdir, "ID1", "IMG_1.jpg"))
        with open(os.path.join(tmpdir, "IMG_1.jpg"), "w") as f:
            f.write("new")
        with pytest.raises(SyncError) as exc:
            DownloadWatcher(tmpdir).relocate("IMG_1.jpg", "ID1")
        assert exc.value.signal == SyncSignal.RELOCATION_CONFLICT
        assert os.path.isfile(os.path.join(tmpdir, "IMG_1.jpg"))


def test_relocate_item_dir_is_a_file():
    with tempfile.TemporaryDirectory() as tmpdir:
        with open(os.path.join(tmpdir, "ID1"), "w") as f:
            f.write("not a dir")
        with open(os.path.join(tmpdir, "IMG_1.jpg"), "w") as f:
            f.write("new")
        with pytest.raises(SyncError) as exc:
            DownloadWatcher(tmpdir).relocate("IMG_1.jpg", "ID1")
        assert exc.value.signal == SyncSignal.RELOCATION_CONFLICT


def test_relocate_missing_source():
    with tempfile.TemporaryDirectory() as tmpdir:
        with pytest.raises(SyncError) as exc:
            DownloadWatcher(tmpdir).relocate("gone.jpg", "ID1")
        assert exc.value.signal == SyncSignal.RELOCATION_CONFLICT


@pytest.mark.parametrize("bad_id", ["", ".", "..", "a/b"])
def test_relocate_rejects_unusable_ids(bad_id):
    with tempfile.TemporaryDirectory() as tmpdir:
        with open(os.path.join(tmpdir, "IMG_1.jpg"), "w") as f:
            f.write("x")
        with pytest.raises(SyncError):
            DownloadWatcher(tmpdir).relocate("IMG_1.jpg", bad_id)
