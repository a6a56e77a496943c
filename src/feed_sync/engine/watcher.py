"""Staging-directory watcher: detects completion of the single in-flight download.

There is no completion callback from the page, so completion is inferred
from the staging directory alone:

- nothing but store-owned files → not started yet (start deadline applies)
- one file with an in-progress suffix → downloading (progress deadline applies,
  pushed back every time the file grows)
- one file without the suffix → done
- more than one file → the one-download-at-a-time assumption is broken (fatal)
"""
import logging
import os
import shutil
import time
from dataclasses import dataclass
from typing import Callable

from .errors import SyncError, SyncSignal
from .poll import BackoffPolicy, poll_until

log = logging.getLogger(__name__)

DEFAULT_PARTIAL_SUFFIXES = (".crdownload", ".part")


@dataclass
class _Progress:
    """Mutable bookkeeping for one await_completion() call."""
    deadline: float
    started: bool = False
    size: int = -1


class DownloadWatcher:
    """Poll ``staging_dir`` until exactly one completed artifact is present."""

    def __init__(
        self,
        staging_dir: str,
        *,
        is_reserved: Callable[[str], bool] = lambda name: False,
        partial_suffixes: tuple[str, ...] = DEFAULT_PARTIAL_SUFFIXES,
        tick: float = 0.5,
        start_timeout: float = 60.0,
        progress_timeout: float = 60.0,
        sleep: Callable[[float], object] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.staging_dir = staging_dir
        self._is_reserved = is_reserved
        self._partial_suffixes = tuple(partial_suffixes)
        self._tick = tick
        self._start_timeout = start_timeout
        self._progress_timeout = progress_timeout
        self._sleep = sleep
        self._clock = clock

    def staged_files(self) -> list[os.DirEntry]:
        """Non-directory entries of the staging dir, excluding store-owned files."""
        entries = []
        with os.scandir(self.staging_dir) as it:
            for entry in it:
                if entry.is_dir():
                    continue
                if self._is_reserved(entry.name):
                    continue
                entries.append(entry)
        return entries

    def is_partial(self, name: str) -> bool:
        return name.endswith(self._partial_suffixes)

    def clean(self) -> int:
        """Remove leftover files (not directories) from a previous, interrupted run."""
        removed = 0
        for entry in self.staged_files():
            os.remove(entry.path)
            removed += 1
        if removed:
            log.info(f"Removed {removed} stale file(s) from {self.staging_dir}")
        return removed

    def await_completion(self) -> str:
        """Block until the download finishes and return the completed file name.

        Raises SyncError with DOWNLOAD_NOT_STARTED, DOWNLOAD_STALLED or
        MULTIPLE_ARTIFACTS.
        """
        state = _Progress(deadline=self._clock() + self._start_timeout)
        result = poll_until(
            lambda: self._check(state),
            BackoffPolicy.fixed(self._tick),
            None,
            sleep=self._sleep,
            clock=self._clock,
            check_first=False,
        )
        return result.value

    def _check(self, state: _Progress) -> str | None:
        now = self._clock()
        if now > state.deadline:
            if not state.started:
                raise SyncError(SyncSignal.DOWNLOAD_NOT_STARTED,
                                f"downloading in {self.staging_dir!r} took too long to start")
            raise SyncError(SyncSignal.DOWNLOAD_STALLED,
                            f"hit deadline while downloading in {self.staging_dir!r} "
                            f"({state.size} bytes so far)")

        try:
            entries = self.staged_files()
            if not entries:
                return None
            if len(entries) > 1:
                names = sorted(e.name for e in entries)
                raise SyncError(SyncSignal.MULTIPLE_ARTIFACTS,
                                f"more than one file ({len(entries)}) in download dir "
                                f"{self.staging_dir!r}: {names}")
            entry = entries[0]
            size = entry.stat().st_size
        except FileNotFoundError:
            # renamed between listing and stat; next tick sees the new name
            return None

        if not state.started:
            state.started = True
            state.deadline = now + self._progress_timeout
            log.debug(f"Download started: {entry.name}")
        if size > state.size:
            state.deadline = now + self._progress_timeout
            state.size = size

        if self.is_partial(entry.name):
            return None
        log.debug(f"Download complete: {entry.name} ({size} bytes)")
        return entry.name

    def relocate(self, filename: str, item_id: str) -> str:
        """Move ``filename`` into ``<staging_dir>/<item_id>/`` and return the new path.

        Never overwrites. A second relocation of an already moved file
        returns the existing target. A staged file whose target already
        exists is the same item downloaded again after a crash before its
        commit: the staged copy is dropped and the existing target kept.
        A target that is not a regular file raises RELOCATION_CONFLICT.
        """
        if not item_id or item_id in (".", "..") or os.sep in item_id:
            raise SyncError(SyncSignal.RELOCATION_CONFLICT, f"unusable item id {item_id!r}")
        src = os.path.join(self.staging_dir, filename)
        new_dir = os.path.join(self.staging_dir, item_id)
        dst = os.path.join(new_dir, filename)

        if os.path.exists(new_dir) and not os.path.isdir(new_dir):
            raise SyncError(SyncSignal.RELOCATION_CONFLICT,
                            f"{new_dir} exists and is not a directory")
        if os.path.exists(dst) and not os.path.isfile(dst):
            raise SyncError(SyncSignal.RELOCATION_CONFLICT,
                            f"{dst} exists and is not a regular file")

        src_exists = os.path.isfile(src)
        dst_exists = os.path.isfile(dst)
        if dst_exists and not src_exists:
            log.info(f"{filename} already relocated to {new_dir}")
            return dst
        if dst_exists:
            log.warning(f"{dst} already present from an uncommitted earlier run, "
                        f"dropping the new copy")
            os.remove(src)
            return dst
        if not src_exists:
            raise SyncError(SyncSignal.RELOCATION_CONFLICT,
                            f"{src} vanished before it could be relocated")

        os.makedirs(new_dir, mode=0o700, exist_ok=True)
        shutil.move(src, dst)
        log.debug(f"Moved {filename} to {new_dir}")
        return dst
