"""Traversal scheduler: the state machine driving one sync run.

    LOCATING ──(no resume point)──> SEEKING ──> ITERATING <──> REFRESHING
        │                                          │
        └──(explicit start / sentinel)─────────────┘──> DONE | FAILED

Per item, ITERATING starts the download, waits for it, moves the file into
its per-item directory, commits the sentinel, hands the file to the
post-processor and steps the cursor one item newer. The sentinel is only
written after the file has been relocated, so a crash loses at most the
item in flight, and a restart resumes right after the last committed item.

End of feed: the newest item id captured at the start of the run is the
primary stop condition. A cursor that stops moving only ends the run
cleanly when no anchor is known; with a known, unmatched anchor it is a
navigation timeout.
"""
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from ..config import SyncConfig
from .boundary import FeedBoundaryLocator
from .errors import SyncError, SyncSignal
from .failure_bundle import BundleVerbosity, capture_failure_bundle, save_failure_bundle
from .latency import LatencyMonitor
from .nav_tap import NavigationTap
from .navigator import Direction, NavOutcome, Navigator
from .postprocess import run_postprocess
from .sentinel import SentinelStore
from .watcher import DownloadWatcher

log = logging.getLogger(__name__)


class RunState(Enum):
    LOCATING = "locating"
    SEEKING = "seeking"
    ITERATING = "iterating"
    REFRESHING = "refreshing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class RunReport:
    """Outcome of TraversalScheduler.run()."""
    status: RunState
    items: int = 0
    stop_reason: str = ""
    last_location: str | None = None
    anchor: str | None = None
    error: SyncError | None = None
    duration: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status is RunState.DONE


class _Stop(Exception):
    """Internal: the run reached a clean end."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class TraversalScheduler:
    """Drive one run from the first cursor position to DONE or FAILED."""

    def __init__(
        self,
        driver: Any,
        adapter: Any,
        *,
        store: SentinelStore,
        watcher: DownloadWatcher,
        navigator: Navigator,
        locator: FeedBoundaryLocator,
        config: SyncConfig | None = None,
        max_items: int = -1,
        start_url: str = "",
        postprocess_program: str = "",
        postprocess: Callable[[str, str], None] = run_postprocess,
        latency: LatencyMonitor | None = None,
        event_logger=None,
        bundle_verbosity: str = BundleVerbosity.OFF,
        bundle_dir: str = "data/logs/failures",
        clock: Callable[[], float] = time.monotonic,
    ):
        self._driver = driver
        self._adapter = adapter
        self._store = store
        self._watcher = watcher
        self._navigator = navigator
        self._locator = locator
        self._config = config or SyncConfig()
        self._max_items = max_items
        self._start_url = start_url
        self._program = postprocess_program
        self._postprocess = postprocess
        self._latency = latency or LatencyMonitor(window=self._config.latency_window)
        self._event_logger = event_logger
        self._bundle_verbosity = bundle_verbosity
        self._bundle_dir = bundle_dir
        self._clock = clock

        self.state = RunState.LOCATING
        self.transitions: list[RunState] = [RunState.LOCATING]
        self.items = 0
        self.anchor: str | None = None
        self.last_location: str | None = None

    @classmethod
    def build(cls, driver, adapter, download_dir: str,
              config: SyncConfig | None = None, **kwargs) -> "TraversalScheduler":
        """Wire the default collaborators for ``download_dir`` from ``config``."""
        config = config or SyncConfig()
        store = SentinelStore(download_dir, config.sentinel_name)
        watcher = DownloadWatcher(
            download_dir,
            is_reserved=store.owns,
            partial_suffixes=tuple(adapter.partial_suffixes),
            tick=config.tick,
            start_timeout=config.start_timeout,
            progress_timeout=config.progress_timeout,
        )
        navigator = Navigator(
            driver, adapter, NavigationTap(driver),
            ceiling=config.nav_ceiling,
            backoff_initial=config.nav_backoff_initial,
            backoff_cap=config.nav_backoff_cap,
        )
        locator = FeedBoundaryLocator(
            driver, adapter,
            tick=config.tick,
            newest_timeout=config.newest_timeout,
            scroll_pause=config.scroll_pause,
            stable_probes=config.scroll_stable_probes,
            max_scroll_probes=config.max_scroll_probes,
            max_seek_steps=config.max_seek_steps,
        )
        return cls(driver, adapter, store=store, watcher=watcher, navigator=navigator,
                   locator=locator, config=config, **kwargs)

    # ── Run ─────────────────────────────────────────────────────────────────

    def run(self) -> RunReport:
        start = self._clock()
        report = RunReport(status=RunState.DONE)
        if self._max_items == 0:
            report.stop_reason = "budget"
            return report

        try:
            self._watcher.clean()
            self._navigator.start()
            mode, resume_from = self._locate()
            self._log_run_start(mode, resume_from)
            if mode == "sentinel":
                self._resume_after(resume_from)
            elif mode == "seek":
                self._transition(RunState.SEEKING)
                self._locator.locate_oldest_and_seek()
            self._transition(RunState.ITERATING)
            self._iterate()
        except _Stop as stop:
            self._transition(RunState.DONE)
            report.stop_reason = stop.reason
        except SyncError as e:
            self._fail(e, report)
        except Exception as e:
            self._fail(SyncError(SyncSignal.DRIVER, f"{type(e).__name__}: {e}"), report)

        report.items = self.items
        report.last_location = self.last_location
        report.anchor = self.anchor
        report.duration = self._clock() - start
        if report.ok:
            log.info(f"Run done: {report.items} item(s), stop={report.stop_reason}, "
                     f"latency={self._latency.stats}")
        if self._event_logger:
            self._event_logger.log_run_end(
                status=report.status.value,
                stop_reason=report.stop_reason,
                items=report.items,
                last_location=report.last_location,
                error_signal=report.error.signal.value if report.error else None,
                duration=round(report.duration, 1),
                latency=self._latency.stats,
            )
        return report

    def _transition(self, new: RunState):
        if new is self.state:
            return
        log.debug(f"State {self.state.value} -> {new.value}")
        self.state = new
        self.transitions.append(new)

    def _fail(self, error: SyncError, report: RunReport):
        failed_in = self.state
        self._transition(RunState.FAILED)
        report.status = RunState.FAILED
        report.stop_reason = "error"
        report.error = error
        where = f" at {self.last_location}" if self.last_location else ""
        log.error(f"Run failed in {failed_in.value}{where}: "
                  f"[{error.signal.value}] {error}")
        if self._bundle_verbosity != BundleVerbosity.OFF:
            bundle = capture_failure_bundle(
                self._driver, error,
                site=getattr(self._adapter, "name", ""),
                state=failed_in.value,
                items_done=self.items,
                last_location=self.last_location or "",
                staging_dir=self._watcher.staging_dir,
                latency=self._latency.stats,
                verbosity=self._bundle_verbosity,
                screenshot_dir=self._bundle_dir,
            )
            path = save_failure_bundle(bundle, self._bundle_dir)
            if path:
                log.info(f"Failure bundle saved to {path}")

    def _log_run_start(self, mode: str, resume_from: str | None):
        if not self._event_logger:
            return
        self._event_logger.log_run_start(
            start_mode=mode,
            resume_from=resume_from,
            anchor=self.anchor,
            config={
                "max_items": self._max_items,
                "refresh_every": self._config.refresh_every,
                "latency_refresh_factor": self._config.latency_refresh_factor,
                "start_timeout": self._config.start_timeout,
                "progress_timeout": self._config.progress_timeout,
                "nav_ceiling": self._config.nav_ceiling,
            },
        )

    # ── LOCATING ────────────────────────────────────────────────────────────

    def _locate(self) -> tuple[str, str | None]:
        """Position the cursor on the first item to download.

        Returns ``(mode, resume_from)`` where mode is "start", "sentinel" or
        "seek" ("seek" means the oldest item still has to be found).
        """
        # also waits for the landing page to accept input
        self.anchor = self._locator.locate_newest()

        if self._start_url:
            status = self._driver.navigate(self._start_url)
            if status not in (None, 200):
                raise SyncError(SyncSignal.DRIVER,
                                f"unexpected {status} code loading start item {self._start_url}")
            self._driver.wait_ready()
            log.info(f"Starting at explicit item {self._start_url}")
            return "start", self._start_url

        sentinel = self._store.read()
        if not sentinel:
            return "seek", None

        status = self._driver.navigate(sentinel)
        if status == 200:
            self._driver.wait_ready()
            log.info(f"Resuming after {sentinel}")
            return "sentinel", sentinel

        log.warning(f"{sentinel} does not seem to exist anymore (status {status}). "
                    f"Removing {self._store.path}.")
        self._store.clear()
        status = self._driver.navigate(self._adapter.landing_url)
        if status != 200:
            raise SyncError(SyncSignal.DRIVER,
                            f"unexpected {status} code when restarting to "
                            f"{self._adapter.landing_url}")
        self._driver.wait_ready()
        return "seek", None

    def _resume_after(self, sentinel: str):
        """Step from the last committed item to the first one not yet downloaded."""
        self.last_location = sentinel
        if self._anchor_matched(sentinel):
            raise _Stop("up_to_date")
        outcome = self._navigator.advance(Direction.NEWER)
        if outcome is NavOutcome.EXHAUSTED:
            self._on_stall(sentinel)

    # ── ITERATING ───────────────────────────────────────────────────────────

    def _iterate(self):
        previous = None
        while True:
            location = self._driver.current_url()
            if location == previous:
                self._on_stall(location)
            previous = location

            item_start = self._clock()
            file_path = self._download(location)
            self._commit(location)
            self.items += 1
            self.last_location = location
            self._postprocess(self._program, file_path)
            download_duration = self._clock() - item_start
            log.info(f"[{self.items}] {self._adapter.item_id(location)} -> {file_path}")

            if self._budget_reached():
                self._log_item(location, file_path, download_duration, None)
                raise _Stop("budget")
            if self._anchor_matched(location):
                self._log_item(location, file_path, download_duration, None)
                raise _Stop("anchor")

            reason = self._refresh_reason()
            if reason:
                self._refresh(location, reason)

            nav_start = self._clock()
            outcome = self._navigator.advance(Direction.NEWER)
            nav_duration = self._clock() - nav_start
            self._latency.record(self._clock() - item_start)
            self._log_item(location, file_path, download_duration, nav_duration)
            if outcome is NavOutcome.EXHAUSTED:
                self._on_stall(location)

    def _download(self, location: str) -> str:
        item_id = self._adapter.item_id(location)
        if not item_id:
            raise SyncError(SyncSignal.DRIVER, f"no item id in location {location}")
        self._driver.press(self._adapter.key_download)
        filename = self._watcher.await_completion()
        return self._watcher.relocate(filename, item_id)

    def _commit(self, location: str):
        try:
            self._store.write(location)
        except SyncError as e:
            if e.signal is not SyncSignal.PERSISTENCE:
                raise
            log.warning(f"Sentinel write failed ({e}), retrying once")
            self._store.write(location)

    def _budget_reached(self) -> bool:
        return self._max_items > 0 and self.items >= self._max_items

    def _anchor_matched(self, location: str) -> bool:
        return self.anchor is not None and self._adapter.item_id(location) == self.anchor

    def _on_stall(self, location: str):
        """The cursor did not move past ``location``; decide how the run ends."""
        if self._anchor_matched(location):
            raise _Stop("anchor")
        if self.anchor is None:
            raise _Stop("exhausted")
        raise SyncError(SyncSignal.NAVIGATION_TIMEOUT,
                        f"error at {location}: cursor stopped moving before reaching "
                        f"the newest item {self.anchor}")

    def _log_item(self, location: str, file_path: str, download_duration: float,
                  nav_duration: float | None):
        if not self._event_logger:
            return
        self._event_logger.log_item_done(
            index=self.items,
            location=location,
            item_id=self._adapter.item_id(location),
            file_path=file_path,
            download_duration=round(download_duration, 2),
            nav_duration=round(nav_duration, 3) if nav_duration is not None else None,
            latency_ratio=round(self._latency.ratio, 2),
        )

    # ── REFRESHING ──────────────────────────────────────────────────────────

    def _refresh_reason(self) -> str:
        every = self._config.refresh_every
        if every > 0 and self.items % every == 0:
            return "batch"
        if self._latency.degraded(self._config.latency_refresh_factor):
            return "latency"
        return ""

    def _refresh(self, location: str, reason: str):
        """Reload the page in place to shed the state it accumulated."""
        self._transition(RunState.REFRESHING)
        start = self._clock()
        log.info(f"Refreshing session after {self.items} items ({reason}, "
                 f"latency={self._latency.stats})")
        self._driver.reload()
        self._driver.wait_ready()
        if self._driver.current_url() != location:
            status = self._driver.navigate(location)
            if status not in (None, 200):
                raise SyncError(SyncSignal.DRIVER,
                                f"unexpected {status} code returning to {location} after refresh")
            self._driver.wait_ready()
        stats = self._latency.stats
        self._latency.reset_baseline()
        if self._event_logger:
            self._event_logger.log_refresh(
                after_items=self.items,
                reason=reason,
                latency=stats,
                duration=round(self._clock() - start, 2),
            )
        self._transition(RunState.ITERATING)
