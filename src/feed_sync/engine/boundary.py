"""Feed boundaries: the newest item (run anchor) and the oldest item (traversal start).

Neither end of the feed announces itself. The newest item is read off the
landing grid, where the first focusable thumbnail links to it. The oldest
item is reached by scrolling until the screen stops changing and then
stepping through detail views until the address stops changing. Both
"stopped changing" tests require several identical probes in a row, since a
single repeat is often just a frame that has not re-rendered yet.
"""
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

from .errors import SyncError, SyncSignal
from .poll import BackoffPolicy, poll_until

log = logging.getLogger(__name__)


@dataclass
class _Stability:
    previous: Any = None
    repeats: int = 0
    opened: bool = False

    def observe(self, value) -> int:
        """Record ``value``; return how many times in a row it repeated."""
        if self.previous is not None and value == self.previous:
            self.repeats += 1
        else:
            self.repeats = 0
        self.previous = value
        return self.repeats


class FeedBoundaryLocator:
    """Find the newest item id and drive the page to the oldest item."""

    def __init__(
        self,
        driver: Any,
        adapter: Any,
        *,
        tick: float = 0.5,
        newest_timeout: float = 120.0,
        scroll_pause: float = 5.0,
        stable_probes: int = 2,
        max_scroll_probes: int = 5000,
        max_seek_steps: int = 200,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._driver = driver
        self._adapter = adapter
        self._tick = tick
        self._newest_timeout = newest_timeout
        self._scroll_pause = scroll_pause
        self._stable_probes = max(1, stable_probes)
        self._max_scroll_probes = max_scroll_probes
        self._max_seek_steps = max_seek_steps
        self._clock = clock

    def locate_newest(self) -> str:
        """Return the id of the most recent item in the feed.

        Also serves as the wait for the landing page: it only succeeds once
        the grid accepts keyboard focus.
        """
        prefix = self._adapter.item_href_prefix

        def probe():
            self._driver.press(self._adapter.key_select)
            self._driver.wait(self._tick)
            href = self._driver.active_element_attributes().get("href", "")
            if not href.startswith(prefix):
                return None
            return href[len(prefix):] or None

        result = poll_until(probe, BackoffPolicy.fixed(self._tick), self._newest_timeout,
                            sleep=self._driver.wait, clock=self._clock)
        if result.timed_out:
            raise SyncError(SyncSignal.BOUNDARY_NOT_FOUND,
                            f"no item link focused on the landing page after "
                            f"{result.elapsed:.0f}s")
        log.debug(f"Page loaded, most recent item in the feed is: {result.value}")
        return result.value

    def locate_oldest_and_seek(self) -> str:
        """Drive the page to the detail view of the oldest item; return its address."""
        self._scroll_to_end()
        return self._seek_last()

    def _scroll_to_end(self):
        state = _Stability()

        def probe():
            for key in self._adapter.bulk_scroll_keys:
                self._driver.press(key)
            shot = self._driver.screenshot()
            return state.observe(shot) >= self._stable_probes

        result = poll_until(probe, BackoffPolicy.fixed(self._scroll_pause), None,
                            max_attempts=self._max_scroll_probes,
                            sleep=self._driver.wait, clock=self._clock)
        if result.timed_out:
            raise SyncError(SyncSignal.BOUNDARY_NOT_FOUND,
                            f"page never stopped scrolling after {result.attempts} probes")
        log.debug(f"Successfully jumped to the end ({result.attempts} probes)")

    def _seek_last(self) -> str:
        state = _Stability()

        def probe():
            self._driver.press(self._adapter.key_older)
            self._driver.wait(self._tick)
            if not state.opened:
                self._driver.press(self._adapter.key_open)
                self._driver.wait(self._tick)
            location = self._driver.current_url()
            if not state.opened:
                if self._adapter.is_item_view(location):
                    state.opened = True
                    log.info(f"Seeking the oldest item, detail view opened at {location}")
                return None
            if state.observe(location) >= self._stable_probes:
                return location
            return None

        result = poll_until(probe, BackoffPolicy.fixed(0.0), None,
                            max_attempts=self._max_seek_steps,
                            sleep=self._driver.wait, clock=self._clock)
        if result.timed_out:
            where = "detail view never opened" if not state.opened else "address kept changing"
            raise SyncError(SyncSignal.BOUNDARY_NOT_FOUND,
                            f"could not settle on the oldest item: {where} "
                            f"after {result.attempts} steps")
        log.info(f"Oldest item reached: {result.value}")
        return result.value
