"""Cursor movement: step the detail view one item newer or older.

A move is a key press followed by an event-driven wait. The NavigationTap is
armed before the key goes out; the wait then ends on whichever comes first:
the tap's "navigated within document" notification, or the page address
changing. The address is polled with exponential backoff so a fast page is
noticed within milliseconds while a slow one is not hammered.

A move that never lands within the ceiling is reported as EXHAUSTED, not
raised: at the end of the feed the key press simply does nothing, and only
the caller knows whether that is expected.
"""
import logging
import time
from enum import Enum
from typing import Any, Callable

from .nav_tap import NavigationTap
from .poll import BackoffPolicy, poll_until

log = logging.getLogger(__name__)


class Direction(Enum):
    NEWER = "newer"
    OLDER = "older"


class NavOutcome(Enum):
    MOVED = "moved"
    EXHAUSTED = "exhausted"


class Navigator:
    """Advance/retreat the feed cursor by one item."""

    def __init__(
        self,
        driver: Any,
        adapter: Any,
        tap: NavigationTap,
        *,
        ceiling: float = 300.0,
        backoff_initial: float = 0.01,
        backoff_cap: float = 0.5,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._driver = driver
        self._adapter = adapter
        self._tap = tap
        self._ceiling = ceiling
        self._policy = BackoffPolicy.exponential(backoff_initial, backoff_cap)
        self._clock = clock
        self.last_elapsed = 0.0

    def start(self):
        """Subscribe the tap to the page event stream; call once per run."""
        self._tap.start()

    def _key_for(self, direction: Direction) -> str:
        if direction is Direction.NEWER:
            return self._adapter.key_newer
        return self._adapter.key_older

    def advance(self, direction: Direction = Direction.NEWER) -> NavOutcome:
        """Move one item in ``direction`` and wait for the page to settle on it."""
        before = self._driver.current_url()
        self._tap.arm()
        try:
            self._driver.press(self._key_for(direction))
            result = poll_until(
                lambda: self._arrived(before),
                self._policy,
                self._ceiling,
                sleep=self._driver.wait,
                clock=self._clock,
            )
        finally:
            self._tap.disarm()

        self.last_elapsed = result.elapsed
        if result.timed_out:
            log.info(f"No movement {direction.value} from {before} "
                     f"after {result.elapsed:.1f}s")
            return NavOutcome.EXHAUSTED
        log.debug(f"Moved {direction.value} from {before} via {result.value} "
                  f"in {result.elapsed:.3f}s ({result.attempts} polls)")
        return NavOutcome.MOVED

    def retreat(self) -> NavOutcome:
        return self.advance(Direction.OLDER)

    def _arrived(self, before: str) -> str | None:
        if self._tap.signal_ready():
            return "signal"
        if self._driver.current_url() != before:
            return "address"
        return None
