"""Navigation listener: turns the page event stream into a one-shot signal.

The tap stays subscribed for the whole run, but only forwards a
"navigation complete" notification while the Navigator has armed it.
Everything else is observed and dropped so nothing accumulates between
moves. The rendezvous channel holds at most one notification, so one that
arrives before the Navigator starts waiting is kept until it polls; a
second one arriving before the first is consumed is dropped.
"""
import logging
import queue
import threading
from dataclasses import dataclass
from typing import Any

from ..driver import PageEvent, PageEventKind

log = logging.getLogger(__name__)

# Expected on every move but carry no "item changed" meaning.
_IGNORED_KINDS = frozenset({
    PageEventKind.FRAME_NAVIGATED,
    PageEventKind.LOAD,
    PageEventKind.DOWNLOAD_WILL_BEGIN,
    PageEventKind.DOWNLOAD_PROGRESS,
})


@dataclass
class TapStats:
    """Counters for debugging listener behavior."""
    seen: int = 0
    forwarded: int = 0
    dropped: int = 0


class NavigationTap:
    """Forward a single navigation notification per armed window.

    ``listening`` is set by arm() before the move key is pressed, so a fast
    page cannot complete the navigation unobserved. The flag and the stats
    counters are guarded by one lock.
    """

    def __init__(self, driver: Any):
        self._driver = driver
        self._lock = threading.Lock()
        self._listening = False
        self._channel: queue.Queue[PageEvent] = queue.Queue(maxsize=1)
        self._subscribed = False
        self.stats = TapStats()

    def start(self):
        """Subscribe to the driver's event stream (idempotent)."""
        if self._subscribed:
            return
        self._driver.subscribe(self._on_event)
        self._subscribed = True
        log.debug("NavigationTap started")

    def arm(self):
        """Open a listening window and discard any stale notification."""
        with self._lock:
            self._drain()
            self._listening = True

    def disarm(self):
        """Close the listening window."""
        with self._lock:
            self._listening = False
            self._drain()

    @property
    def armed(self) -> bool:
        with self._lock:
            return self._listening

    def signal_ready(self) -> bool:
        """Non-blocking: consume the pending notification, if any."""
        try:
            event = self._channel.get_nowait()
        except queue.Empty:
            return False
        log.debug(f"Navigation signal received ({event.url})")
        return True

    def await_signal(self, timeout: float) -> bool:
        """Block up to ``timeout`` seconds for the notification.

        Only usable when events are delivered from another thread; with the
        Playwright sync API, poll signal_ready() between driver.wait() calls.
        """
        try:
            self._channel.get(timeout=max(timeout, 0.0))
        except queue.Empty:
            return False
        return True

    def _on_event(self, event: PageEvent):
        """Route one page event. Must never raise into the driver's dispatch loop."""
        try:
            with self._lock:
                self.stats.seen += 1
                if not self._listening:
                    self.stats.dropped += 1
                    return

                kind = event.kind
                if kind is PageEventKind.NAVIGATED_WITHIN_DOCUMENT:
                    self._forward(event)
                elif kind in _IGNORED_KINDS:
                    self.stats.dropped += 1
                else:
                    self.stats.dropped += 1
                    log.debug(f"NavigationTap: ignoring unexpected event {kind}")
        except Exception as e:
            log.debug(f"NavigationTap listener error: {e}")

    def _forward(self, event: PageEvent):
        # caller holds self._lock
        try:
            self._channel.put_nowait(event)
            self.stats.forwarded += 1
        except queue.Full:
            self.stats.dropped += 1
            log.debug("NavigationTap: notification already pending, dropping duplicate")

    def _drain(self):
        while True:
            try:
                self._channel.get_nowait()
            except queue.Empty:
                return
