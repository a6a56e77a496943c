"""Deadline-bounded polling shared by every wait in the engine.

All waits (download completion, navigation, boundary seeking, login) are
expressed as a predicate polled under a BackoffPolicy until it yields a
value, the deadline passes, or the attempt budget runs out. The sleep
function is injectable: waits that need page events delivered pass the
driver's ``wait`` (which pumps the Playwright event loop), plain filesystem
waits use ``time.sleep``.
"""
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Iterator

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class BackoffPolicy:
    """Sleep schedule between polls: ``initial`` multiplied by ``factor`` up to ``cap``."""
    initial: float
    factor: float = 1.0
    cap: float | None = None

    @classmethod
    def fixed(cls, interval: float) -> "BackoffPolicy":
        return cls(initial=interval, factor=1.0, cap=interval)

    @classmethod
    def exponential(cls, initial: float, cap: float, factor: float = 2.0) -> "BackoffPolicy":
        return cls(initial=initial, factor=factor, cap=cap)

    def intervals(self) -> Iterator[float]:
        """Yield successive sleep intervals forever."""
        interval = max(self.initial, 0.0)
        while True:
            if self.cap is not None:
                interval = min(interval, self.cap)
            yield interval
            interval = interval * self.factor


@dataclass
class PollResult:
    """Result from poll_until()."""
    value: Any = None
    timed_out: bool = False
    elapsed: float = 0.0
    attempts: int = 0


def poll_until(
    predicate: Callable[[], Any],
    policy: BackoffPolicy,
    timeout: float | None,
    *,
    max_attempts: int | None = None,
    sleep: Callable[[float], Any] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
    check_first: bool = True,
) -> PollResult:
    """Call ``predicate`` until it returns a truthy value.

    Gives up (``timed_out=True``) once ``timeout`` seconds have elapsed or
    ``max_attempts`` predicate calls returned nothing. ``timeout=None``
    polls without an outer deadline; the predicate then enforces its own
    deadlines by raising. Exceptions raised by the predicate propagate.

    With ``check_first=False`` the first sleep happens before the first
    check, for callers that have just fired an action and know the page
    cannot have reacted yet.

    When the deadline passes, one last check catches a value delivered
    during the final sleep.
    """
    start = clock()
    deadline = None if timeout is None else start + timeout
    attempts = 0
    intervals = policy.intervals()

    def _done(value):
        return PollResult(value=value, timed_out=False,
                          elapsed=clock() - start, attempts=attempts)

    if not check_first:
        sleep(_cap_to_deadline(next(intervals), deadline, clock))

    while deadline is None or clock() < deadline:
        attempts += 1
        value = predicate()
        if value:
            return _done(value)
        if max_attempts is not None and attempts >= max_attempts:
            break
        sleep(_cap_to_deadline(next(intervals), deadline, clock))
    else:
        attempts += 1
        value = predicate()
        if value:
            return _done(value)

    log.debug(f"poll_until gave up after {attempts} attempts ({clock() - start:.2f}s)")
    return PollResult(value=None, timed_out=True,
                      elapsed=clock() - start, attempts=attempts)


def _cap_to_deadline(interval: float, deadline: float | None,
                     clock: Callable[[], float]) -> float:
    if deadline is None:
        return interval
    return max(0.0, min(interval, deadline - clock()))
