"""Sign-in wait: open the landing page and poll until the session is authenticated."""
import logging
import time
from typing import Any, Callable

from .errors import SyncError, SyncSignal
from .poll import BackoffPolicy, poll_until

log = logging.getLogger(__name__)


def wait_for_login(
    driver: Any,
    adapter: Any,
    *,
    timeout: float = 120.0,
    interval: float = 1.0,
    headless: bool = False,
    clock: Callable[[], float] = time.monotonic,
) -> str:
    """Navigate to the adapter's landing page and wait for a signed-in address.

    An unauthenticated session is redirected elsewhere (e.g. a marketing
    page); the user signs in by hand in the visible browser meanwhile.
    Headless sessions cannot be signed into, so they fail immediately.
    Returns the signed-in address.
    """
    log.debug("pre-navigate")
    driver.navigate(adapter.landing_url)

    def probe():
        location = driver.current_url()
        if adapter.is_signed_in(location):
            return location
        if headless:
            raise SyncError(SyncSignal.AUTH_TIMEOUT,
                            f"authentication not possible in headless mode (at {location})")
        log.debug(f"Not yet authenticated, at: {location}")
        return None

    result = poll_until(probe, BackoffPolicy.fixed(interval), timeout,
                        sleep=driver.wait, clock=clock)
    if result.timed_out:
        raise SyncError(SyncSignal.AUTH_TIMEOUT, "timeout waiting for authentication")
    log.debug("post-navigate")
    return result.value
