"""PageDriver implementation over a Playwright page plus a CDP session.

Playwright's sync API dispatches events only while one of its calls is
running, so ``wait()`` uses ``page.wait_for_timeout()`` rather than
``time.sleep()``; the NavigationTap callback fires from inside it.
"""
import logging
from typing import Callable

from ..driver import PageEvent, PageEventKind

log = logging.getLogger(__name__)

# CDP event name -> normalized kind
_CDP_EVENTS = {
    "Page.navigatedWithinDocument": PageEventKind.NAVIGATED_WITHIN_DOCUMENT,
    "Page.frameNavigated": PageEventKind.FRAME_NAVIGATED,
    "Page.loadEventFired": PageEventKind.LOAD,
    "Page.downloadWillBegin": PageEventKind.DOWNLOAD_WILL_BEGIN,
    "Page.downloadProgress": PageEventKind.DOWNLOAD_PROGRESS,
}

_ACTIVE_ELEMENT_ATTRS_JS = """() => {
    const el = document.activeElement;
    const out = {};
    if (!el || !el.attributes) return out;
    for (const a of el.attributes) out[a.name] = a.value;
    return out;
}"""


def _event_url(params) -> str:
    if not isinstance(params, dict):
        return ""
    frame = params.get("frame")
    if isinstance(frame, dict):
        return frame.get("url", "")
    return params.get("url", "")


class PlaywrightDriver:
    """Drive a Playwright ``Page``; subscribe to page events over CDP."""

    def __init__(self, page, context, *, nav_timeout_ms: int = 60000):
        self._page = page
        self._context = context
        self._nav_timeout_ms = nav_timeout_ms
        self._cdp = None
        self._subscribers: list[Callable[[PageEvent], None]] = []

    @property
    def page(self):
        return self._page

    def _cdp_session(self):
        if self._cdp is None:
            self._cdp = self._context.new_cdp_session(self._page)
            self._cdp.send("Page.enable")
        return self._cdp

    def navigate(self, url: str) -> int | None:
        response = self._page.goto(url, wait_until="load", timeout=self._nav_timeout_ms)
        return response.status if response is not None else None

    def press(self, key: str) -> None:
        log.debug(f"Key: {key}")
        self._page.keyboard.press(key)

    def current_url(self) -> str:
        return self._page.url

    def active_element_attributes(self) -> dict[str, str]:
        attrs = self._page.evaluate(_ACTIVE_ELEMENT_ATTRS_JS)
        return attrs if isinstance(attrs, dict) else {}

    def screenshot(self) -> bytes:
        return self._page.screenshot(full_page=False)

    def evaluate(self, script: str):
        return self._page.evaluate(script)

    def subscribe(self, callback: Callable[[PageEvent], None]) -> None:
        cdp = self._cdp_session()
        if not self._subscribers:
            for name in _CDP_EVENTS:
                cdp.on(name, self._make_handler(name))
        self._subscribers.append(callback)

    def _make_handler(self, name: str):
        kind = _CDP_EVENTS.get(name, PageEventKind.OTHER)

        def handler(params=None):
            event = PageEvent(kind=kind, url=_event_url(params))
            for callback in list(self._subscribers):
                callback(event)

        return handler

    def reload(self) -> None:
        self._page.reload(wait_until="load", timeout=self._nav_timeout_ms)

    def wait_ready(self) -> None:
        self._page.wait_for_selector("body", state="attached", timeout=self._nav_timeout_ms)

    def wait(self, seconds: float) -> None:
        self._page.wait_for_timeout(max(seconds, 0.0) * 1000)

    def set_download_dir(self, path: str) -> None:
        """Let the browser save downloads straight into ``path``.

        Uses the browser-level CDP domain when the context exposes a
        browser, the (deprecated, still honored) page-level one otherwise.
        """
        params = {"behavior": "allow", "downloadPath": path}
        browser = getattr(self._context, "browser", None)
        if browser is not None:
            try:
                session = browser.new_browser_cdp_session()
                session.send("Browser.setDownloadBehavior", params)
                return
            except Exception as e:
                log.debug(f"Browser.setDownloadBehavior failed ({e}), using page domain")
        self._cdp_session().send("Page.setDownloadBehavior", params)

    def close(self):
        if self._cdp is not None:
            try:
                self._cdp.detach()
            except Exception:
                pass
            self._cdp = None
