"""Browser session lifecycle for a sync run.

The engine never auto-opens a browser; this module is the helper the CLI
uses to get one. It prefers system Chrome over CDP and falls back to
Playwright's bundled Chromium. Either way the profile directory persists
sign-in state and downloads go straight into the download root.
"""
import logging
import os
import tempfile
from contextlib import contextmanager
from typing import Any

from .driver import PlaywrightDriver

log = logging.getLogger(__name__)

PROFILE_DIR_NAME = "feed-sync"


def prepare_profile_dir(dev: bool) -> str:
    """Return the browser profile directory for this run.

    Dev mode reuses ``<tmp>/feed-sync`` so sign-in survives between runs;
    otherwise every run gets a fresh temporary profile.
    """
    if dev:
        path = os.path.join(tempfile.gettempdir(), PROFILE_DIR_NAME)
        os.makedirs(path, mode=0o700, exist_ok=True)
        return path
    return tempfile.mkdtemp(prefix=PROFILE_DIR_NAME + "-")


@contextmanager
def open_session(
    playwright: Any,
    *,
    download_dir: str,
    user_data_dir: str,
    headed: bool = True,
    cdp_port: int = 9222,
    prefer_system_chrome: bool = True,
):
    """Open a browser and yield a PlaywrightDriver whose downloads land in ``download_dir``.

    Tries CDP with system Chrome first, falls back to Playwright Chromium.
    """
    from .chrome import find_system_chrome, kill_stale_cdp, launch_cdp_browser, terminate_process

    chrome_proc = None
    browser = None
    context = None

    chrome_path = find_system_chrome() if prefer_system_chrome else None
    if chrome_path:
        try:
            kill_stale_cdp(port=cdp_port)
            browser, chrome_proc = launch_cdp_browser(
                playwright, chrome_path,
                headed=headed, port=cdp_port,
                user_data_dir=user_data_dir,
            )
            context = browser.contexts[0] if browser.contexts else browser.new_context(
                viewport={"width": 1920, "height": 1080},
            )
            log.info("Using CDP mode (system Chrome)")
        except Exception as e:
            log.warning(f"CDP launch failed ({e}), falling back to Playwright Chromium")
            if browser is not None:
                try:
                    browser.close()
                except Exception:
                    pass
            if chrome_proc is not None:
                terminate_process(chrome_proc)
            browser = chrome_proc = context = None

    if context is None:
        context = playwright.chromium.launch_persistent_context(
            user_data_dir=user_data_dir,
            headless=not headed,
            viewport={"width": 1920, "height": 1080},
            accept_downloads=True,
            args=["--disable-gpu"] if not headed else [],
        )
        log.info("Using Playwright Chromium mode")

    page = context.pages[0] if context.pages else context.new_page()
    driver = PlaywrightDriver(page, context)
    try:
        driver.set_download_dir(download_dir)
        yield driver
    finally:
        driver.close()
        try:
            context.close()
        except Exception as e:
            log.warning(f"Failed to close browser context cleanly: {e}")
        if chrome_proc is not None:
            terminate_process(chrome_proc)
