"""browser — Playwright/CDP browser session and the PageDriver built on it.

Zero site-specific dependencies. macOS and Linux only (uses lsof/signals).
"""
from .chrome import find_system_chrome, launch_cdp_browser, kill_stale_cdp  # noqa: F401
from .driver import PlaywrightDriver  # noqa: F401
from .session import open_session, prepare_profile_dir  # noqa: F401
