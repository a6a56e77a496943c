"""System Chrome discovery and CDP launch.

macOS and Linux only: stale-process cleanup uses lsof and signals.
"""
import logging
import os
import platform
import shutil
import signal
import subprocess
import time
import urllib.request

from ..engine.poll import BackoffPolicy, poll_until

log = logging.getLogger(__name__)

_DARWIN_CANDIDATES = (
    "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
    "/Applications/Chromium.app/Contents/MacOS/Chromium",
    "/Applications/Microsoft Edge.app/Contents/MacOS/Microsoft Edge",
)
_LINUX_CANDIDATES = (
    "google-chrome",
    "google-chrome-stable",
    "chromium-browser",
    "chromium",
)


def find_system_chrome() -> str | None:
    """Return the path of an installed Chrome-family browser, or None."""
    system = platform.system()
    if system == "Darwin":
        return next((c for c in _DARWIN_CANDIDATES if os.path.isfile(c)), None)
    if system == "Linux":
        for candidate in _LINUX_CANDIDATES:
            path = shutil.which(candidate)
            if path:
                return path
    return None


def build_chrome_args(
    chrome_path: str,
    *,
    port: int,
    user_data_dir: str,
    headed: bool,
) -> list[str]:
    """Command line for a debuggable Chrome using ``user_data_dir`` as its profile."""
    args = [
        chrome_path,
        f"--remote-debugging-port={port}",
        f"--user-data-dir={user_data_dir}",
        "--no-first-run",
        "--no-default-browser-check",
        "--window-size=1920,1080",
    ]
    if not headed:
        args.append("--headless=new")
    args.append("about:blank")
    return args


def launch_cdp_browser(
    playwright,
    chrome_path: str,
    *,
    headed: bool = True,
    port: int = 9222,
    user_data_dir: str,
    startup_timeout: float = 10.0,
):
    """Start system Chrome with remote debugging and connect Playwright to it.

    Returns ``(browser, chrome_proc)``. The spawned process is terminated
    again if Chrome exits early, never opens its debugging port, or the
    CDP connection fails.
    """
    os.makedirs(user_data_dir, exist_ok=True)
    args = build_chrome_args(chrome_path, port=port, user_data_dir=user_data_dir, headed=headed)
    log.info(f"Launching Chrome via CDP: {os.path.basename(chrome_path)}")
    proc = subprocess.Popen(args, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
    cdp_url = f"http://127.0.0.1:{port}"

    def debugger_ready():
        if proc.poll() is not None:
            raise RuntimeError(f"Chrome exited unexpectedly (code {proc.returncode})")
        try:
            urllib.request.urlopen(f"{cdp_url}/json/version", timeout=1)
            return True
        except OSError:
            return False

    try:
        result = poll_until(debugger_ready, BackoffPolicy.fixed(0.3), startup_timeout)
        if result.timed_out:
            raise RuntimeError("Chrome failed to start with remote debugging")
        browser = playwright.chromium.connect_over_cdp(cdp_url)
    except Exception:
        terminate_process(proc)
        raise
    log.info(f"Connected to Chrome via CDP (port {port})")
    return browser, proc


def terminate_process(proc, timeout: float = 5.0) -> None:
    """Terminate ``proc``, escalating to kill if it ignores SIGTERM."""
    if proc.poll() is not None:
        return
    proc.terminate()
    try:
        proc.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        proc.kill()
        proc.wait(timeout=timeout)


def kill_stale_cdp(port: int = 9222) -> None:
    """Kill any process still listening on *port* from an earlier run."""
    try:
        out = subprocess.check_output(["lsof", "-ti", f":{port}"], text=True).strip()
    except subprocess.CalledProcessError:
        return  # nothing on this port
    except FileNotFoundError:
        log.warning("lsof not found; cannot auto-kill stale CDP processes")
        return
    for pid_str in out.split():
        try:
            os.kill(int(pid_str), signal.SIGTERM)
        except (ProcessLookupError, ValueError):
            pass
    log.info(f"Killed stale Chrome on port {port}")
    time.sleep(2)
