"""Diagnostic snapshot capture when a run fails.

Captures the page address, the staging directory listing, the error signal
and optionally a screenshot. Designed for zero overhead when disabled
(verbosity="off").
"""
import json
import logging
import os
import time
from dataclasses import dataclass, field, asdict

log = logging.getLogger(__name__)


class BundleVerbosity:
    OFF = "off"             # No capture at all
    MINIMAL = "minimal"     # error + counters only
    STANDARD = "standard"   # + page URL/title + staging listing
    FULL = "full"           # + screenshot

    ALL = (OFF, MINIMAL, STANDARD, FULL)


@dataclass
class FailureBundle:
    signal: str
    message: str
    site: str
    state: str
    items_done: int = 0
    last_location: str = ""
    page_url: str = ""
    page_title: str = ""
    staged_files: dict[str, int] = field(default_factory=dict)
    latency: dict = field(default_factory=dict)
    screenshot_path: str = ""
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return asdict(self)


def capture_failure_bundle(
    driver,
    error,
    *,
    site: str = "",
    state: str = "",
    items_done: int = 0,
    last_location: str = "",
    staging_dir: str = "",
    latency: dict | None = None,
    verbosity: str = BundleVerbosity.STANDARD,
    screenshot_dir: str = "",
) -> FailureBundle:
    """Best-effort capture of failure diagnostics. Never raises."""
    signal = getattr(getattr(error, "signal", None), "value", "") or type(error).__name__
    bundle = FailureBundle(
        signal=signal,
        message=str(error),
        site=site or "unknown",
        state=state,
        items_done=items_done,
        last_location=last_location or "",
        latency=latency or {},
    )

    if verbosity in (BundleVerbosity.STANDARD, BundleVerbosity.FULL):
        try:
            bundle.page_url = driver.current_url() or ""
        except Exception:
            pass
        try:
            bundle.page_title = driver.evaluate("() => document.title") or ""
        except Exception:
            pass
        if staging_dir:
            try:
                with os.scandir(staging_dir) as it:
                    bundle.staged_files = {
                        e.name: e.stat().st_size for e in it if not e.is_dir()
                    }
            except Exception:
                pass

    if verbosity == BundleVerbosity.FULL and screenshot_dir:
        try:
            os.makedirs(screenshot_dir, exist_ok=True)
            ts = time.strftime("%Y%m%d_%H%M%S") + f"_{int(time.time() * 1000) % 1000:03d}"
            path = os.path.join(screenshot_dir, f"fail_{ts}.png")
            with open(path, "wb") as f:
                f.write(driver.screenshot())
            bundle.screenshot_path = path
        except Exception:
            pass

    return bundle


def save_failure_bundle(bundle: FailureBundle, base_dir: str = "data/logs/failures") -> str:
    """Save bundle to JSON. Returns file path, or '' on failure."""
    try:
        out_dir = os.path.join(base_dir, bundle.site or "unknown")
        os.makedirs(out_dir, exist_ok=True)

        ts = time.strftime("%Y%m%d_%H%M%S") + f"_{int(time.time() * 1000) % 1000:03d}"
        path = os.path.join(out_dir, f"{ts}_{bundle.signal}.json")

        with open(path, "w", encoding="utf-8") as f:
            json.dump(bundle.to_dict(), f, ensure_ascii=False, indent=2, default=str)
        return path
    except Exception as e:
        log.debug(f"Failed to save failure bundle: {e}")
        return ""
