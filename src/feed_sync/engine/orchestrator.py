"""Orchestrator — entry point for feed-sync runs.

Requires an injected driver and never auto-opens a browser.
The app layer (the CLI, or any embedding program) manages the browser
lifecycle and sign-in, and calls this with a driver on the signed-in page.
"""
import logging
import os
import time
import uuid

from ..config import SyncConfig
from ..telemetry.logger import SyncEventLogger
from .failure_bundle import BundleVerbosity
from .scheduler import RunReport, TraversalScheduler

log = logging.getLogger(__name__)


def sync_feed(adapter, download_dir: str, *,
              driver,
              max_items: int = -1,
              start_url: str = "",
              postprocess_program: str = "",
              config: SyncConfig | None = None,
              log_dir: str = "",
              run_id: str = "",
              failure_bundle_verbosity: str = BundleVerbosity.OFF,
              failure_bundle_dir: str = "") -> RunReport:
    """Download every feed item not yet synced into ``download_dir``.

    Args:
        adapter: FeedAdapter implementation for the target site.
        download_dir: Download root; also the browser's download directory.
        driver: PageDriver positioned on the signed-in landing page.
        max_items: Stop after this many items (negative = all, 0 = none).
        start_url: Debug override: start at this item (inclusive) instead
            of the sentinel or the oldest item.
        postprocess_program: Program run on each relocated file.
        config: Tunables; defaults to SyncConfig.from_env().
        log_dir: Directory for the JSONL event log ('' disables it).
        run_id: Identifier for this run in telemetry (generated if empty).
        failure_bundle_verbosity: BundleVerbosity level captured on failure.
        failure_bundle_dir: Where failure bundles and screenshots go.

    Returns:
        RunReport describing how the run ended.
    """
    config = config or SyncConfig.from_env()
    run_id = run_id or time.strftime("%Y%m%d_%H%M%S") + "_" + uuid.uuid4().hex[:6]

    log.info(f"Sync run {run_id}: {adapter.name} -> {download_dir}")
    event_logger = SyncEventLogger(run_id, log_dir=log_dir, site=adapter.name) if log_dir else None
    try:
        scheduler = TraversalScheduler.build(
            driver, adapter, download_dir, config,
            max_items=max_items,
            start_url=start_url,
            postprocess_program=postprocess_program,
            event_logger=event_logger,
            bundle_verbosity=failure_bundle_verbosity,
            bundle_dir=failure_bundle_dir or os.path.join(download_dir, ".failures"),
        )
        return scheduler.run()
    finally:
        if event_logger:
            event_logger.close()
