"""Command-line entry point: ``feed-sync``."""
import argparse
import logging
import os
from typing import Sequence

from playwright.sync_api import Error as PlaywrightError, sync_playwright

from .browser.session import open_session, prepare_profile_dir
from .config import SyncConfig
from .engine.auth import wait_for_login
from .engine.errors import SyncError
from .engine.failure_bundle import BundleVerbosity
from .engine.orchestrator import sync_feed
from .sites import ADAPTERS

log = logging.getLogger(__name__)


def default_download_dir() -> str:
    return os.path.join(os.path.expanduser("~"), "Downloads", "feed-sync")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="feed-sync",
        description="Download every item of a media feed through its web page, "
                    "resuming where the previous run stopped.",
    )
    parser.add_argument("-n", type=int, default=-1, dest="n_items",
                        help="number of items to download. If negative, get them all.")
    parser.add_argument("--dev", action="store_true",
                        help="dev mode: reuse the same browser profile dir, "
                             "so sign-in is not needed at every run.")
    parser.add_argument("--dldir", default="",
                        help="where to write the downloads. defaults to ~/Downloads/feed-sync.")
    parser.add_argument("--start", default="",
                        help="skip all items until this location is reached. dev mode only.")
    parser.add_argument("--run", default="", dest="program",
                        help="program to run on each downloaded item, right after it is "
                             "downloaded. It is responsible for removing the item, if desired.")
    parser.add_argument("--site", default="gphotos", choices=sorted(ADAPTERS),
                        help="which feed to sync.")
    parser.add_argument("--headless", action="store_true",
                        help="run the browser headless (sign-in impossible). dev mode only.")
    parser.add_argument("--log-dir", default="",
                        help="write a JSONL event log for the run into this directory.")
    parser.add_argument("--bundle", default=BundleVerbosity.OFF, choices=BundleVerbosity.ALL,
                        help="diagnostics captured when the run fails.")
    parser.add_argument("-v", "--verbose", action="store_true", help="be verbose")
    return parser


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    if args.n_items == 0:
        return 0
    if not args.dev and args.start:
        parser.error("--start only allowed in dev mode")
    if not args.dev and args.headless:
        parser.error("--headless only allowed in dev mode")

    configure_logging(args.verbose)
    download_dir = os.path.abspath(args.dldir or default_download_dir())
    os.makedirs(download_dir, mode=0o700, exist_ok=True)
    profile_dir = prepare_profile_dir(args.dev)
    log.info(f"Session Dir: {profile_dir}")

    adapter = ADAPTERS[args.site]()
    config = SyncConfig.from_env()
    try:
        with sync_playwright() as playwright, open_session(
            playwright,
            download_dir=download_dir,
            user_data_dir=profile_dir,
            headed=not args.headless,
        ) as driver:
            wait_for_login(driver, adapter, timeout=config.auth_timeout,
                           headless=args.headless)
            report = sync_feed(
                adapter, download_dir,
                driver=driver,
                max_items=args.n_items,
                start_url=args.start,
                postprocess_program=args.program,
                config=config,
                log_dir=args.log_dir,
                failure_bundle_verbosity=args.bundle,
            )
    except SyncError as e:
        print(f"FAILED: {e.signal.value}: {e}")
        return 1
    except PlaywrightError as e:
        log.debug("Browser error", exc_info=True)
        print(f"FAILED: browser: {e}")
        return 1

    if report.ok:
        print("OK")
        return 0
    print(f"FAILED: {report.error.signal.value}: {report.error}")
    return 1


if __name__ == "__main__":  # pragma: no cover - CLI entry
    raise SystemExit(main())
