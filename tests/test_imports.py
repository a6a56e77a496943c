"""Smoke tests: all public modules are importable."""


def test_package_imports():
    from feed_sync import (
        FeedAdapter,
        PathSegmentRule,
        SyncConfig,
        PageDriver,
        PageEvent,
        PageEventKind,
        SyncSignal,
        SyncError,
        sync_feed,
    )
    assert callable(sync_feed)
    assert callable(PathSegmentRule)
    assert issubclass(SyncError, Exception)
    assert SyncSignal.NAVIGATION_TIMEOUT.value == "navigation_timeout"
    assert PageEventKind.NAVIGATED_WITHIN_DOCUMENT in PageEventKind
    assert FeedAdapter and PageDriver and PageEvent and SyncConfig


def test_browser_imports():
    from feed_sync.browser import (
        find_system_chrome,
        launch_cdp_browser,
        kill_stale_cdp,
        PlaywrightDriver,
        open_session,
        prepare_profile_dir,
    )
    assert callable(find_system_chrome)
    assert callable(launch_cdp_browser)
    assert callable(kill_stale_cdp)
    assert callable(PlaywrightDriver)
    assert callable(open_session)
    assert callable(prepare_profile_dir)


def test_telemetry_imports():
    from feed_sync.telemetry import SyncEventLogger
    assert callable(SyncEventLogger)


def test_engine_imports():
    from feed_sync.engine import (
        TraversalScheduler,
        Navigator,
        NavigationTap,
        DownloadWatcher,
        SentinelStore,
        FeedBoundaryLocator,
        LatencyMonitor,
        poll_until,
    )
    assert callable(TraversalScheduler.build)
    for obj in (Navigator, NavigationTap, DownloadWatcher, SentinelStore,
                FeedBoundaryLocator, LatencyMonitor, poll_until):
        assert callable(obj)
