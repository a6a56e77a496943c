"""feed-sync — resumable, ordered download of a media feed driven through its web page.

Provides the traversal engine (cursor navigation, download completion
detection, crash-safe resume pointer, periodic session refresh), a
site-adapter protocol, a Playwright page driver and structured run telemetry.
"""
from .adapter import FeedAdapter, PathSegmentRule  # noqa: F401
from .config import SyncConfig  # noqa: F401
from .driver import PageDriver, PageEvent, PageEventKind  # noqa: F401
from .engine.errors import SyncSignal, SyncError  # noqa: F401
from .engine.orchestrator import sync_feed  # noqa: F401
