"""engine — traversal state machine, download watching, navigation and resume pointer."""
from .errors import SyncSignal, SyncError  # noqa: F401
from .poll import BackoffPolicy, PollResult, poll_until  # noqa: F401
from .sentinel import SentinelStore  # noqa: F401
from .watcher import DownloadWatcher  # noqa: F401
from .nav_tap import NavigationTap  # noqa: F401
from .navigator import Direction, NavOutcome, Navigator  # noqa: F401
from .boundary import FeedBoundaryLocator  # noqa: F401
from .latency import LatencyMonitor  # noqa: F401
from .scheduler import RunReport, RunState, TraversalScheduler  # noqa: F401
from .failure_bundle import FailureBundle, BundleVerbosity, capture_failure_bundle, save_failure_bundle  # noqa: F401
from .orchestrator import sync_feed  # noqa: F401
