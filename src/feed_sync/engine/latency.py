"""Per-item latency monitor for long-running sessions.

A page that has been driven through thousands of items gets slower: every
item leaves some state behind. The monitor keeps a rolling window of item
durations and compares it to the baseline measured right after the last
session refresh. The scheduler logs its stats and, when enabled, refreshes
the session early once latency has grown past a factor of the baseline.
"""
import collections
import statistics


class LatencyMonitor:
    """Rolling-window latency tracker with a post-refresh baseline."""

    def __init__(self, window: int = 50, baseline_samples: int = 20):
        self._samples: collections.deque[float] = collections.deque(maxlen=window)
        self._window = window
        self._baseline_samples = baseline_samples
        self._baseline_pool: list[float] = []
        self._baseline: float | None = None
        self.total = 0

    def record(self, seconds: float):
        """Record the wall time one item took (download + commit + advance)."""
        self.total += 1
        self._samples.append(seconds)
        if self._baseline is None:
            self._baseline_pool.append(seconds)
            if len(self._baseline_pool) >= self._baseline_samples:
                self._baseline = statistics.median(self._baseline_pool)

    def reset_baseline(self):
        """Start measuring a fresh baseline (call after a session refresh)."""
        self._samples.clear()
        self._baseline_pool = []
        self._baseline = None

    @property
    def baseline(self) -> float | None:
        return self._baseline

    @property
    def recent(self) -> float | None:
        """Median of the rolling window, or None before any sample."""
        if not self._samples:
            return None
        return statistics.median(self._samples)

    @property
    def ratio(self) -> float:
        """Recent latency over baseline; 1.0 until a baseline exists."""
        recent = self.recent
        if not self._baseline or recent is None:
            return 1.0
        return recent / self._baseline

    def degraded(self, factor: float) -> bool:
        """True once the window is full and recent latency exceeds ``factor`` x baseline.

        A factor of 0 or below disables the check.
        """
        if factor <= 0 or self._baseline is None:
            return False
        if len(self._samples) < self._window:
            return False
        return self.ratio >= factor

    @property
    def stats(self) -> dict:
        """Return latency figures for logging."""
        recent = self.recent
        return {
            "total": self.total,
            "recent": round(recent, 3) if recent is not None else None,
            "baseline": round(self._baseline, 3) if self._baseline is not None else None,
            "ratio": round(self.ratio, 2),
        }
