"""Normalized error signals for the traversal engine.

Every failure the engine can hit is mapped into one of these signals so the
scheduler, the CLI status line and the telemetry all speak the same taxonomy.
"""
from enum import Enum


class SyncSignal(Enum):
    """Closed set of failure kinds raised by the engine."""
    DOWNLOAD_NOT_STARTED = "download_not_started"  # no artifact within the start window
    DOWNLOAD_STALLED = "download_stalled"          # artifact stopped growing
    NAVIGATION_TIMEOUT = "navigation_timeout"      # cursor stuck mid-feed
    AUTH_TIMEOUT = "auth_timeout"                  # never reached the signed-in page
    MULTIPLE_ARTIFACTS = "multiple_artifacts"      # >1 file staged at once
    RELOCATION_CONFLICT = "relocation_conflict"    # would overwrite a relocated item
    PERSISTENCE = "persistence"                    # sentinel write failed
    BOUNDARY_NOT_FOUND = "boundary_not_found"      # feed start/end never stabilized
    POSTPROCESS_FAILED = "postprocess_failed"      # external program exited non-zero
    DRIVER = "driver"                              # page driver misbehaved


TIMEOUT_SIGNALS = frozenset({
    SyncSignal.DOWNLOAD_NOT_STARTED,
    SyncSignal.DOWNLOAD_STALLED,
    SyncSignal.NAVIGATION_TIMEOUT,
    SyncSignal.AUTH_TIMEOUT,
})

INVARIANT_SIGNALS = frozenset({
    SyncSignal.MULTIPLE_ARTIFACTS,
    SyncSignal.RELOCATION_CONFLICT,
})


class SyncError(Exception):
    """Exception carrying a normalized SyncSignal for scheduler error handling."""

    def __init__(self, signal: SyncSignal, message: str = ""):
        self.signal = signal
        super().__init__(message or signal.value)

    @property
    def is_timeout(self) -> bool:
        return self.signal in TIMEOUT_SIGNALS

    @property
    def is_invariant_violation(self) -> bool:
        return self.signal in INVARIANT_SIGNALS
