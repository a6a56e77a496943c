"""telemetry — structured JSONL run events."""
from .logger import SyncEventLogger  # noqa: F401
