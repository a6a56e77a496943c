"""Structured JSONL event logging for sync runs."""
import json
import logging
import os
import time

log = logging.getLogger(__name__)


class SyncEventLogger:
    """Writes one JSON line per event to a per-run JSONL file.

    All logging is best-effort: methods never raise exceptions.
    Supports context-manager protocol for automatic close.

    An optional ``site`` field is included in every event when provided.
    """

    def __init__(self, run_id: str, log_dir: str = "data/logs/sync_events",
                 site: str | None = None):
        self._run_id = run_id
        self._site = site
        self._f = None
        self.path = ""
        try:
            os.makedirs(log_dir, exist_ok=True)
            safe_run_id = run_id.replace("/", "_").replace("\\", "_")
            self.path = os.path.join(log_dir, f"{safe_run_id}.jsonl")
            self._f = open(self.path, "a", encoding="utf-8")
        except Exception as e:
            log.warning(f"SyncEventLogger: failed to open log file: {e}")

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def _write(self, event: dict):
        if self._f is None:
            return
        try:
            event["ts"] = time.time()
            event["run_id"] = self._run_id
            if self._site is not None:
                event["site"] = self._site
            self._f.write(json.dumps(event, ensure_ascii=False) + "\n")
            self._f.flush()
        except Exception as e:
            log.warning(f"SyncEventLogger: write failed: {e}")

    def log_run_start(self, start_mode: str, resume_from: str | None,
                      anchor: str | None, config: dict):
        self._write({
            "event": "run_start",
            "start_mode": start_mode,
            "resume_from": resume_from,
            "anchor": anchor,
            "config": config,
        })

    def log_item_done(self, index: int, location: str, item_id: str | None,
                      file_path: str, download_duration: float,
                      nav_duration: float | None, latency_ratio: float):
        """Log one committed item.

        ``nav_duration`` is the time the following cursor move took, None
        when the run stopped on this item.
        """
        self._write({
            "event": "item_done",
            "index": index,
            "location": location,
            "item_id": item_id,
            "file_path": file_path,
            "download_duration": download_duration,
            "nav_duration": nav_duration,
            "latency_ratio": latency_ratio,
        })

    def log_refresh(self, after_items: int, reason: str, latency: dict, duration: float):
        self._write({
            "event": "refresh",
            "after_items": after_items,
            "reason": reason,
            "latency": latency,
            "duration": duration,
        })

    def log_run_end(self, status: str, stop_reason: str, items: int,
                    last_location: str | None, error_signal: str | None,
                    duration: float, latency: dict):
        self._write({
            "event": "run_end",
            "status": status,
            "stop_reason": stop_reason,
            "items": items,
            "last_location": last_location,
            "error_signal": error_signal,
            "duration": duration,
            "latency": latency,
        })

    def close(self):
        if self._f is not None:
            try:
                self._f.flush()
                self._f.close()
            except Exception:
                pass
            self._f = None
