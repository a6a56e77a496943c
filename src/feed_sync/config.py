"""Runtime tunables for a sync run.

Defaults match what works against a real feed over a residential link.
Every field can be overridden from a ``FEED_SYNC_<FIELD>`` environment
variable; unparseable values are ignored with a warning.
"""
import logging
import os
from dataclasses import dataclass, fields, replace

log = logging.getLogger(__name__)

ENV_PREFIX = "FEED_SYNC_"


@dataclass(frozen=True)
class SyncConfig:
    # base polling interval (seconds)
    tick: float = 0.5
    # download must appear within this window
    start_timeout: float = 60.0
    # once started, the file must grow at least once per window
    progress_timeout: float = 60.0
    # hard ceiling for one cursor move
    nav_ceiling: float = 300.0
    nav_backoff_initial: float = 0.01
    nav_backoff_cap: float = 0.5
    # reload the page every N items (0 disables)
    refresh_every: int = 1000
    # also reload once recent item latency reaches this multiple of the
    # post-refresh baseline (0 disables)
    latency_refresh_factor: float = 0.0
    latency_window: int = 50
    # identical probes in a row before a scroll or seek counts as settled
    scroll_stable_probes: int = 2
    scroll_pause: float = 5.0
    max_scroll_probes: int = 5000
    max_seek_steps: int = 200
    newest_timeout: float = 120.0
    auth_timeout: float = 120.0
    sentinel_name: str = ".lastdone"

    @classmethod
    def from_env(cls, environ=None, **overrides) -> "SyncConfig":
        """Build a config from defaults, then environment, then explicit overrides."""
        environ = os.environ if environ is None else environ
        values = {}
        for f in fields(cls):
            raw = environ.get(ENV_PREFIX + f.name.upper())
            if raw is None or raw.strip() == "":
                continue
            try:
                values[f.name] = _coerce(f.type, raw.strip())
            except ValueError:
                log.warning(f"Ignoring invalid {ENV_PREFIX}{f.name.upper()}={raw!r}")
        config = cls(**values)
        return replace(config, **overrides) if overrides else config


def _coerce(type_name, raw: str):
    # field types are strings under postponed evaluation; normalize first
    name = type_name if isinstance(type_name, str) else type_name.__name__
    if name == "int":
        value = int(raw)
        if value < 0:
            raise ValueError(raw)
        return value
    if name == "float":
        value = float(raw)
        if value < 0:
            raise ValueError(raw)
        return value
    return raw
