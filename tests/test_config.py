"""Tests for SyncConfig."""
from feed_sync.config import SyncConfig


def test_defaults():
    c = SyncConfig()
    assert c.tick == 0.5
    assert c.start_timeout == 60.0
    assert c.progress_timeout == 60.0
    assert c.refresh_every == 1000
    assert c.sentinel_name == ".lastdone"


def test_from_env_overrides():
    c = SyncConfig.from_env({
        "FEED_SYNC_TICK": "0.25",
        "FEED_SYNC_REFRESH_EVERY": "500",
        "FEED_SYNC_SENTINEL_NAME": ".cursor",
    })
    assert c.tick == 0.25
    assert c.refresh_every == 500
    assert c.sentinel_name == ".cursor"


def test_invalid_values_ignored():
    c = SyncConfig.from_env({
        "FEED_SYNC_TICK": "fast",
        "FEED_SYNC_REFRESH_EVERY": "-3",
        "FEED_SYNC_START_TIMEOUT": " ",
    })
    assert c == SyncConfig()


def test_explicit_overrides_win():
    c = SyncConfig.from_env({"FEED_SYNC_TICK": "2"}, tick=0.1)
    assert c.tick == 0.1


def test_unrelated_env_ignored():
    assert SyncConfig.from_env({"TICK": "9", "FEED_SYNC_": "1"}) == SyncConfig()
