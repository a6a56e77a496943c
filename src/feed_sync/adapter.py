"""FeedAdapter Protocol — the site-specific rules the engine relies on.

Each adapter owns the details of its site: addresses, key bindings and
download naming. The engine never hard-codes a URL layout or a key.
"""
from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class PathSegmentRule:
    """Extract an item id as the ``index``-th ``/``-separated part of an address.

    ``https://host/photo/ID`` splits into ``["https:", "", "host", "photo", "ID"]``,
    so index 4 is the id. Query strings and fragments are ignored.
    """
    index: int

    def __call__(self, location: str) -> str | None:
        path = location.split("?", 1)[0].split("#", 1)[0]
        parts = path.split("/")
        if len(parts) <= self.index:
            return None
        return parts[self.index] or None


@runtime_checkable
class FeedAdapter(Protocol):
    """Protocol that site adapters must implement."""

    name: str                           # "gphotos"
    landing_url: str                    # page showing the feed grid, newest first
    item_href_prefix: str               # href prefix of item links in the grid

    # ── Keys (Playwright key syntax) ────────────────────────────────────────
    key_newer: str                      # detail view: step to the next newer item
    key_older: str                      # detail view: step to the next older item
    key_select: str                     # grid: move focus onto the first/next item
    key_open: str                       # grid: open the focused item's detail view
    key_download: str                   # detail view: download the displayed item
    bulk_scroll_keys: tuple[str, ...]   # grid: jump towards the oldest items

    # ── Downloads ───────────────────────────────────────────────────────────
    partial_suffixes: tuple[str, ...]   # suffixes of in-progress download files

    def is_signed_in(self, location: str) -> bool:
        """True when ``location`` is only reachable by an authenticated session."""
        ...

    def is_item_view(self, location: str) -> bool:
        """True when ``location`` is an item detail view rather than the grid."""
        ...

    def item_id(self, location: str) -> str | None:
        """Return the item id embedded in a detail-view address, or None."""
        ...
