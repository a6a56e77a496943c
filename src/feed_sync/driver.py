"""PageDriver Protocol — the interactive-session surface the engine drives.

The engine never talks to Playwright directly. Everything it needs from the
browser goes through these methods, so the traversal logic can be exercised
against a fake page in tests and the browser layer can be swapped.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Protocol, runtime_checkable


class PageEventKind(Enum):
    """Closed set of page events the driver forwards to subscribers."""
    NAVIGATED_WITHIN_DOCUMENT = "navigated_within_document"  # history API / same-document nav
    FRAME_NAVIGATED = "frame_navigated"                      # full document navigation
    LOAD = "load"                                            # load event fired
    DOWNLOAD_WILL_BEGIN = "download_will_begin"
    DOWNLOAD_PROGRESS = "download_progress"
    OTHER = "other"


@dataclass(frozen=True)
class PageEvent:
    kind: PageEventKind
    url: str = ""


@runtime_checkable
class PageDriver(Protocol):
    """Protocol that page drivers must implement."""

    def navigate(self, url: str) -> int | None:
        """Load ``url``. Returns the HTTP status of the main response, None if there was none."""
        ...

    def press(self, key: str) -> None:
        """Dispatch a key press (Playwright key syntax, e.g. "ArrowLeft", "Shift+D")."""
        ...

    def current_url(self) -> str:
        """Return the page's current address."""
        ...

    def active_element_attributes(self) -> dict[str, str]:
        """Return the attributes of ``document.activeElement`` ({} when none)."""
        ...

    def screenshot(self) -> bytes:
        """Capture the viewport as PNG bytes."""
        ...

    def evaluate(self, script: str): ...

    def subscribe(self, callback: Callable[[PageEvent], None]) -> None:
        """Deliver every page event to ``callback``."""
        ...

    def reload(self) -> None:
        """Reload the current page to shed accumulated page state."""
        ...

    def wait_ready(self) -> None:
        """Block until the document body is ready."""
        ...

    def wait(self, seconds: float) -> None:
        """Sleep while letting the driver dispatch pending page events."""
        ...

    def set_download_dir(self, path: str) -> None:
        """Direct browser downloads into ``path`` without prompting."""
        ...
