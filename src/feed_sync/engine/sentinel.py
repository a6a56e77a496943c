"""Crash-safe resume pointer: the address of the last fully processed item.

The sentinel lives inside the download root. Updates keep the previous value
in a ``.bak`` sibling until the new one is durably on disk, so a crash at
any point leaves either the old or the new pointer, never an empty one.
"""
import logging
import os
import tempfile

from .errors import SyncError, SyncSignal

log = logging.getLogger(__name__)

SENTINEL_NAME = ".lastdone"


class SentinelStore:
    """Read/write the resume pointer stored at ``<root>/<name>``."""

    def __init__(self, root: str, name: str = SENTINEL_NAME):
        self._root = root
        self._name = name
        self.path = os.path.join(root, name)
        self.backup_path = self.path + ".bak"

    def owns(self, filename: str) -> bool:
        """True for directory entries belonging to the store (sentinel, backup, temp files)."""
        return filename == self._name or filename.startswith(self._name + ".")

    def read(self) -> str | None:
        """Return the stored item address, or None when nothing was committed yet.

        A write interrupted after the backup rename leaves only the ``.bak``
        sibling; it is moved back into place and its value returned.
        """
        try:
            return self._read_file(self.path)
        except FileNotFoundError:
            pass
        try:
            value = self._read_file(self.backup_path)
        except FileNotFoundError:
            return None
        log.warning(f"Recovering {self.path} from {self.backup_path} left by an interrupted write")
        try:
            os.replace(self.backup_path, self.path)
        except OSError as e:
            raise SyncError(SyncSignal.PERSISTENCE,
                            f"cannot restore {self.path} from backup: {e}") from e
        return value

    def _read_file(self, path: str) -> str | None:
        try:
            with open(path, "r", encoding="utf-8") as f:
                value = f.read().strip()
        except FileNotFoundError:
            raise
        except OSError as e:
            raise SyncError(SyncSignal.PERSISTENCE, f"cannot read {path}: {e}") from e
        return value or None

    def write(self, item: str) -> None:
        """Durably replace the stored value with ``item``.

        On failure the previous value is restored from the backup and a
        PERSISTENCE SyncError is raised.
        """
        log.debug(f"Marking {item} as done")
        try:
            os.replace(self.path, self.backup_path)
        except FileNotFoundError:
            pass
        except OSError as e:
            raise SyncError(SyncSignal.PERSISTENCE, f"cannot back up {self.path}: {e}") from e

        try:
            self._write_atomic(item)
        except OSError as e:
            self._restore_backup()
            raise SyncError(SyncSignal.PERSISTENCE, f"cannot write {self.path}: {e}") from e

        try:
            os.remove(self.backup_path)
        except FileNotFoundError:
            pass
        except OSError as e:
            log.warning(f"Could not remove sentinel backup {self.backup_path}: {e}")

    def clear(self) -> None:
        """Forget the stored value (used when it no longer resolves upstream)."""
        for path in (self.path, self.backup_path):
            try:
                os.remove(path)
            except FileNotFoundError:
                pass
            except OSError as e:
                raise SyncError(SyncSignal.PERSISTENCE, f"cannot remove {path}: {e}") from e

    def _write_atomic(self, item: str) -> None:
        tmp_path = ""
        try:
            with tempfile.NamedTemporaryFile(
                "w",
                delete=False,
                dir=self._root,
                prefix=self._name + ".",
                suffix=".tmp",
                encoding="utf-8",
            ) as tmp:
                tmp_path = tmp.name
                tmp.write(item)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_path, self.path)
        finally:
            if tmp_path and os.path.exists(tmp_path):
                try:
                    os.remove(tmp_path)
                except OSError:
                    pass

    def _restore_backup(self) -> None:
        try:
            os.replace(self.backup_path, self.path)
        except FileNotFoundError:
            pass
        except OSError as e:
            log.error(f"Failed to restore sentinel backup {self.backup_path}: {e}")
