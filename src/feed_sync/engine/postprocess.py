"""Hand each relocated item to an external program."""
import logging
import subprocess

from .errors import SyncError, SyncSignal

log = logging.getLogger(__name__)


def run_postprocess(program: str, file_path: str) -> None:
    """Run ``program file_path``, inheriting stdout/stderr.

    The program owns the file from here on (it may move or delete it).
    Only its exit status matters: anything but 0 aborts the run.
    """
    if not program:
        return
    log.debug(f"Running {program} on {file_path}")
    try:
        proc = subprocess.run([program, file_path], check=False)
    except OSError as e:
        raise SyncError(SyncSignal.POSTPROCESS_FAILED, f"cannot run {program}: {e}") from e
    if proc.returncode != 0:
        raise SyncError(SyncSignal.POSTPROCESS_FAILED,
                        f"{program} exited with status {proc.returncode} on {file_path}")
