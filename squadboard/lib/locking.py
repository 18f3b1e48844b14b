"""
Lock management for squadboard.

Uses flock for per-card and per-session locking so concurrent callers
(CLI invocations, the timer-driven sync flow, dispatch threads) never
interleave a read-modify-write of the same record.
"""

import fcntl
import os
import time
from contextlib import contextmanager
from pathlib import Path

POLL_INTERVAL_SECONDS = 0.1


class LockTimeout(Exception):
    """Lock acquisition timed out."""
    pass


@contextmanager
def _acquire_lock(lock_file: Path, timeout: float, lock_name: str):
    """
    Internal helper to acquire an exclusive file lock.

    Lock files are never deleted: removing them lets two processes hold
    "exclusive" locks on different inodes with the same path.
    """
    lock_file.parent.mkdir(parents=True, exist_ok=True)

    fd = open(lock_file, 'w')
    start = time.monotonic()

    try:
        while True:
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                break
            except BlockingIOError:
                if time.monotonic() - start > timeout:
                    raise LockTimeout(f"Could not acquire {lock_name} within {timeout}s")
                time.sleep(POLL_INTERVAL_SECONDS)

        fd.write(f"{os.getpid()}\n")
        fd.flush()
        try:
            yield
        finally:
            fcntl.flock(fd, fcntl.LOCK_UN)
    finally:
        fd.close()


@contextmanager
def card_lock(home: Path, card_id: str, timeout: float = 60):
    """Acquire the per-card lock, yield, release on exit."""
    lock_file = home / "locks" / "cards" / f"{card_id}.lock"
    with _acquire_lock(lock_file, timeout, f"lock for card {card_id}"):
        yield


@contextmanager
def session_lock(home: Path, session_id: str, timeout: float = 60):
    """Acquire the per-session lock (transcript appends), yield, release on exit."""
    lock_file = home / "locks" / "sessions" / f"{session_id}.lock"
    with _acquire_lock(lock_file, timeout, f"lock for session {session_id}"):
        yield
