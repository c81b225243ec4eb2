"""
Advisory write lock for the data file.

The lock lives in a dedicated lock file next to the data file. It is an
exclusive `flock`, so it only serializes processes (and threads holding their
own file handles) that take it explicitly. Readers never take it.

Usage:
    with write_lock(lock_path, timeout=10.0):
        ... reload, mutate, save ...
"""

from __future__ import annotations

import contextlib
import fcntl
import logging
import os
import time
from pathlib import Path
from typing import Iterator

from albumshelf.core import LockTimeoutError, StoreWriteError

logger = logging.getLogger(__name__)

DEFAULT_LOCK_TIMEOUT = 10.0
DEFAULT_POLL_INTERVAL = 0.05


def _try_lock(fd: int) -> bool:
    try:
        fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
    except BlockingIOError:
        return False
    return True


@contextlib.contextmanager
def write_lock(
    lock_path: str | Path,
    *,
    timeout: float = DEFAULT_LOCK_TIMEOUT,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
) -> Iterator[None]:
    """
    Hold an exclusive advisory lock on `lock_path` for the body of the block.

    Raises:
        LockTimeoutError: if the lock is not acquired within `timeout` seconds.
        StoreWriteError: if the lock file cannot be created or opened.
    """
    lock_path = Path(lock_path)
    try:
        lock_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(lock_path, os.O_RDWR | os.O_CREAT, 0o644)
    except OSError as e:
        raise StoreWriteError(f"Cannot open write lock {lock_path}: {e}") from e

    try:
        deadline = time.monotonic() + max(0.0, timeout)
        while not _try_lock(fd):
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise LockTimeoutError(
                    f"Could not acquire write lock {lock_path} within {timeout:.2f}s"
                )
            logger.debug("Write lock %s busy; retrying", lock_path)
            time.sleep(min(poll_interval, remaining))

        logger.debug("Acquired write lock %s", lock_path)
        try:
            yield
        finally:
            fcntl.flock(fd, fcntl.LOCK_UN)
            logger.debug("Released write lock %s", lock_path)
    finally:
        os.close(fd)
