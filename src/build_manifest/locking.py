"""Best-effort cross-process exclusion for manifest writers.

A zero-byte sentinel next to the manifest is created with ``O_CREAT|O_EXCL``.
There is no ownership metadata and no staleness detection: a crashed holder
leaves its sentinel behind, and later writers give up after a short, bounded
retry and proceed without exclusivity.
"""

from __future__ import annotations

import logging
import os
import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator

from .errors import LockTimeoutError

logger = logging.getLogger(__name__)

LOCK_SUFFIX = ".lock"
LOCK_ATTEMPTS = 3
LOCK_BACKOFF_SECONDS = 0.2


def lock_path_for(path: Path | str) -> Path:
    """Return the sentinel path guarding *path* (``<path>.lock``)."""
    return Path(f"{path}{LOCK_SUFFIX}")


@dataclass
class LockHandle:
    lock_path: Path
    acquired: bool
    # Set when every attempt failed; the write proceeds without exclusivity.
    timeout: LockTimeoutError | None = None

    def release(self) -> None:
        """Remove the sentinel whether or not this handle acquired it."""
        try:
            os.remove(self.lock_path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("Unable to remove lock file %s: %s", self.lock_path, exc)


def acquire_lock(path: Path | str, *, sleep: Callable[[float], None] = time.sleep) -> LockHandle:
    """Try to create the sentinel for *path*, retrying with a linear backoff.

    The manifest's directory is created first, so a manifest in a new directory
    is locked like any other. Sleeps ``attempt * 200ms`` before each attempt
    (0, 200, 400 ms). Exhausting the attempts is logged and reported through
    ``LockHandle.acquired`` and ``LockHandle.timeout``; it is never raised.
    """
    lock_path = lock_path_for(path)
    try:
        lock_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.warning("Unable to create directory for lock file %s: %s", lock_path, exc)
    for attempt in range(LOCK_ATTEMPTS):
        sleep(attempt * LOCK_BACKOFF_SECONDS)
        try:
            fd = os.open(lock_path, os.O_RDWR | os.O_CREAT | os.O_EXCL, 0o600)
        except OSError as exc:
            logger.warning(
                "Error locking manifest file for reading and writing (attempt %d/%d), will retry: %s",
                attempt + 1,
                LOCK_ATTEMPTS,
                exc,
            )
            continue
        os.close(fd)
        logger.debug("Acquired manifest lock %s", lock_path)
        return LockHandle(lock_path=lock_path, acquired=True)

    timeout = LockTimeoutError(
        lock_path,
        f"could not acquire {lock_path} after {LOCK_ATTEMPTS} attempts; proceeding without exclusive access",
    )
    logger.warning("%s", timeout)
    return LockHandle(lock_path=lock_path, acquired=False, timeout=timeout)


@contextmanager
def manifest_lock(path: Path | str, *, sleep: Callable[[float], None] = time.sleep) -> Iterator[LockHandle]:
    """Hold the sentinel lock for *path* for the duration of the context."""
    handle = acquire_lock(path, sleep=sleep)
    try:
        yield handle
    finally:
        handle.release()
