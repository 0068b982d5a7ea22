"""
Project Lock - Advisory lock serializing reconciliations per project directory.

Two overlapping runs could both read the same "current max" and pick
colliding versions, so every run that writes descriptors holds this lock.

Uses ``fcntl.flock`` on POSIX and ``msvcrt.locking`` on Windows.
"""

from __future__ import annotations

import logging
import os
import sys
import time
from pathlib import Path
from typing import IO, Any

from versionsync.core.exceptions import LockError


LOCK_FILENAME = "resolve.lock"


class ProjectLock:
    """
    Non-blocking, file-based advisory lock.

    Usage:
        with ProjectLock(project / ".versionsync"):
            ...  # reconcile

    Raises LockError on entry if another holder has the lock and it does
    not become free within ``timeout`` seconds.
    """

    POLL_INTERVAL = 0.1

    def __init__(self, lock_dir: Path | str, timeout: float = 0.0):
        self.lock_dir = Path(lock_dir)
        self.path = self.lock_dir / LOCK_FILENAME
        self.timeout = timeout
        self._lock_file: IO[str] | None = None
        self.logger = logging.getLogger("ProjectLock")

    @property
    def is_held(self) -> bool:
        return self._lock_file is not None

    def _try_lock(self, handle: IO[str]) -> bool:
        try:
            if sys.platform == "win32":
                import msvcrt

                handle.seek(0)
                msvcrt.locking(handle.fileno(), msvcrt.LK_NBLCK, 1)
            else:
                import fcntl

                fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError:
            return False
        return True

    def acquire(self) -> None:
        """
        Acquire the lock.

        Raises:
            LockError: If the lock is held elsewhere or cannot be created.
        """
        if self._lock_file is not None:
            raise LockError("Lock already held by this instance", lock_path=self.path)

        try:
            self.lock_dir.mkdir(parents=True, exist_ok=True)
            handle = open(self.path, "a+", encoding="utf-8")
        except OSError as e:
            raise LockError(f"Cannot create lock file {self.path}", lock_path=self.path, cause=e)

        deadline = time.monotonic() + self.timeout
        while not self._try_lock(handle):
            if time.monotonic() >= deadline:
                handle.close()
                raise LockError(
                    f"Another versionsync run holds {self.path}; try again when it finishes",
                    lock_path=self.path,
                )
            time.sleep(self.POLL_INTERVAL)

        handle.seek(0)
        handle.truncate()
        handle.write(f"{os.getpid()}\n")
        handle.flush()

        self._lock_file = handle
        self.logger.debug(f"Acquired {self.path}")

    def release(self) -> None:
        """Release the lock. Safe to call when not held."""
        handle = self._lock_file
        if handle is None:
            return
        self._lock_file = None

        try:
            if sys.platform == "win32":
                import msvcrt

                handle.seek(0)
                msvcrt.locking(handle.fileno(), msvcrt.LK_UNLCK, 1)
            else:
                import fcntl

                fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
        except OSError as e:
            self.logger.debug(f"Lock release error: {e}")
        finally:
            handle.close()
        self.logger.debug(f"Released {self.path}")

    def __enter__(self) -> ProjectLock:
        self.acquire()
        return self

    def __exit__(self, *args: Any) -> None:
        self.release()
