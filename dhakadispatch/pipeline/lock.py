"""One scheduler per host: an flock'd file holding the owner's PID."""

from __future__ import annotations

import errno
import fcntl
import logging
import os
from typing import Optional

logger = logging.getLogger(__name__)


class SchedulerLock:
    def __init__(self, path: str):
        self.path = path
        self._handle = None

    @property
    def held(self) -> bool:
        return self._handle is not None

    def holder_pid(self) -> Optional[int]:
        try:
            with open(self.path, "r") as f:
                text = f.read().strip()
        except OSError:
            return None
        return int(text) if text.isdigit() else None

    def acquire(self) -> bool:
        """Take the lock without blocking. False when another process holds it."""
        if self._handle is not None:
            return True
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        # append mode: the current holder's PID survives a failed attempt
        handle = open(self.path, "a+")
        try:
            fcntl.flock(handle, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError as e:
            handle.close()
            if e.errno in (errno.EAGAIN, errno.EACCES):
                pid = self.holder_pid()
                logger.warning(f"Scheduler already running (PID: {pid if pid is not None else 'unknown'})")
            else:
                logger.error(f"Failed to acquire scheduler lock {self.path}: {e}")
            return False
        handle.seek(0)
        handle.truncate()
        handle.write(str(os.getpid()))
        handle.flush()
        self._handle = handle
        logger.info(f"Scheduler lock acquired (PID: {os.getpid()})")
        return True

    def release(self) -> None:
        if self._handle is None:
            return
        try:
            fcntl.flock(self._handle, fcntl.LOCK_UN)
        finally:
            self._handle.close()
            self._handle = None
        logger.info("Scheduler lock released")

    def __enter__(self) -> "SchedulerLock":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
