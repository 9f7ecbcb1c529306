# Vault - Advisory Store Lock
#
# Serializes writers of the credential directory. Readers do not take
# the lock; atomic replacement keeps every file they read complete.

import logging
import os
import sys
import time
from pathlib import Path

from ..core import EventSeverity, EventType, log_security_event
from .errors import LockTimeout

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.05

if sys.platform == "win32":
    import msvcrt

    def _try_lock(fd: int) -> bool:
        try:
            msvcrt.locking(fd, msvcrt.LK_NBLCK, 1)
        except OSError:
            return False
        return True

    def _unlock(fd: int) -> None:
        os.lseek(fd, 0, os.SEEK_SET)
        msvcrt.locking(fd, msvcrt.LK_UNLCK, 1)
else:
    import fcntl

    def _try_lock(fd: int) -> bool:
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            return False
        return True

    def _unlock(fd: int) -> None:
        fcntl.flock(fd, fcntl.LOCK_UN)


class StoreLock:
    """
    Exclusive advisory lock on ``<credentials_dir>/.lock``.

    Usage:
        with StoreLock(path, timeout=10.0):
            ...  # read-modify-write
    """

    def __init__(self, lock_path: Path, timeout: float):
        self.lock_path = Path(lock_path)
        self.timeout = timeout
        self._fd = None

    @property
    def is_held(self) -> bool:
        return self._fd is not None

    def acquire(self) -> None:
        fd = os.open(self.lock_path, os.O_RDWR | os.O_CREAT, 0o600)
        deadline = time.monotonic() + self.timeout
        try:
            while not _try_lock(fd):
                if time.monotonic() >= deadline:
                    log_security_event(
                        EventType.LOCK_TIMEOUT,
                        EventSeverity.WARNING,
                        "Could not acquire credential store lock",
                        details={"lock_path": str(self.lock_path), "timeout": self.timeout},
                    )
                    raise LockTimeout(self.lock_path, self.timeout)
                time.sleep(POLL_INTERVAL)
        except BaseException:
            # the fd is only kept once the lock is held
            os.close(fd)
            raise
        self._fd = fd
        logger.debug("Acquired store lock %s", self.lock_path)

    def release(self) -> None:
        if self._fd is None:
            return
        try:
            _unlock(self._fd)
        finally:
            os.close(self._fd)
            self._fd = None
        logger.debug("Released store lock %s", self.lock_path)

    def __enter__(self) -> "StoreLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
