"""
Whole-File Advisory Lock
=========================
POSIX record lock over the entire tag file (offset 0, length 0 =
to end of file and beyond). Readers take a shared lock, writers an
exclusive one. Acquisition blocks until the lock is granted; there
is no timeout, a holder that never unlocks blocks everyone until
its process exits.

Usage:
    with FileLockGuard(fh, exclusive=True):
        ...  # locate, overwrite, fsync
"""

import fcntl
import logging
import os

from hwsim.core.errors import LockError

logger = logging.getLogger(__name__)


class FileLockGuard:
    """Context manager holding a shared or exclusive lock on an open file."""

    def __init__(self, fh, exclusive: bool = False):
        self._fd = fh if isinstance(fh, int) else fh.fileno()
        self.exclusive = exclusive
        self._held = False

    @property
    def held(self) -> bool:
        return self._held

    def acquire(self):
        """Block until the lock is granted, retrying past EINTR."""
        cmd = fcntl.LOCK_EX if self.exclusive else fcntl.LOCK_SH
        self._lockf(cmd)
        self._held = True

    def release(self):
        """Unlock the file. Raises LockError if the unlock call fails."""
        if not self._held:
            return
        self._held = False
        self._lockf(fcntl.LOCK_UN)

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is None:
            self.release()
            return False
        # Keep the original error; the unlock is best effort
        try:
            self.release()
        except LockError:
            logger.warning("Unlock after failed operation did not succeed", exc_info=True)
        return False

    def _lockf(self, cmd: int):
        while True:
            try:
                fcntl.lockf(self._fd, cmd, 0, 0, os.SEEK_SET)
                return
            except InterruptedError:
                logger.warning("Tag file lock interrupted; retrying")
            except OSError as exc:
                action = "unlock" if cmd == fcntl.LOCK_UN else "lock"
                raise LockError(f"tag file {action} failed: {exc.strerror or exc}") from exc
