"""
StateLock - Advisory lock guarding the tuning state file.

Exclusive for apply/revert, shared for verify and listing. The lock lives
in a sibling ``<state>.lock`` file so the state file itself can be replaced
atomically while the lock is held.
"""

import fcntl
import logging
import time
from pathlib import Path
from typing import Optional

from ..protocol.errors import LockTimeoutError

logger = logging.getLogger(__name__)


class StateLock:
    """
    flock-based lock with a bounded wait.

    Usage:
        with StateLock(path, exclusive=True, timeout=10):
            ...
    """

    def __init__(
        self,
        path: Path,
        exclusive: bool = True,
        timeout: float = 10.0,
        poll_interval: float = 0.1,
    ):
        self.path = Path(path)
        self.exclusive = exclusive
        self.timeout = timeout
        self.poll_interval = poll_interval
        self._handle = None

    @property
    def locked(self) -> bool:
        return self._handle is not None

    def acquire(self) -> None:
        """Acquire the lock, raising LockTimeoutError after ``timeout`` seconds."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        handle = open(self.path, "a+")
        mode = fcntl.LOCK_EX if self.exclusive else fcntl.LOCK_SH
        deadline = time.monotonic() + self.timeout

        while True:
            try:
                fcntl.flock(handle.fileno(), mode | fcntl.LOCK_NB)
                break
            except BlockingIOError:
                if time.monotonic() >= deadline:
                    handle.close()
                    kind = "exclusive" if self.exclusive else "shared"
                    raise LockTimeoutError(
                        f"Could not acquire {kind} lock on {self.path} within {self.timeout}s; "
                        f"another saptune process is running. Try again later."
                    ) from None
                time.sleep(self.poll_interval)
            except OSError:
                handle.close()
                raise

        logger.debug("Acquired %s lock %s", "exclusive" if self.exclusive else "shared", self.path)
        self._handle = handle

    def release(self) -> None:
        if self._handle is None:
            return
        try:
            fcntl.flock(self._handle.fileno(), fcntl.LOCK_UN)
        finally:
            self._handle.close()
            self._handle = None

    def __enter__(self) -> "StateLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]:
        self.release()
        return None
