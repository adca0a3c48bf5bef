from __future__ import annotations

import contextlib
import logging
import time
from pathlib import Path
from typing import Iterator

from filelock import FileLock, Timeout

from .errors import LockTimeoutError

logger = logging.getLogger(__name__)


def lock_path_for(path: Path) -> Path:
    return path.with_name(path.name + ".lock")


class ComponentLock:
    """
    Cross-process advisory lock on the sibling file <path>.lock.

    Acquisition polls with non-blocking attempts, doubling the sleep between
    them up to max_poll_interval, until the timeout runs out.
    """

    def __init__(
        self,
        path: Path,
        *,
        timeout: float = 10.0,
        poll_interval: float = 0.01,
        max_poll_interval: float = 0.25,
    ):
        self.path = path
        self.lock_path = lock_path_for(path)
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.max_poll_interval = max(poll_interval, max_poll_interval)
        self._lock = FileLock(str(self.lock_path))

    @property
    def is_locked(self) -> bool:
        return self._lock.is_locked

    def acquire(self) -> None:
        deadline = time.monotonic() + self.timeout
        delay = self.poll_interval
        attempts = 0
        while True:
            attempts += 1
            try:
                self._lock.acquire(timeout=0)
                logger.debug("LOCK: acquired %s after %d attempt(s)", self.lock_path, attempts)
                return
            except Timeout:
                pass
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                logger.info("LOCK: gave up on %s after %.2fs", self.lock_path, self.timeout)
                raise LockTimeoutError(self.path, self.timeout)
            time.sleep(min(delay, remaining))
            delay = min(delay * 2, self.max_poll_interval)

    def release(self) -> None:
        self._lock.release()
        logger.debug("LOCK: released %s", self.lock_path)

    @contextlib.contextmanager
    def held(self) -> Iterator["ComponentLock"]:
        self.acquire()
        try:
            yield self
        finally:
            self.release()
