from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, NamedTuple

from json_store import atomic_write_json

from .cache import FileStamp
from .errors import LockTimeoutError
from .locks import ComponentLock

logger = logging.getLogger(__name__)

BACKUP_MARKER = ".backup."
BACKUP_TIMESTAMP_FORMAT = "%Y%m%dT%H%M%S"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def backup_path_for(path: Path, when: datetime) -> Path:
    """
    <path>.backup.<yyyyMMddTHHmmss>, with -1, -2, ... appended if already taken.
    """
    stamp = when.astimezone(timezone.utc).strftime(BACKUP_TIMESTAMP_FORMAT)
    candidate = path.with_name(f"{path.name}{BACKUP_MARKER}{stamp}")
    n = 1
    while candidate.exists():
        candidate = path.with_name(f"{path.name}{BACKUP_MARKER}{stamp}-{n}")
        n += 1
    return candidate


def list_backups(path: Path) -> list[Path]:
    return sorted(path.parent.glob(f"{path.name}{BACKUP_MARKER}*"))


class Recovered(NamedTuple):
    document: dict[str, Any]
    # Stamp to cache the empty document under: the reset file, or the stamp the
    # caller read if the file was left alone.
    stamp: FileStamp | None


class CorruptionRecovery:
    """
    Turns an unparsable document into an empty one.

    Best-effort: keep a copy of the bad bytes next to the file, then reset the
    file to {}. Both steps run under the component lock and only while the file
    still holds the bytes that were found corrupt, so a document another
    process committed in the meantime is never overwritten. Any step may fail
    (read-only disk, permissions, lock held elsewhere); that is logged and the
    caller still gets an empty document.
    """

    def __init__(self, clock: Callable[[], datetime] = _utcnow, *, lock_timeout: float = 1.0):
        self._clock = clock
        self.lock_timeout = lock_timeout

    def recover(self, path: Path, raw: bytes, error: Exception) -> dict[str, Any]:
        return self.recover_with_stamp(path, raw, error).document

    def recover_with_stamp(
        self,
        path: Path,
        raw: bytes,
        error: Exception,
        *,
        stamp: FileStamp | None = None,
        lock_held: bool = False,
    ) -> Recovered:
        logger.warning("STORE RECOVER: %s is corrupt (%s); resetting to an empty document", path, error)
        if lock_held:
            return self._backup_and_reset(path, raw, stamp)

        lock = ComponentLock(path, timeout=self.lock_timeout)
        try:
            lock.acquire()
        except LockTimeoutError:
            logger.warning("STORE RECOVER: %s is locked by another process; leaving it as is", path)
            return Recovered({}, stamp)
        except Exception as e:
            logger.warning("STORE RECOVER: cannot lock %s: %r; leaving it as is", path, e)
            return Recovered({}, stamp)
        try:
            return self._backup_and_reset(path, raw, stamp)
        finally:
            lock.release()

    def _backup_and_reset(self, path: Path, raw: bytes, stamp: FileStamp | None) -> Recovered:
        try:
            current_stamp = FileStamp.of(path)
            current = path.read_bytes() if current_stamp is not None else None
        except Exception as e:
            logger.warning("STORE RECOVER: failed to re-read %s: %r", path, e)
            return Recovered({}, stamp)
        if current != raw or (stamp is not None and current_stamp != stamp):
            logger.info("STORE RECOVER: %s changed since it was read; not resetting", path)
            return Recovered({}, stamp)

        backup: Path | None = None
        try:
            backup = backup_path_for(path, self._clock())
            with backup.open("xb") as f:
                f.write(raw)
            logger.warning("STORE RECOVER: saved unreadable content of %s to %s", path, backup)
        except Exception as e:
            logger.warning("STORE RECOVER: failed to back up %s to %s: %r", path, backup, e)

        try:
            st = atomic_write_json(path, {})
        except Exception as e:
            logger.warning("STORE RECOVER: failed to reset %s: %r", path, e)
            return Recovered({}, current_stamp)
        return Recovered({}, FileStamp.from_stat(st))
