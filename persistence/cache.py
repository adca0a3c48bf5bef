from __future__ import annotations

import copy
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, NamedTuple


class FileStamp(NamedTuple):
    """
    Identity of one committed version of a file.

    Every save replaces the file via rename, so the inode changes along with
    the mtime; size guards against coarse mtime resolution.
    """

    mtime_ns: int
    size: int
    inode: int

    @classmethod
    def from_stat(cls, st: os.stat_result) -> "FileStamp":
        return cls(st.st_mtime_ns, st.st_size, st.st_ino)

    @classmethod
    def of(cls, path: Path) -> "FileStamp | None":
        try:
            st = os.stat(path)
        except FileNotFoundError:
            return None
        return cls.from_stat(st)


@dataclass(frozen=True)
class CacheEntry:
    path: str
    document: dict[str, Any]
    stamp: FileStamp | None


class DocumentCache:
    """
    In-memory snapshot of documents keyed by absolute path.

    An entry is only returned while its stamp equals the freshly observed one.
    Callers get the stored object itself; copying on read is the store's job.
    """

    def __init__(self) -> None:
        self._entries: dict[str, CacheEntry] = {}

    @staticmethod
    def _key(path: Path) -> str:
        return str(Path(path).absolute())

    def get(self, path: Path, current_stamp: FileStamp | None) -> dict[str, Any] | None:
        entry = self._entries.get(self._key(path))
        if entry is None or entry.stamp != current_stamp:
            return None
        return entry.document

    def put(self, path: Path, document: dict[str, Any], stamp: FileStamp | None) -> None:
        key = self._key(path)
        self._entries[key] = CacheEntry(path=key, document=copy.deepcopy(document), stamp=stamp)

    def invalidate(self, path: Path) -> None:
        self._entries.pop(self._key(path), None)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, path: object) -> bool:
        return isinstance(path, (str, Path)) and self._key(Path(path)) in self._entries

    def __len__(self) -> int:
        return len(self._entries)
