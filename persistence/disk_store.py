from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any, Callable

from json_store import atomic_write_text, dumps_document, parse_document, read_bytes

from .cache import DocumentCache, FileStamp
from .errors import CorruptionError, StoreIOError
from .interfaces import ComponentDocumentStore
from .paths import PathResolver
from .recovery import CorruptionRecovery

logger = logging.getLogger(__name__)


def _io_error(action: str, path: Path, e: OSError) -> StoreIOError:
    message = f"failed to {action} {path}: {e.strerror or e}"
    if e.errno is None:
        return StoreIOError(message)
    return StoreIOError(e.errno, message)


class DiskJsonDocumentStore(ComponentDocumentStore):
    """
    Stores one JSON document per component on disk.

    - Always returns a dict (empty dict on missing file; corrupt files are
      backed up and reset).
    - Returns copies: mutating a loaded document never touches cached state.
    - Writes atomically (temp file + rename), so readers never see a partial file.
    - Cache entries are reused only while the file's stamp is unchanged, which
      is how writes from other processes become visible.
    """

    def __init__(
        self,
        resolver: PathResolver | None = None,
        *,
        cache: DocumentCache | None = None,
        recovery: CorruptionRecovery | None = None,
        reader: Callable[[Path], bytes] = read_bytes,
    ):
        self._resolver = resolver or PathResolver()
        self._cache = cache if cache is not None else DocumentCache()
        self._recovery = recovery or CorruptionRecovery()
        self._reader = reader

    @property
    def cache(self) -> DocumentCache:
        return self._cache

    def path_for(self, component: str) -> Path:
        return self._resolver.resolve(component)

    def load(self, component: str) -> dict[str, Any]:
        path = self.path_for(component)
        stamp = FileStamp.of(path)
        if stamp is None:
            self._cache.put(path, {}, None)
            return {}
        cached = self._cache.get(path, stamp)
        if cached is not None:
            logger.debug("STORE LOAD: cache hit for %s", path)
            return copy.deepcopy(cached)
        logger.debug("STORE LOAD: cache miss for %s", path)
        return copy.deepcopy(self._read(path, stamp))

    def load_fresh(self, component: str, *, lock_held: bool = False) -> dict[str, Any]:
        """
        Load straight from disk, ignoring (and then refreshing) the cache.

        Pass lock_held=True when the caller already holds the component lock, so
        corruption recovery does not try to take it a second time.
        """
        path = self.path_for(component)
        stamp = FileStamp.of(path)
        if stamp is None:
            self._cache.put(path, {}, None)
            return {}
        return copy.deepcopy(self._read(path, stamp, lock_held=lock_held))

    def save(self, component: str, doc: dict[str, Any]) -> None:
        payload = dumps_document(doc)
        path = self.path_for(component)
        try:
            st = atomic_write_text(path, payload)
        except OSError as e:
            logger.warning("STORE SAVE: failed to write %s: %r", path, e)
            raise _io_error("write", path, e) from e
        # Stamp of the version we wrote, not whatever the path holds by now.
        self._cache.put(path, doc, FileStamp.from_stat(st))
        logger.debug("STORE SAVE: wrote %s (%d keys)", path, len(doc))

    def _read(self, path: Path, stamp: FileStamp, *, lock_held: bool = False) -> dict[str, Any]:
        # The stamp was taken before reading. If the file changes underneath us
        # the next access sees a different stamp and reads again.
        try:
            raw = self._reader(path)
        except FileNotFoundError:
            self._cache.put(path, {}, None)
            return {}
        except OSError as e:
            raise _io_error("read", path, e) from e

        try:
            doc = parse_document(raw)
        except ValueError as e:
            error = CorruptionError(f"{path} is not a JSON object: {e}")
            recovered = self._recovery.recover_with_stamp(path, raw, error, stamp=stamp, lock_held=lock_held)
            # Stamp of the reset file, or of the corrupt version if it was left
            # alone, so the same bytes are not backed up twice.
            doc = recovered.document
            stamp = recovered.stamp or stamp

        self._cache.put(path, doc, stamp)
        return doc
