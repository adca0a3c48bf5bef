from __future__ import annotations

import copy
import logging
from typing import Any, Callable, NamedTuple

from .disk_store import DiskJsonDocumentStore
from .interfaces import DocumentMutator
from .locks import ComponentLock

logger = logging.getLogger(__name__)


class _NoChange:
    _instance: "_NoChange | None" = None

    def __new__(cls) -> "_NoChange":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NO_CHANGE"

    def __reduce__(self):
        return (_NoChange, ())


# Returned by a mutation function to say "nothing to write".
NO_CHANGE = _NoChange()

MutationFn = Callable[[dict[str, Any]], Any]


class MutationResult(NamedTuple):
    changed: bool
    document: dict[str, Any]


class AtomicMutator(DocumentMutator):
    """
    Read-modify-write of a component document, serialized across processes.

    Each call: take the component lock, reload the file bypassing the cache,
    apply fn, save if the document changed, release the lock (always).
    fn may modify the document in place and return it, return a new dict, or
    return NO_CHANGE. Returning a document equal to the loaded one also skips
    the write.
    """

    def __init__(
        self,
        store: DiskJsonDocumentStore,
        *,
        lock_timeout: float = 10.0,
        poll_interval: float = 0.01,
        max_poll_interval: float = 0.25,
    ):
        self._store = store
        self.lock_timeout = lock_timeout
        self.poll_interval = poll_interval
        self.max_poll_interval = max_poll_interval

    @property
    def store(self) -> DiskJsonDocumentStore:
        return self._store

    def lock_for(self, component: str, *, timeout: float | None = None) -> ComponentLock:
        return ComponentLock(
            self._store.path_for(component),
            timeout=self.lock_timeout if timeout is None else timeout,
            poll_interval=self.poll_interval,
            max_poll_interval=self.max_poll_interval,
        )

    def mutate(self, component: str, fn: MutationFn, *, timeout: float | None = None) -> MutationResult:
        lock = self.lock_for(component, timeout=timeout)
        logger.debug("MUTATE %s: acquiring lock", component)
        with lock.held():
            logger.debug("MUTATE %s: reloading", component)
            current = self._store.load_fresh(component, lock_held=True)
            before = copy.deepcopy(current)

            logger.debug("MUTATE %s: applying mutation", component)
            result = fn(current)
            if result is NO_CHANGE or result == before:
                logger.debug("MUTATE %s: no change, skipping write", component)
                return MutationResult(False, before)
            if not isinstance(result, dict):
                raise TypeError(f"mutation must return a dict or NO_CHANGE, got {type(result).__name__}")

            logger.debug("MUTATE %s: writing", component)
            self._store.save(component, result)
            return MutationResult(True, copy.deepcopy(result))
