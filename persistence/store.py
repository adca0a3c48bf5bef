from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from settings import Settings, get_settings

from .disk_store import DiskJsonDocumentStore
from .mutator import AtomicMutator, MutationFn, MutationResult
from .paths import PathResolver

logger = logging.getLogger(__name__)


class ComponentStore:
    """
    The API the shell commands use: load, save and mutate a component document.
    """

    def __init__(self, documents: DiskJsonDocumentStore, mutator: AtomicMutator):
        self._documents = documents
        self._mutator = mutator

    @property
    def documents(self) -> DiskJsonDocumentStore:
        return self._documents

    def path_for(self, component: str) -> Path:
        return self._documents.path_for(component)

    def load(self, component: str) -> dict[str, Any]:
        return self._documents.load(component)

    def save(self, component: str, doc: dict[str, Any]) -> None:
        self._documents.save(component, doc)

    def mutate(self, component: str, fn: MutationFn, *, timeout: float | None = None) -> MutationResult:
        return self._mutator.mutate(component, fn, timeout=timeout)


def create_store(settings: Settings | None = None, *, env_file: str | None = "local.env") -> ComponentStore:
    if settings is None:
        if env_file:
            load_dotenv(env_file)
        settings = get_settings()

    if settings.debug_log:
        logging.getLogger("persistence").setLevel(logging.DEBUG)

    resolver = PathResolver(settings.config_home)
    documents = DiskJsonDocumentStore(resolver)
    mutator = AtomicMutator(
        documents,
        lock_timeout=settings.lock_timeout,
        poll_interval=settings.lock_poll_interval,
        max_poll_interval=settings.lock_max_poll_interval,
    )
    logger.debug("STORE: using config root %s", resolver.root)
    return ComponentStore(documents, mutator)
