from __future__ import annotations

from .bookmarks import BookmarkRecord, BookmarkRepository, DiskBookmarkRepository
from .cache import DocumentCache, FileStamp
from .disk_store import DiskJsonDocumentStore
from .errors import CorruptionError, LockTimeoutError, PathResolutionError, StoreError, StoreIOError
from .mutator import NO_CHANGE, AtomicMutator, MutationResult
from .paths import PathResolver
from .projects import DiskProjectRepository, ProjectRecord
from .recovery import CorruptionRecovery
from .store import ComponentStore, create_store
from .templates import DiskTemplateRepository, TemplateRecord

__all__ = [
    "AtomicMutator",
    "BookmarkRecord",
    "BookmarkRepository",
    "ComponentStore",
    "CorruptionError",
    "CorruptionRecovery",
    "DiskBookmarkRepository",
    "DiskJsonDocumentStore",
    "DiskProjectRepository",
    "DiskTemplateRepository",
    "DocumentCache",
    "FileStamp",
    "LockTimeoutError",
    "MutationResult",
    "NO_CHANGE",
    "PathResolutionError",
    "PathResolver",
    "ProjectRecord",
    "StoreError",
    "StoreIOError",
    "TemplateRecord",
    "create_store",
]
