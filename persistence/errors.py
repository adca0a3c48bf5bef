from __future__ import annotations

from pathlib import Path


class StoreError(Exception):
    """Base class for every failure raised by the document store."""


class PathResolutionError(StoreError):
    """The config directory for a component could not be created."""


class CorruptionError(StoreError, ValueError):
    """
    File content is not a JSON object.

    Never surfaced to callers of the store: it is recovered internally.
    """


class StoreIOError(StoreError, OSError):
    """Reading or writing a document failed; the on-disk document is unchanged."""


class LockTimeoutError(StoreError, TimeoutError):
    """Another process held the component lock for longer than the timeout."""

    def __init__(self, path: Path, timeout: float):
        super().__init__(f"timed out after {timeout:g}s waiting for lock on {path}")
        self.path = path
        self.timeout = timeout
