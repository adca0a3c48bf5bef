from __future__ import annotations

from typing import Any, Callable, Protocol


class ComponentDocumentStore(Protocol):
    """
    Minimal DB-friendly interface: one JSON-like document per component name.
    """

    def load(self, component: str) -> dict[str, Any]:
        """Load and return the full document (never None)."""
        ...

    def save(self, component: str, doc: dict[str, Any]) -> None:
        """Persist the full document atomically."""
        ...


class DocumentMutator(Protocol):
    def mutate(self, component: str, fn: Callable[[dict[str, Any]], Any]) -> tuple[bool, dict[str, Any]]:
        """Apply fn to the latest document under the component lock."""
        ...
