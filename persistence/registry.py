from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, ClassVar, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from .mutator import NO_CHANGE
from .store import ComponentStore, create_store

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


def now_iso() -> str:
    return datetime.now().isoformat(timespec="seconds")


def as_count(value: Any) -> int:
    """Stored counters that are missing or not numeric count as 0."""
    try:
        return max(int(value or 0), 0)
    except (TypeError, ValueError, OverflowError):
        return 0


def normalize_alias(alias: str) -> str:
    key = alias.strip() if isinstance(alias, str) else ""
    if not key:
        raise ValueError("alias must be a non-empty string")
    return key


class DiskAliasRegistry(Generic[RecordT]):
    """
    alias -> record map stored as one component document.

    Reads go through the cached store; every write is a locked mutation so
    concurrent shells never drop each other's changes. Entries that fail
    validation are skipped on read (and logged), never rewritten.
    """

    component: ClassVar[str]
    record_model: ClassVar[type[BaseModel]]

    def __init__(self, store: ComponentStore | None = None, *, clock: Callable[[], str] = now_iso):
        self._store = store or create_store()
        self._clock = clock

    @property
    def store(self) -> ComponentStore:
        return self._store

    def _parse(self, alias: str, raw: Any) -> RecordT | None:
        if not isinstance(raw, dict):
            return None
        try:
            return self.record_model.model_validate(raw)  # type: ignore[return-value]
        except ValidationError as e:
            logger.warning("%s: skipping invalid entry %r: %s", self.component.upper(), alias, e)
            return None

    def _dump(self, record: BaseModel) -> dict[str, Any]:
        return record.model_dump(mode="json", exclude_none=True)

    def get(self, alias: str) -> RecordT | None:
        doc = self._store.load(self.component)
        return self._parse(alias, doc.get(normalize_alias(alias)))

    def list(self) -> dict[str, RecordT]:
        doc = self._store.load(self.component)
        out: dict[str, RecordT] = {}
        for alias, raw in sorted(doc.items()):
            rec = self._parse(alias, raw)
            if rec is not None:
                out[alias] = rec
        return out

    def aliases(self) -> list[str]:
        return list(self.list().keys())

    def put(self, alias: str, record: RecordT) -> bool:
        key = normalize_alias(alias)
        validated = self._dump(record)

        def _apply(doc: dict[str, Any]) -> dict[str, Any]:
            doc[key] = validated
            return doc

        changed, _ = self._store.mutate(self.component, _apply)
        return changed

    def remove(self, alias: str) -> bool:
        key = normalize_alias(alias)

        def _apply(doc: dict[str, Any]) -> Any:
            if key not in doc:
                return NO_CHANGE
            doc.pop(key)
            return doc

        changed, _ = self._store.mutate(self.component, _apply)
        return changed

    def rename(self, old: str, new: str) -> bool:
        """Move a record to a new alias. Returns False if old is unknown."""
        src, dst = normalize_alias(old), normalize_alias(new)

        def _apply(doc: dict[str, Any]) -> Any:
            if src not in doc or src == dst:
                return NO_CHANGE
            if dst in doc:
                raise ValueError(f"alias {dst!r} already exists")
            doc[dst] = doc.pop(src)
            return doc

        changed, _ = self._store.mutate(self.component, _apply)
        return changed

    def update(self, alias: str, fn: Callable[[dict[str, Any]], None]) -> RecordT | None:
        """
        Atomically edit one raw record in place. Returns the updated record,
        or None if the alias does not exist.
        """
        key = normalize_alias(alias)

        def _apply(doc: dict[str, Any]) -> Any:
            raw = doc.get(key)
            if not isinstance(raw, dict):
                return NO_CHANGE
            fn(raw)
            return doc

        _, doc = self._store.mutate(self.component, _apply)
        return self._parse(key, doc.get(key))

    def _bump(self, alias: str, counter: str | None, stamp_field: str) -> RecordT | None:
        now = self._clock()

        def _edit(raw: dict[str, Any]) -> None:
            if counter is not None:
                raw[counter] = as_count(raw.get(counter)) + 1
            raw[stamp_field] = now

        return self.update(alias, _edit)
