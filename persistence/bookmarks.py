from __future__ import annotations

from typing import Protocol

from pydantic import BaseModel

from .registry import DiskAliasRegistry, as_count, normalize_alias

QUICKJUMP_COMPONENT = "quickjump"


class BookmarkRecord(BaseModel):
    path: str
    category: str | None = None
    useCount: int = 0
    lastUsed: str | None = None
    added: str | None = None


class BookmarkRepository(Protocol):
    def add_bookmark(self, alias: str, path: str, *, category: str | None = None) -> BookmarkRecord:
        ...

    def remove(self, alias: str) -> bool:
        ...

    def get(self, alias: str) -> BookmarkRecord | None:
        ...

    def record_use(self, alias: str) -> BookmarkRecord | None:
        ...


class DiskBookmarkRepository(DiskAliasRegistry[BookmarkRecord], BookmarkRepository):
    """
    Directory bookmarks ("quickjump"):
      { "<alias>": { "path": "...", "category": "...", "useCount": 3, "lastUsed": "...", "added": "..." } }
    """

    component = QUICKJUMP_COMPONENT
    record_model = BookmarkRecord

    def add_bookmark(self, alias: str, path: str, *, category: str | None = None) -> BookmarkRecord:
        """Add or repoint a bookmark, keeping its usage history if it exists."""
        key = normalize_alias(alias)
        now = self._clock()

        def _apply(doc: dict) -> dict:
            existing = doc.get(key) if isinstance(doc.get(key), dict) else {}
            rec = BookmarkRecord(
                path=path,
                category=category if category is not None else existing.get("category"),
                useCount=as_count(existing.get("useCount")),
                lastUsed=existing.get("lastUsed"),
                added=existing.get("added") or now,
            )
            doc[key] = self._dump(rec)
            return doc

        _, doc = self._store.mutate(self.component, _apply)
        return BookmarkRecord.model_validate(doc[key])

    def list_bookmarks(self, *, category: str | None = None) -> dict[str, BookmarkRecord]:
        items = self.list()
        if category is None:
            return items
        return {k: v for k, v in items.items() if v.category == category}

    def find_by_path(self, path: str) -> list[str]:
        return [alias for alias, rec in self.list().items() if rec.path == path]

    def categories(self) -> list[str]:
        return sorted({rec.category for rec in self.list().values() if rec.category})

    def record_use(self, alias: str) -> BookmarkRecord | None:
        return self._bump(alias, "useCount", "lastUsed")

    def most_used(self, limit: int = 10) -> list[tuple[str, BookmarkRecord]]:
        items = sorted(self.list().items(), key=lambda kv: (-kv[1].useCount, kv[0]))
        return items[:limit]

    def recent(self, limit: int = 10) -> list[tuple[str, BookmarkRecord]]:
        used = [(k, v) for k, v in self.list().items() if v.lastUsed]
        used.sort(key=lambda kv: kv[1].lastUsed or "", reverse=True)
        return used[:limit]
