from __future__ import annotations

from pydantic import BaseModel

from .registry import DiskAliasRegistry, normalize_alias

TEMPLATER_COMPONENT = "templater"


class TemplateRecord(BaseModel):
    path: str
    description: str | None = None
    category: str | None = None
    created: str | None = None
    useCount: int = 0
    lastUsed: str | None = None


class DiskTemplateRepository(DiskAliasRegistry[TemplateRecord]):
    """
    Project templates ("templater"). `path` points at a template directory or archive.
    """

    component = TEMPLATER_COMPONENT
    record_model = TemplateRecord

    def register(
        self,
        alias: str,
        path: str,
        *,
        description: str | None = None,
        category: str | None = None,
        overwrite: bool = False,
    ) -> TemplateRecord:
        key = normalize_alias(alias)
        rec = TemplateRecord(path=path, description=description, category=category, created=self._clock())

        def _apply(doc: dict) -> dict:
            if key in doc and not overwrite:
                raise ValueError(f"template {key!r} is already registered")
            doc[key] = self._dump(rec)
            return doc

        self._store.mutate(self.component, _apply)
        return rec

    def unregister(self, alias: str) -> bool:
        return self.remove(alias)

    def record_use(self, alias: str) -> TemplateRecord | None:
        return self._bump(alias, "useCount", "lastUsed")

    def by_category(self, category: str) -> dict[str, TemplateRecord]:
        return {k: v for k, v in self.list().items() if v.category == category}
