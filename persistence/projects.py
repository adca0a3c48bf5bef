from __future__ import annotations

from pydantic import BaseModel

from .registry import DiskAliasRegistry, normalize_alias

UNITEA_COMPONENT = "unitea"


class ProjectRecord(BaseModel):
    path: str
    name: str | None = None
    unityVersion: str | None = None
    added: str | None = None
    lastOpened: str | None = None


class DiskProjectRepository(DiskAliasRegistry[ProjectRecord]):
    """
    Game-engine projects ("unitea"), keyed by alias.
    """

    component = UNITEA_COMPONENT
    record_model = ProjectRecord

    def add_project(
        self,
        alias: str,
        path: str,
        *,
        name: str | None = None,
        unity_version: str | None = None,
    ) -> ProjectRecord:
        key = normalize_alias(alias)
        now = self._clock()

        def _apply(doc: dict) -> dict:
            existing = doc.get(key) if isinstance(doc.get(key), dict) else {}
            rec = ProjectRecord(
                path=path,
                name=name or existing.get("name"),
                unityVersion=unity_version or existing.get("unityVersion"),
                added=existing.get("added") or now,
                lastOpened=existing.get("lastOpened"),
            )
            doc[key] = self._dump(rec)
            return doc

        _, doc = self._store.mutate(self.component, _apply)
        return ProjectRecord.model_validate(doc[key])

    def touch(self, alias: str) -> ProjectRecord | None:
        """Mark a project as opened now."""
        return self._bump(alias, None, "lastOpened")

    def set_unity_version(self, alias: str, version: str) -> ProjectRecord | None:
        def _edit(raw: dict) -> None:
            raw["unityVersion"] = version

        return self.update(alias, _edit)

    def recent(self, limit: int = 10) -> list[tuple[str, ProjectRecord]]:
        items = list(self.list().items())
        items.sort(key=lambda kv: kv[1].lastOpened or "", reverse=True)
        return items[:limit]
