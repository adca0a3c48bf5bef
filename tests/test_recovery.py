from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

import pytest
from filelock import FileLock

import persistence.recovery as recovery_module
from persistence.disk_store import DiskJsonDocumentStore
from persistence.locks import lock_path_for
from persistence.mutator import AtomicMutator
from persistence.paths import PathResolver
from persistence.recovery import CorruptionRecovery, backup_path_for, list_backups

FIXED = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def _add_docs(doc: dict) -> dict:
    doc["docs"] = {"path": "/tmp", "useCount": 0}
    return doc


def _store(root: Path) -> DiskJsonDocumentStore:
    return DiskJsonDocumentStore(PathResolver(root), recovery=CorruptionRecovery(clock=lambda: FIXED))


def test_corrupt_file_is_backed_up_once_and_reset(tmp_path: Path, caplog: pytest.LogCaptureFixture):
    store = _store(tmp_path)
    path = store.path_for("quickjump")
    garbage = b'{"docs": {"path": "/tmp", '
    path.write_bytes(garbage)

    with caplog.at_level(logging.WARNING, logger="persistence.recovery"):
        assert store.load("quickjump") == {}

    backups = list_backups(path)
    assert [b.name for b in backups] == ["config.json.backup.20240102T030405"]
    assert backups[0].read_bytes() == garbage
    assert path.read_text(encoding="utf-8").strip() == "{}"
    assert any("corrupt" in r.getMessage() for r in caplog.records)

    assert store.load("quickjump") == {}
    assert _store(tmp_path).load("quickjump") == {}
    assert len(list_backups(path)) == 1


def test_non_object_json_counts_as_corruption(tmp_path: Path):
    store = _store(tmp_path)
    path = store.path_for("templater")
    path.write_text('["a", "b"]', encoding="utf-8")

    assert store.load("templater") == {}
    assert len(list_backups(path)) == 1


def test_invalid_utf8_counts_as_corruption(tmp_path: Path):
    store = _store(tmp_path)
    path = store.path_for("unitea")
    path.write_bytes(b"\xff\xfe\x00garbage")

    assert store.load("unitea") == {}
    assert list_backups(path)[0].read_bytes() == b"\xff\xfe\x00garbage"


def test_store_is_usable_after_recovery(tmp_path: Path):
    store = _store(tmp_path)
    store.path_for("quickjump").write_text("not json", encoding="utf-8")

    store.load("quickjump")
    store.save("quickjump", {"docs": {"path": "/tmp"}})
    assert _store(tmp_path).load("quickjump") == {"docs": {"path": "/tmp"}}


def test_backup_name_collision_gets_suffix(tmp_path: Path):
    path = tmp_path / "config.json"
    first = backup_path_for(path, FIXED)
    first.write_text("x", encoding="utf-8")

    second = backup_path_for(path, FIXED)
    assert second.name == "config.json.backup.20240102T030405-1"


def test_failed_reset_still_returns_empty_and_does_not_back_up_twice(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
):
    def _read_only(path, payload, **kwargs):
        raise PermissionError(30, "Read-only file system")

    monkeypatch.setattr(recovery_module, "atomic_write_json", _read_only)
    store = _store(tmp_path)
    path = store.path_for("quickjump")
    path.write_text("{oops", encoding="utf-8")

    assert store.load("quickjump") == {}
    assert store.load("quickjump") == {}
    assert path.read_text(encoding="utf-8") == "{oops"
    assert len(list_backups(path)) == 1


def test_failed_backup_still_resets(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    def _no_backup(path, when):
        raise PermissionError(13, "Permission denied")

    monkeypatch.setattr(recovery_module, "backup_path_for", _no_backup)
    path = tmp_path / "config.json"
    path.write_text("{oops", encoding="utf-8")

    doc = CorruptionRecovery().recover(path, b"{oops", ValueError("bad"))

    assert doc == {}
    assert path.read_text(encoding="utf-8").strip() == "{}"
    assert list_backups(path) == []


def test_recovery_does_not_overwrite_a_concurrent_commit(tmp_path: Path):
    other = AtomicMutator(_store(tmp_path), lock_timeout=5)
    committed: list[bool] = []

    def _read_then_let_other_shell_commit(path: Path) -> bytes:
        raw = path.read_bytes()
        if not committed:
            committed.append(True)
            other.mutate("quickjump", _add_docs)
        return raw

    store = DiskJsonDocumentStore(
        PathResolver(tmp_path),
        recovery=CorruptionRecovery(clock=lambda: FIXED),
        reader=_read_then_let_other_shell_commit,
    )
    path = store.path_for("quickjump")
    path.write_text("{broken", encoding="utf-8")

    assert store.load("quickjump") == {}

    expected = {"docs": {"path": "/tmp", "useCount": 0}}
    assert _store(tmp_path).load("quickjump") == expected
    assert store.load("quickjump") == expected
    assert len(list_backups(path)) == 1


def test_recovery_inside_mutate_backs_up_and_applies(tmp_path: Path):
    store = _store(tmp_path)
    path = store.path_for("quickjump")
    path.write_text("{broken", encoding="utf-8")

    changed, doc = AtomicMutator(store, lock_timeout=5).mutate("quickjump", _add_docs)

    assert changed is True
    assert doc == {"docs": {"path": "/tmp", "useCount": 0}}
    assert [b.read_bytes() for b in list_backups(path)] == [b"{broken"]


def test_recovery_leaves_file_alone_while_another_process_holds_the_lock(tmp_path: Path):
    store = DiskJsonDocumentStore(
        PathResolver(tmp_path), recovery=CorruptionRecovery(clock=lambda: FIXED, lock_timeout=0.1)
    )
    path = store.path_for("quickjump")
    path.write_text("{broken", encoding="utf-8")

    holder = FileLock(str(lock_path_for(path)))
    holder.acquire()
    try:
        assert store.load("quickjump") == {}
    finally:
        holder.release()

    assert path.read_text(encoding="utf-8") == "{broken"
    assert list_backups(path) == []


def test_failing_clock_does_not_escape_recovery(tmp_path: Path):
    def _broken_clock() -> datetime:
        raise RuntimeError("clock unavailable")

    path = tmp_path / "config.json"
    path.write_text("{oops", encoding="utf-8")

    assert CorruptionRecovery(clock=_broken_clock).recover(path, b"{oops", ValueError("bad")) == {}
    assert path.read_text(encoding="utf-8").strip() == "{}"


def test_unexpected_reset_error_does_not_escape_recovery(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    def _unserializable(path, payload, **kwargs):
        raise TypeError("cannot serialize")

    monkeypatch.setattr(recovery_module, "atomic_write_json", _unserializable)
    store = _store(tmp_path)
    path = store.path_for("quickjump")
    path.write_text("{oops", encoding="utf-8")

    assert store.load("quickjump") == {}
    assert path.read_text(encoding="utf-8") == "{oops"
