from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any


def read_bytes(path: Path) -> bytes:
    """
    Read the raw file contents.

    Kept as a separate function so callers can inject a counting/faulty reader.
    """
    return path.read_bytes()


def parse_document(raw: bytes) -> dict[str, Any]:
    """
    Parse raw file bytes into a document.

    Empty/whitespace-only content is an empty document. Anything that is not a
    UTF-8 JSON object raises ValueError (UnicodeDecodeError and JSONDecodeError
    are both ValueError subclasses).
    """
    text = raw.decode("utf-8-sig")
    if not text.strip():
        return {}
    doc = json.loads(text)
    if not isinstance(doc, dict):
        raise ValueError(f"expected a JSON object, got {type(doc).__name__}")
    return doc


def dumps_document(payload: dict[str, Any], *, indent: int = 2, sort_keys: bool = True) -> str:
    """
    Serialize a document. NaN/Infinity are not JSON, so they raise ValueError.
    """
    if not isinstance(payload, dict):
        raise TypeError(f"document must be a dict, got {type(payload).__name__}")
    return json.dumps(payload, indent=indent, sort_keys=sort_keys, ensure_ascii=False, allow_nan=False) + "\n"


def atomic_write_text(path: Path, text: str) -> os.stat_result:
    """
    Atomically write text to disk: temp file in the same directory, fsync, replace.

    The target is either left untouched or fully replaced. The temp file is
    removed if anything fails before the replace completes.

    Returns the stat of the written file taken before the rename. The rename
    keeps inode, size and mtime, so this identifies our version even if
    another writer replaces the target right after.
    """
    fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
            st = os.fstat(f.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        try:
            tmp_path.unlink()
        except FileNotFoundError:
            pass
        raise
    return st


def atomic_write_json(
    path: Path, payload: dict[str, Any], *, indent: int = 2, sort_keys: bool = True
) -> os.stat_result:
    """
    Atomically write a JSON document to disk.
    """
    return atomic_write_text(path, dumps_document(payload, indent=indent, sort_keys=sort_keys))
