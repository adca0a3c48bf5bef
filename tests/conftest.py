from __future__ import annotations

from pathlib import Path
import sys


import pytest


# Ensure the repository root (parent of ./tests) is importable during pytest collection.
# This avoids ModuleNotFoundError for imports like `import persistence...` under pytest import modes
# that don't automatically prepend the cwd/rootdir to sys.path.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


@pytest.fixture
def sandbox_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """
    Point the config root at a temp directory so tests never touch the real user config.
    """
    root = tmp_path / "config"
    monkeypatch.setenv("SHELLMAGIC_CONFIG_HOME", str(root))
    monkeypatch.setenv("SHELLMAGIC_LOCK_TIMEOUT", "30")
    return root


@pytest.fixture
def store(sandbox_config: Path):
    from persistence.store import create_store
    from settings import get_settings

    return create_store(get_settings())
