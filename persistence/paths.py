from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path

from .errors import PathResolutionError

APP_DIR_NAME = "shellmagic"
DOCUMENT_FILENAME = "config.json"
CONFIG_HOME_ENV = "SHELLMAGIC_CONFIG_HOME"


def config_root(override: str | None = None) -> Path:
    """
    Pick the directory holding every component's document.

    Order: explicit override, SHELLMAGIC_CONFIG_HOME, the platform user-config
    directory, then a temp-dir fallback when no home directory is known.
    """
    explicit = override or os.getenv(CONFIG_HOME_ENV)
    if explicit:
        return Path(explicit).expanduser()
    base = _platform_config_dir()
    if base is None:
        return Path(tempfile.gettempdir()) / APP_DIR_NAME
    return base / APP_DIR_NAME


def _platform_config_dir() -> Path | None:
    if sys.platform == "win32":
        appdata = os.getenv("APPDATA")
        if appdata:
            return Path(appdata)
    try:
        home = Path.home()
    except (RuntimeError, KeyError):
        return None
    if sys.platform == "win32":
        return home / "AppData" / "Roaming"
    if sys.platform == "darwin":
        return home / "Library" / "Application Support"
    xdg = os.getenv("XDG_CONFIG_HOME")
    if xdg and os.path.isabs(xdg):
        return Path(xdg)
    return home / ".config"


def ensure_dir(path: Path) -> Path:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise PathResolutionError(
            f"cannot create config directory {path}: {e.strerror or e}. "
            f"Check its permissions or set {CONFIG_HOME_ENV} to a writable location."
        ) from e
    return path


def validate_component(component: str) -> str:
    name = component.strip() if isinstance(component, str) else ""
    if not name or name in (".", "..") or any(sep in name for sep in ("/", "\\", os.sep)):
        raise ValueError(f"invalid component name: {component!r}")
    return name


class PathResolver:
    """
    Maps a component name to <root>/<component>/config.json, creating directories.
    """

    def __init__(self, root: Path | str | None = None):
        self._root = Path(root) if root is not None else None

    @property
    def root(self) -> Path:
        # Resolved lazily so env changes (and test monkeypatching) are honored.
        return self._root if self._root is not None else config_root()

    def component_dir(self, component: str) -> Path:
        return ensure_dir(self.root / validate_component(component))

    def resolve(self, component: str) -> Path:
        return (self.component_dir(component) / DOCUMENT_FILENAME).absolute()
