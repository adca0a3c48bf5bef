from __future__ import annotations

import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


@dataclass(frozen=True)
class Settings:
    # Location of all component documents (None = platform default)
    config_home: str | None

    # Advisory lock used by read-modify-write updates
    lock_timeout: float
    lock_poll_interval: float
    lock_max_poll_interval: float

    # Debug
    debug_log: bool


def get_settings() -> Settings:
    config_home = (os.getenv("SHELLMAGIC_CONFIG_HOME") or "").strip() or None

    lock_timeout = _env_float("SHELLMAGIC_LOCK_TIMEOUT", 10.0)
    lock_poll_interval = _env_float("SHELLMAGIC_LOCK_POLL_INTERVAL", 0.01)
    lock_max_poll_interval = _env_float("SHELLMAGIC_LOCK_MAX_POLL_INTERVAL", 0.25)

    debug_log = _env_bool("SHELLMAGIC_DEBUG_LOG", False)

    return Settings(
        config_home=config_home,
        lock_timeout=lock_timeout,
        lock_poll_interval=lock_poll_interval,
        lock_max_poll_interval=max(lock_poll_interval, lock_max_poll_interval),
        debug_log=debug_log,
    )
