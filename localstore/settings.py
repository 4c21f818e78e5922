from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .paths import project_root


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


@dataclass(frozen=True)
class Settings:
    # Where keys without an explicit directory end up
    data_dir: Path

    # False selects the in-memory backend (no filesystem available)
    persist_to_disk: bool

    json_indent: int

    # Key served by the HTTP app
    default_key: str


def get_settings() -> Settings:
    raw_dir = os.getenv("LOCALSTORE_DATA_DIR", "").strip()
    data_dir = Path(raw_dir).expanduser() if raw_dir else project_root() / "data"

    persist_to_disk = _env_bool("LOCALSTORE_PERSIST_TO_DISK", True)
    json_indent = _env_int("LOCALSTORE_JSON_INDENT", 2)
    default_key = os.getenv("LOCALSTORE_DEFAULT_KEY", "settings").strip() or "settings"

    return Settings(
        data_dir=data_dir,
        persist_to_disk=persist_to_disk,
        json_indent=json_indent,
        default_key=default_key,
    )
