from __future__ import annotations

from pathlib import Path

FILE_SUFFIX = ".json"


def project_root() -> Path:
    # localstore/paths.py -> localstore -> project root
    return Path(__file__).resolve().parents[1]


def ensure_dir(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


def file_name_for(key: str) -> str:
    """
    Map a storage key to the base name of its backing file.

    The key is the file name; path separators are flattened so a key can never
    escape its directory.
    """
    if not key or not key.strip():
        raise ValueError("storage key must be a non-empty string")
    name = key.strip().replace("/", "_").replace("\\", "_")
    if not name.endswith(FILE_SUFFIX):
        name += FILE_SUFFIX
    return name


def storage_path(key: str, directory: Path | str) -> Path:
    return Path(directory) / file_name_for(key)
