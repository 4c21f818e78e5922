from __future__ import annotations

from pathlib import Path
import sys


import pytest


# Ensure the repository root (parent of ./tests) is importable during pytest collection
# without requiring an editable install.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


@pytest.fixture
def data_dir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """
    Point the default data directory at a temp dir so tests never touch real ./data.
    """
    p = tmp_path / "data"
    monkeypatch.setenv("LOCALSTORE_DATA_DIR", str(p))
    monkeypatch.delenv("LOCALSTORE_PERSIST_TO_DISK", raising=False)
    monkeypatch.delenv("LOCALSTORE_JSON_INDENT", raising=False)
    monkeypatch.delenv("LOCALSTORE_DEFAULT_KEY", raising=False)
    return p


@pytest.fixture
def registry(data_dir: Path):
    """
    Fresh registry over the sandboxed disk backend.
    """
    from localstore.backends import DiskFileBackend
    from localstore.registry import StorageRegistry

    reg = StorageRegistry(DiskFileBackend(data_dir))
    yield reg
    reg.dispose_all()


@pytest.fixture
def memory_registry(data_dir: Path):
    from localstore.backends import MemoryFileBackend
    from localstore.registry import StorageRegistry

    reg = StorageRegistry(MemoryFileBackend())
    yield reg
    reg.dispose_all()
