from __future__ import annotations

import json
from pathlib import Path

from fastapi.testclient import TestClient

from localstore.api import create_app
from localstore.backends import DiskFileBackend, MemoryFileBackend
from localstore.registry import StorageRegistry


def test_item_routes_persist_to_disk(data_dir: Path):
    reg = StorageRegistry(DiskFileBackend(data_dir))
    with TestClient(create_app(registry=reg, key="app")) as client:
        r = client.get("/status")
        assert r.status_code == 200
        assert r.json() == {"key": "app", "ready": True, "error": None}

        r = client.put("/items/theme", json={"value": {"dark": True}})
        assert r.status_code == 200
        assert r.json() == {"key": "theme", "value": {"dark": True}}

        client.put("/items/a", json={"value": 1})
        client.put("/items/b", json={"value": 2})

        r = client.get("/items/theme")
        assert r.json()["value"] == {"dark": True}
        assert client.get("/items/missing").status_code == 404

        r = client.post("/items/delete", json={"keys": ["a", "b"]})
        assert r.status_code == 200
        assert client.get("/items").json() == {"theme": {"dark": True}}

        on_disk = json.loads((data_dir / "app.json").read_text(encoding="utf-8"))
        assert on_disk == {"theme": {"dark": True}}

        r = client.get("/size")
        assert r.status_code == 200
        assert r.json()["bytes"] == (data_dir / "app.json").stat().st_size

        client.delete("/items/theme")
        client.delete("/items")
        assert client.get("/items").json() == {}

    assert "app" not in reg


def test_status_surfaces_corrupt_file(data_dir: Path):
    data_dir.mkdir(parents=True)
    (data_dir / "app.json").write_text("{oops", encoding="utf-8")

    reg = StorageRegistry(DiskFileBackend(data_dir))
    with TestClient(create_app(registry=reg, key="app")) as client:
        body = client.get("/status").json()
        assert body["ready"] is True
        assert "LoadCorruptError" in body["error"]


def test_size_not_supported_without_filesystem(data_dir: Path):
    reg = StorageRegistry(MemoryFileBackend())
    with TestClient(create_app(registry=reg, key="app")) as client:
        r = client.get("/size")
        assert r.status_code == 501
