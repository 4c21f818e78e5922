from __future__ import annotations

import contextlib
import logging
from typing import Any

from dotenv import load_dotenv
from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .errors import DocumentEncodingError, NotSupportedError
from .registry import DEFAULT_REGISTRY, StorageRegistry
from .storage import LocalStorage

router = APIRouter(tags=["storage"])
logger = logging.getLogger(__name__)


class ItemBody(BaseModel):
    value: Any = None


class DeleteItemsBody(BaseModel):
    keys: list[str] = Field(default_factory=list)


def _storage(request: Request) -> LocalStorage:
    storage = getattr(request.app.state, "storage", None)
    if storage is None:
        raise HTTPException(status_code=503, detail="storage not open")
    return storage


@router.get("/status")
async def status(request: Request):
    storage = _storage(request)
    error = storage.on_error.value
    return {
        "key": storage.key,
        "ready": storage.is_ready,
        "error": repr(error) if error is not None else None,
    }


@router.get("/items")
async def list_items(request: Request):
    storage = _storage(request)
    await storage.ready
    return JSONResponse(storage.get_data())


@router.get("/items/{name}")
async def get_item(name: str, request: Request):
    storage = _storage(request)
    await storage.ready
    if not storage.has_item(name):
        raise HTTPException(status_code=404, detail="unknown_key")
    return {"key": name, "value": storage.get_item(name)}


@router.put("/items/{name}")
async def put_item(name: str, body: ItemBody, request: Request):
    storage = _storage(request)
    try:
        await storage.set_item(name, body.value)
    except DocumentEncodingError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    return {"key": name, "value": storage.get_item(name)}


@router.delete("/items/{name}")
async def delete_item(name: str, request: Request):
    await _storage(request).delete_item(name)
    return {"deleted": [name]}


@router.post("/items/delete")
async def delete_items(body: DeleteItemsBody, request: Request):
    await _storage(request).delete_items(body.keys)
    return {"deleted": body.keys}


@router.delete("/items")
async def clear_items(request: Request):
    await _storage(request).clear()
    return {"cleared": True}


@router.get("/size")
async def storage_size(request: Request):
    storage = _storage(request)
    await storage.ready
    try:
        size = await storage.get_storage_size()
    except NotSupportedError as e:
        raise HTTPException(status_code=501, detail=str(e)) from e
    return {"bytes": size}


def create_app(registry: StorageRegistry | None = None, key: str | None = None) -> FastAPI:
    load_dotenv("local.env")

    reg = registry if registry is not None else DEFAULT_REGISTRY

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI):
        storage = reg.get_or_create(key or reg.settings.default_key)
        await storage.ready
        if storage.on_error.value is not None:
            logger.warning("APP: storage %s opened with error: %r", storage.key, storage.on_error.value)
        app.state.storage = storage
        try:
            yield
        finally:
            storage.dispose()
            app.state.storage = None

    app = FastAPI(lifespan=lifespan)
    app.include_router(router)
    return app
