from __future__ import annotations

import math
from typing import Any, Callable, Mapping

from pydantic import BaseModel

from .errors import DocumentEncodingError
from .interfaces import ToDocumentForm


def to_document_form(value: Any, to_encodable: Callable[[Any], Any] | None = None) -> Any:
    """
    Turn `value` into something that can live in a document.

    Order:
      1. `to_encodable(value)` when a converter is given
      2. `value.to_disk_doc()` (ToDocumentForm) or a pydantic model dump
      3. the value itself, if it is already JSON-encodable

    The result is normalized (tuples become lists). Raises DocumentEncodingError
    when nothing applies.
    """
    if to_encodable is not None:
        converted = to_encodable(value)
    else:
        converted = value
    return _normalize(converted, "$")


def _normalize(value: Any, where: str) -> Any:
    if isinstance(value, float) and not math.isfinite(value):
        raise DocumentEncodingError(f"{where}: {value!r} has no JSON representation")
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, ToDocumentForm):
        return _normalize(value.to_disk_doc(), where)
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, (list, tuple)):
        return [_normalize(v, f"{where}[{i}]") for i, v in enumerate(value)]
    if isinstance(value, Mapping):
        out: dict[str, Any] = {}
        for k, v in value.items():
            if not isinstance(k, str):
                raise DocumentEncodingError(f"{where}: mapping key {k!r} is not a string")
            out[k] = _normalize(v, f"{where}.{k}")
        return out
    raise DocumentEncodingError(
        f"{where}: {type(value).__name__} is not JSON-encodable; "
        "pass to_encodable or implement to_disk_doc()"
    )
