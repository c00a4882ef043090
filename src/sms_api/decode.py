from __future__ import annotations

from typing import TypeVar

from pydantic import BaseModel, ValidationError

from .errors import DecodeError

M = TypeVar("M", bound=BaseModel)


def decode(model: type[M], payload: bytes | str) -> M:
    """
    Decode one JSON object into a frozen resource model.

    Raises DecodeError naming the first offending field (dotted path for
    nested fields, "<payload>" when the body is not a JSON object at all).
    """
    try:
        return model.model_validate_json(payload)
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or "<payload>"
        raise DecodeError(field, first["msg"]) from exc
