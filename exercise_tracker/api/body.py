"""Request body parsing for JSON and HTML form submissions."""

from __future__ import annotations

import json
from typing import Any, Awaitable, Callable, TypeVar

from fastapi import Request
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..domain.errors import InvalidFieldError

ModelT = TypeVar("ModelT", bound=BaseModel)

_FORM_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


async def read_body(request: Request) -> dict[str, Any]:
    """Decode the request body into a flat mapping.

    JSON objects are returned as-is and form fields are flattened to their
    first value. Any other content type yields an empty mapping.
    """
    content_type = request.headers.get("content-type", "").split(";")[0].strip().lower()
    if content_type.startswith(_FORM_TYPES):
        form = await request.form()
        fields: dict[str, Any] = {}
        for key, value in form.multi_items():
            if isinstance(value, str):
                fields.setdefault(key, value)
        return fields

    raw = await request.body()
    if not raw.strip():
        return {}
    if content_type and content_type != "application/json" and not content_type.endswith("+json"):
        return {}
    try:
        data = json.loads(raw)
    except ValueError as exc:
        raise InvalidFieldError("Malformed request body") from exc
    if not isinstance(data, dict):
        raise InvalidFieldError("Malformed request body")
    return data


def parsed_body(model: type[ModelT]) -> Callable[[Request], Awaitable[ModelT]]:
    """Build a dependency that parses the body into ``model``."""

    async def dependency(request: Request) -> ModelT:
        data = await read_body(request)
        try:
            return model.model_validate(data)
        except PydanticValidationError as exc:
            field = ".".join(str(part) for part in exc.errors()[0]["loc"]) or "body"
            raise InvalidFieldError(f"Invalid {field}") from exc

    return dependency
