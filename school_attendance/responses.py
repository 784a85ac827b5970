"""
The JSON envelope every successful API response is wrapped in.

Bodies look like ``{"success": true, "data": <payload>}``; existing browser
clients read the payload as ``response.data.data`` so the shape is fixed.
"""
import math
from typing import Any, Iterable

from pydantic import BaseModel


def dump(value: Any) -> Any:
    """Serialise pydantic models (camelCase aliases) and lists of them to plain JSON types."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, (list, tuple)):
        return [dump(v) for v in value]
    return value


def envelope(data: Any, **extra: Any) -> dict:
    body = {"success": True}
    body.update(extra)
    body["data"] = dump(data)
    return body


def paginated(items: Iterable[Any], total: int, page: int, limit: int) -> dict:
    items = list(items)
    return envelope(
        items,
        count=len(items),
        total=total,
        pagination={
            "page": page,
            "limit": limit,
            "totalPages": math.ceil(total / limit) if limit else 0,
        },
    )
