from __future__ import annotations

import enum
from typing import Annotated, Any

from pydantic import BeforeValidator


def _enum_value(value: Any) -> Any:
    if isinstance(value, enum.Enum):
        return value.value
    return value


# ORM enum columns read back as plain strings
EnumStr = Annotated[str, BeforeValidator(_enum_value)]


def envelope(data: Any = None, message: str | None = None, count: int | None = None):
    body: dict[str, Any] = {"success": True, "data": data}
    if message is not None:
        body["message"] = message
    if count is not None:
        body["count"] = count
    return body
