import enum
import uuid
from typing import TypeVar

from pydantic import BaseModel

from app.errors import ValidationError

E = TypeVar("E", bound=enum.Enum)


def coerce_uuid(value):
    if value is None:
        return None
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise ValidationError(f"Invalid id: {value}")


def coerce_enum(enum_cls: type[E], value, field: str) -> E:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = sorted(e.value for e in enum_cls)
        raise ValidationError(f"Invalid {field}. Allowed: {allowed}")


def partial_update(payload: BaseModel) -> dict:
    """Fields the caller actually sent; an empty update is rejected."""
    data = payload.model_dump(exclude_unset=True)
    if not data:
        raise ValidationError("No fields to update")
    return data


def apply_ordering(query, order_by, order_dir, allowed_columns):
    if order_by not in allowed_columns:
        raise ValidationError(
            f"Invalid order_by. Allowed: {', '.join(sorted(allowed_columns))}"
        )
    column = allowed_columns[order_by]
    if order_dir == "desc":
        return query.order_by(column.desc())
    return query.order_by(column.asc())


def apply_pagination(query, limit, offset):
    return query.limit(limit).offset(offset)
