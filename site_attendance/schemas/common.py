"""Shared schema base and the response envelope."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Generic, TypeVar

from pydantic import AfterValidator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


def _assume_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; every stored timestamp is UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


UtcDateTime = Annotated[datetime, AfterValidator(_assume_utc)]


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire (both accepted on input)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    data: T | None = None
    message: str | None = None


def ok(data: object = None, message: str | None = None) -> dict:
    """Build a success envelope; FastAPI validates it against the response model."""
    return {"success": True, "data": data, "message": message}
