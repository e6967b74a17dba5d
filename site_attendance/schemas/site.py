"""Pydantic schemas for sites and workers."""

from __future__ import annotations

from pydantic import Field, field_validator

from site_attendance.schemas.common import CamelModel


def _required_text(v: str, field: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError(f"{field} must not be empty")
    return v


# ── Site ────────────────────────────────────────────────────────────
class SiteCreate(CamelModel):
    name: str
    location: str
    incharge_id: int | None = None
    foreman_ids: list[int] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        return _required_text(v, "Name")

    @field_validator("location")
    @classmethod
    def _location(cls, v: str) -> str:
        return _required_text(v, "Location")


class SiteUpdate(CamelModel):
    name: str | None = None
    location: str | None = None
    incharge_id: int | None = None
    is_active: bool | None = None


class SiteRead(CamelModel):
    id: int
    name: str
    location: str
    incharge_id: int | None = None
    incharge_name: str = ""
    is_active: bool


# ── Worker ──────────────────────────────────────────────────────────
class WorkerCreate(CamelModel):
    name: str
    father_name: str
    designation: str = ""
    daily_wage: float = Field(ge=0)
    phone: str | None = None
    aadhar: str | None = None

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        return _required_text(v, "Name")

    @field_validator("father_name")
    @classmethod
    def _father_name(cls, v: str) -> str:
        return _required_text(v, "Father name")

    @field_validator("designation")
    @classmethod
    def _designation(cls, v: str) -> str:
        return v.strip()


class WorkerUpdate(CamelModel):
    name: str | None = None
    father_name: str | None = None
    designation: str | None = None
    daily_wage: float | None = Field(default=None, ge=0)
    phone: str | None = None
    aadhar: str | None = None


class WorkerRead(CamelModel):
    id: int
    name: str
    father_name: str
    designation: str
    daily_wage: float
    site_id: int
    phone: str | None = None
    aadhar: str | None = None
