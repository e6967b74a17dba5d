"""Pydantic schemas for users, login and password changes."""

from __future__ import annotations

from pydantic import field_validator

from site_attendance.core.enums import Role
from site_attendance.schemas.common import CamelModel, UtcDateTime

# Admin accounts are seeded, never created through the API
_CREATABLE_ROLES = {Role.FOREMAN.value, Role.SITE_INCHARGE.value}


def _clean_username(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("Username must not be empty")
    if len(v) > 100:
        raise ValueError("Username must not exceed 100 characters")
    return v


class UserCreate(CamelModel):
    role: str
    name: str
    father_name: str | None = None
    email: str | None = None
    username: str
    password: str
    site_id: int | None = None

    @field_validator("role")
    @classmethod
    def _validate_role(cls, v: str) -> str:
        if v not in _CREATABLE_ROLES:
            raise ValueError(f"Role must be one of: {sorted(_CREATABLE_ROLES)}")
        return v

    @field_validator("username")
    @classmethod
    def _username(cls, v: str) -> str:
        return _clean_username(v)

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name must not be empty")
        return v


class UserUpdate(CamelModel):
    name: str | None = None
    father_name: str | None = None
    email: str | None = None
    username: str | None = None
    password: str | None = None
    site_id: int | None = None
    is_active: bool | None = None

    @field_validator("username")
    @classmethod
    def _username(cls, v: str | None) -> str | None:
        return _clean_username(v) if v is not None else v


class UserRead(CamelModel):
    id: int
    username: str
    name: str
    father_name: str | None = None
    email: str | None = None
    role: str
    site_id: int | None = None
    is_active: bool
    created_at: UtcDateTime | None = None


class LoginRequest(CamelModel):
    username: str
    password: str


class LoginResponse(CamelModel):
    user: UserRead
    token: str


class ChangePasswordRequest(CamelModel):
    current_password: str
    new_password: str
