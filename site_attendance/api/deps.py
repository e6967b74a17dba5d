"""
FastAPI dependencies — database session, auth guards and workflow wiring.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from site_attendance.core.config import settings
from site_attendance.core.enums import Role
from site_attendance.core.security import decode_access_token
from site_attendance.db.session import async_session_factory
from site_attendance.models.user import User
from site_attendance.repositories.attendance import (AttendanceRepository,
                                                     SqlAttendanceRepository)
from site_attendance.services.attendance import AttendanceWorkflow

oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_PREFIX}/auth/login", auto_error=False
)


# ── Database session ────────────────────────────────────────────────
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


# ── Auth dependencies ───────────────────────────────────────────────
async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Decode the bearer JWT and resolve it to a stored user."""
    credentials_exc = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if not token:
        raise credentials_exc

    payload = decode_access_token(token)
    if payload is None:
        raise credentials_exc

    try:
        user_id = int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise credentials_exc from None

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None or user.username != payload.get("username"):
        raise credentials_exc
    return user


async def get_current_active_user(
    current_user: User = Depends(get_current_user),
) -> User:
    """Reject inactive accounts."""
    if not current_user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user account")
    return current_user


def require_roles(*roles: Role) -> Callable:
    """Dependency factory allowing only the given roles through."""
    allowed = {r.value for r in roles}
    label = " or ".join(r.value for r in roles)

    async def _guard(current_user: User = Depends(get_current_active_user)) -> User:
        if current_user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Only {label} users can access this",
            )
        return current_user

    return _guard


require_admin = require_roles(Role.ADMIN)
require_foreman = require_roles(Role.FOREMAN)


# ── Workflow ────────────────────────────────────────────────────────
def get_attendance_repository(db: AsyncSession = Depends(get_db)) -> AttendanceRepository:
    return SqlAttendanceRepository(db)


def get_workflow(
    records: AttendanceRepository = Depends(get_attendance_repository),
) -> AttendanceWorkflow:
    return AttendanceWorkflow(records)
