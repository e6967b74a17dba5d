"""
Auth endpoints — login, current user & password change.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from site_attendance.api.deps import get_current_active_user, get_db
from site_attendance.core.config import settings
from site_attendance.core.security import (create_access_token, get_password_hash,
                                           verify_password)
from site_attendance.models.user import User
from site_attendance.schemas.common import ApiResponse, ok
from site_attendance.schemas.user import (ChangePasswordRequest, LoginRequest,
                                          LoginResponse, UserRead)

# Rate limiter, keyed by client IP
limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


@router.post("/login", response_model=ApiResponse[LoginResponse])
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def login(
    request: Request,
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Authenticate with username/password and return a bearer token."""
    result = await db.execute(select(User).where(User.username == body.username.strip()))
    user = result.scalar_one_or_none()

    if user is None or not verify_password(body.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive",
        )

    token = create_access_token(user.id, user.username)
    logger.info("User %s logged in", user.username)
    return ok(LoginResponse(user=UserRead.model_validate(user), token=token))


@router.get("/user", response_model=ApiResponse[UserRead])
async def read_current_user(
    current_user: User = Depends(get_current_active_user),
) -> dict:
    """Return profile of the currently authenticated user."""
    return ok(UserRead.model_validate(current_user))


@router.post("/change-password", response_model=ApiResponse[None])
async def change_password(
    body: ChangePasswordRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> dict:
    if not verify_password(body.current_password, current_user.hashed_password):
        raise HTTPException(status_code=400, detail="Current password is incorrect")
    if len(body.new_password) < settings.MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters",
        )

    current_user.hashed_password = get_password_hash(body.new_password)
    await db.commit()
    logger.info("Password changed for user %d", current_user.id)
    return ok(message="Password updated successfully")
