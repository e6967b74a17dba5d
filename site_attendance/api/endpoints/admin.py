"""
User management endpoints (admin only).

Deleting a user that is the incharge of a site clears the site's incharge.
Renaming such a user refreshes the site's cached ``incharge_name``.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from site_attendance.api.deps import get_db, require_admin
from site_attendance.core.enums import Role
from site_attendance.core.security import get_password_hash
from site_attendance.models.site import Site
from site_attendance.models.user import User
from site_attendance.schemas.common import ApiResponse, ok
from site_attendance.schemas.user import UserCreate, UserRead, UserUpdate

router = APIRouter(prefix="/admin", tags=["admin"])
logger = logging.getLogger(__name__)


async def _username_taken(db: AsyncSession, username: str) -> bool:
    result = await db.execute(select(User.id).where(User.username == username))
    return result.scalar_one_or_none() is not None


async def _require_site(db: AsyncSession, site_id: int) -> Site:
    site = await db.get(Site, site_id)
    if site is None:
        raise HTTPException(status_code=400, detail="Invalid siteId")
    return site


@router.post("/users", response_model=ApiResponse[UserRead], status_code=201)
async def create_user(
    body: UserCreate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> dict:
    """Create a foreman or site incharge account."""
    if await _username_taken(db, body.username):
        raise HTTPException(status_code=409, detail="Username already exists")
    if body.site_id is not None:
        await _require_site(db, body.site_id)

    user = User(
        username=body.username,
        hashed_password=get_password_hash(body.password),
        name=body.name,
        father_name=body.father_name,
        email=body.email,
        role=body.role,
        site_id=body.site_id,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    logger.info("Created %s account %s (id %d)", user.role, user.username, user.id)
    return ok(UserRead.model_validate(user))


@router.get("/users", response_model=ApiResponse[list[UserRead]])
async def list_users(
    role: Role | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> dict:
    query = select(User).order_by(User.id)
    if role is not None:
        query = query.where(User.role == role.value)
    result = await db.execute(query)
    return ok([UserRead.model_validate(u) for u in result.scalars().all()])


@router.put("/users/{user_id}", response_model=ApiResponse[UserRead])
async def update_user(
    user_id: int,
    body: UserUpdate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> dict:
    user = await db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")

    changes = body.model_dump(exclude_unset=True)
    username = changes.pop("username", None)
    if username and username != user.username:
        if await _username_taken(db, username):
            raise HTTPException(status_code=409, detail="Username already exists")
        user.username = username

    password = changes.pop("password", None)
    if password:
        user.hashed_password = get_password_hash(password)

    if changes.get("site_id") is not None:
        await _require_site(db, changes["site_id"])

    moved = "site_id" in changes and changes["site_id"] != user.site_id

    for field, value in changes.items():
        setattr(user, field, value)

    if "name" in changes and user.role == Role.SITE_INCHARGE.value:
        await db.execute(
            update(Site).where(Site.incharge_id == user.id).values(incharge_name=user.name)
        )
    if moved and user.role == Role.SITE_INCHARGE.value:
        # An incharge moved off a site no longer heads it
        await db.execute(
            update(Site)
            .where(Site.incharge_id == user.id, Site.id != user.site_id)
            .values(incharge_id=None, incharge_name="")
        )

    await db.commit()
    await db.refresh(user)
    logger.info("Updated user %d", user_id)
    return ok(UserRead.model_validate(user))


@router.delete("/users/{user_id}", response_model=ApiResponse[None])
async def delete_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> dict:
    if user_id == admin.id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")
    user = await db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")

    await db.execute(
        update(Site).where(Site.incharge_id == user.id).values(incharge_id=None, incharge_name="")
    )
    await db.delete(user)
    await db.commit()
    logger.info("Deleted user %d (%s)", user_id, user.username)
    return ok(message=f"User '{user.username}' deleted")
