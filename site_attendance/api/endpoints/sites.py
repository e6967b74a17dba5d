"""
Site endpoints.

- GET requires any authenticated user.
- POST / PUT require admin role.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from site_attendance.api.deps import get_current_active_user, get_db, require_admin
from site_attendance.core.enums import Role
from site_attendance.models.site import Site
from site_attendance.models.user import User
from site_attendance.schemas.common import ApiResponse, ok
from site_attendance.schemas.site import SiteCreate, SiteRead, SiteUpdate

router = APIRouter(prefix="/sites", tags=["sites"])
logger = logging.getLogger(__name__)


async def _get_incharge(db: AsyncSession, incharge_id: int) -> User:
    incharge = await db.get(User, incharge_id)
    if incharge is None:
        raise HTTPException(status_code=400, detail="Invalid inchargeId")
    if incharge.role != Role.SITE_INCHARGE.value:
        raise HTTPException(status_code=400, detail="Site incharge must have the site_incharge role")
    return incharge


async def _assign_incharge(db: AsyncSession, site: Site, incharge: User | None) -> None:
    """Point ``site`` at ``incharge`` and keep the cached name in step."""
    previous_id = site.incharge_id
    if previous_id is not None and (incharge is None or incharge.id != previous_id):
        # The replaced incharge loses the site it was scoped to
        previous = await db.get(User, previous_id)
        if previous is not None and previous.site_id == site.id:
            previous.site_id = None

    if incharge is None:
        site.incharge_id = None
        site.incharge_name = ""
        return
    # An incharge is scoped to one site
    await db.execute(
        update(Site)
        .where(Site.incharge_id == incharge.id, Site.id != site.id)
        .values(incharge_id=None, incharge_name="")
    )
    site.incharge_id = incharge.id
    site.incharge_name = incharge.name
    incharge.site_id = site.id


@router.get("", response_model=ApiResponse[list[SiteRead]])
async def list_sites(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_active_user),
) -> dict:
    result = await db.execute(select(Site).order_by(Site.id))
    return ok([SiteRead.model_validate(s) for s in result.scalars().all()])


@router.post("", response_model=ApiResponse[SiteRead], status_code=201)
async def create_site(
    body: SiteCreate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> dict:
    incharge = await _get_incharge(db, body.incharge_id) if body.incharge_id else None

    site = Site(name=body.name, location=body.location, incharge_name="", is_active=True)
    db.add(site)
    await db.flush()
    await _assign_incharge(db, site, incharge)

    if body.foreman_ids:
        result = await db.execute(
            select(User).where(User.id.in_(body.foreman_ids), User.role == Role.FOREMAN.value)
        )
        for foreman in result.scalars().all():
            foreman.site_id = site.id

    await db.commit()
    await db.refresh(site)
    logger.info("Created site %s (id %d)", site.name, site.id)
    return ok(SiteRead.model_validate(site))


@router.put("/{site_id}", response_model=ApiResponse[SiteRead])
async def update_site(
    site_id: int,
    body: SiteUpdate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> dict:
    site = await db.get(Site, site_id)
    if site is None:
        raise HTTPException(status_code=404, detail="Site not found")

    changes = body.model_dump(exclude_unset=True)
    if "incharge_id" in changes:
        incharge_id = changes.pop("incharge_id")
        incharge = await _get_incharge(db, incharge_id) if incharge_id else None
        await _assign_incharge(db, site, incharge)

    for field, value in changes.items():
        if value is not None:
            setattr(site, field, value)

    await db.commit()
    await db.refresh(site)
    logger.info("Updated site %d", site_id)
    return ok(SiteRead.model_validate(site))
