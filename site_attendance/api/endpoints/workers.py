"""
Worker endpoints.

- Foremen create workers on their own site and edit/delete only those.
- Admins may edit or delete any worker.
- Listing is open to admins and to foremen/incharges of the site.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from site_attendance.api.deps import get_current_active_user, get_db, require_foreman, require_roles
from site_attendance.core.enums import Role
from site_attendance.models.site import Worker
from site_attendance.models.user import User
from site_attendance.schemas.common import ApiResponse, ok
from site_attendance.schemas.site import WorkerCreate, WorkerRead, WorkerUpdate

router = APIRouter(prefix="/workers", tags=["workers"])
logger = logging.getLogger(__name__)

_require_editor = require_roles(Role.FOREMAN, Role.ADMIN)


async def _get_editable_worker(db: AsyncSession, worker_id: int, user: User) -> Worker:
    worker = await db.get(Worker, worker_id)
    if worker is None or (user.role == Role.FOREMAN.value and worker.site_id != user.site_id):
        raise HTTPException(status_code=404, detail="Worker not found or access denied")
    return worker


@router.get("/site/{site_id}", response_model=ApiResponse[list[WorkerRead]])
async def list_site_workers(
    site_id: int,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_active_user),
) -> dict:
    if user.role != Role.ADMIN.value and user.site_id != site_id:
        raise HTTPException(status_code=403, detail="Access denied to this site")

    result = await db.execute(
        select(Worker).where(Worker.site_id == site_id).order_by(Worker.name)
    )
    return ok([WorkerRead.model_validate(w) for w in result.scalars().all()])


@router.post("", response_model=ApiResponse[WorkerRead], status_code=201)
async def create_worker(
    body: WorkerCreate,
    db: AsyncSession = Depends(get_db),
    foreman: User = Depends(require_foreman),
) -> dict:
    if foreman.site_id is None:
        raise HTTPException(status_code=400, detail="Foreman is not assigned to a site")

    worker = Worker(**body.model_dump(), site_id=foreman.site_id)
    db.add(worker)
    await db.commit()
    await db.refresh(worker)
    logger.info("Created worker %s (id %d) on site %d", worker.name, worker.id, worker.site_id)
    return ok(WorkerRead.model_validate(worker))


@router.put("/{worker_id}", response_model=ApiResponse[WorkerRead])
async def update_worker(
    worker_id: int,
    body: WorkerUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(_require_editor),
) -> dict:
    worker = await _get_editable_worker(db, worker_id, user)

    for field, value in body.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(worker, field, value)

    await db.commit()
    await db.refresh(worker)
    logger.info("Updated worker %d", worker_id)
    return ok(WorkerRead.model_validate(worker))


@router.delete("/{worker_id}", response_model=ApiResponse[None])
async def delete_worker(
    worker_id: int,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(_require_editor),
) -> dict:
    """Remove a worker. Submitted attendance keeps its own copy of the name."""
    worker = await _get_editable_worker(db, worker_id, user)
    await db.delete(worker)
    await db.commit()
    logger.info("Deleted worker %d (%s)", worker_id, worker.name)
    return ok(message=f"Worker '{worker.name}' deleted")
