"""
Attendance workflow endpoints.

foreman submit → site incharge review → admin approve. Role and site checks
live in :class:`AttendanceWorkflow`; these handlers only translate HTTP.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Sequence

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from site_attendance.api.deps import (get_attendance_repository,
                                      get_current_active_user, get_db,
                                      get_workflow, require_admin)
from site_attendance.core.config import settings
from site_attendance.models.attendance import AttendanceRecord
from site_attendance.models.site import Site
from site_attendance.models.user import User
from site_attendance.repositories.attendance import AttendanceRepository
from site_attendance.schemas.attendance import (AdminDecision,
                                                AttendanceDraftRead,
                                                AttendanceDraftSave,
                                                AttendanceRecordRead,
                                                AttendanceSubmit,
                                                InchargeReview)
from site_attendance.schemas.common import ApiResponse, ok
from site_attendance.services.attendance import AttendanceWorkflow

router = APIRouter(prefix="/attendance", tags=["attendance"])


def to_read(record: AttendanceRecord, names: dict[int, str] | None = None) -> AttendanceRecordRead:
    read = AttendanceRecordRead.model_validate(record)
    return read.model_copy(
        update={
            "foreman_name": (names or {}).get(record.foreman_id, record.foreman_name),
            "total_hours": sum(e.hours_worked for e in record.entries if e.is_present),
        }
    )


async def to_read_list(
    records: Sequence[AttendanceRecord], repo: AttendanceRepository
) -> list[AttendanceRecordRead]:
    """Serialise records, preferring each foreman's current name."""
    names = await repo.foreman_names({r.foreman_id for r in records})
    return [to_read(r, names) for r in records]


# ── Foreman ─────────────────────────────────────────────────────────
@router.post("/submit", response_model=ApiResponse[AttendanceRecordRead])
async def submit_attendance(
    body: AttendanceSubmit,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_active_user),
    service: AttendanceWorkflow = Depends(get_workflow),
) -> dict:
    site = await db.get(Site, user.site_id) if user.site_id is not None else None
    record = await service.submit(user, site, body)
    return ok(to_read(record), "Attendance submitted successfully")


@router.post("/save-draft", response_model=ApiResponse[AttendanceDraftRead])
async def save_draft(
    body: AttendanceDraftSave,
    user: User = Depends(get_current_active_user),
    service: AttendanceWorkflow = Depends(get_workflow),
) -> dict:
    draft = await service.save_draft(user, body)
    return ok(AttendanceDraftRead.model_validate(draft), "Draft saved successfully")


@router.get("/draft/{date}", response_model=ApiResponse[AttendanceDraftRead])
async def get_draft(
    date: dt.date,
    user: User = Depends(get_current_active_user),
    service: AttendanceWorkflow = Depends(get_workflow),
) -> dict:
    draft = await service.get_draft(user, date.isoformat())
    return ok(AttendanceDraftRead.model_validate(draft))


@router.get("/check/{date}", response_model=ApiResponse[bool])
async def check_submission(
    date: dt.date,
    user: User = Depends(get_current_active_user),
    service: AttendanceWorkflow = Depends(get_workflow),
) -> dict:
    """Whether the caller already submitted attendance for ``date``."""
    return ok(await service.has_submitted(user, date.isoformat()))


# ── Site incharge ───────────────────────────────────────────────────
@router.get("/pending-review", response_model=ApiResponse[list[AttendanceRecordRead]])
async def pending_review(
    user: User = Depends(get_current_active_user),
    service: AttendanceWorkflow = Depends(get_workflow),
    repo: AttendanceRepository = Depends(get_attendance_repository),
) -> dict:
    records = await service.pending_for_incharge(user)
    return ok(await to_read_list(records, repo))


@router.post("/review/{record_id}", response_model=ApiResponse[AttendanceRecordRead])
async def review_attendance(
    record_id: int,
    body: InchargeReview,
    user: User = Depends(get_current_active_user),
    service: AttendanceWorkflow = Depends(get_workflow),
) -> dict:
    record = await service.review(user, record_id, body)
    return ok(to_read(record), f"Attendance {body.action.value}d successfully")


# ── Admin ───────────────────────────────────────────────────────────
@router.get("/pending-admin", response_model=ApiResponse[list[AttendanceRecordRead]])
async def pending_admin(
    user: User = Depends(get_current_active_user),
    service: AttendanceWorkflow = Depends(get_workflow),
    repo: AttendanceRepository = Depends(get_attendance_repository),
) -> dict:
    records = await service.pending_for_admin(user)
    return ok(await to_read_list(records, repo))


@router.post("/admin-approve/{record_id}", response_model=ApiResponse[AttendanceRecordRead])
async def admin_approve(
    record_id: int,
    body: AdminDecision,
    user: User = Depends(get_current_active_user),
    service: AttendanceWorkflow = Depends(get_workflow),
) -> dict:
    record = await service.decide(user, record_id, body)
    return ok(to_read(record), f"Attendance {body.action.value}d successfully")


@router.get("/approved", response_model=ApiResponse[list[AttendanceRecordRead]])
async def approved_records(
    _admin: User = Depends(require_admin),
    repo: AttendanceRepository = Depends(get_attendance_repository),
) -> dict:
    records = await repo.find_approved(settings.APPROVED_PAGE_SIZE)
    return ok(await to_read_list(records, repo))


@router.get("/foreman/{foreman_id}", response_model=ApiResponse[list[AttendanceRecordRead]])
async def records_by_foreman(
    foreman_id: int,
    _admin: User = Depends(require_admin),
    repo: AttendanceRepository = Depends(get_attendance_repository),
) -> dict:
    records = await repo.find_by_foreman(foreman_id)
    return ok(await to_read_list(records, repo))


# ── Dashboard feed ──────────────────────────────────────────────────
@router.get("/recent", response_model=ApiResponse[list[AttendanceRecordRead]])
async def recent_attendance(
    user: User = Depends(get_current_active_user),
    repo: AttendanceRepository = Depends(get_attendance_repository),
) -> dict:
    records = await repo.find_recent(user.role, user.site_id, user.id, settings.RECENT_PAGE_SIZE)
    return ok(await to_read_list(records, repo))
