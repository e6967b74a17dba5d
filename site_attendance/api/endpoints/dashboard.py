"""
Dashboard aggregates and the public health check.

Admins see figures across every site; foremen and incharges see only their
own site (or nothing when they are not assigned to one).
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from site_attendance.api.deps import (get_attendance_repository,
                                      get_current_active_user, get_db)
from site_attendance.core.config import settings
from site_attendance.core.enums import AttendanceStatus, Role
from site_attendance.models.site import Site, Worker
from site_attendance.models.user import User
from site_attendance.repositories.attendance import AttendanceRepository
from site_attendance.schemas.common import ApiResponse, ok
from site_attendance.schemas.dashboard import (DashboardStats, DayStat,
                                               HealthResponse)

router = APIRouter(tags=["dashboard"])
logger = logging.getLogger(__name__)

WEEK_DAYS = 7


@router.get("/dashboard/stats", response_model=ApiResponse[DashboardStats])
async def dashboard_stats(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_active_user),
    repo: AttendanceRepository = Depends(get_attendance_repository),
) -> dict:
    today = datetime.now(timezone.utc).date()
    days = [today - timedelta(days=i) for i in range(WEEK_DAYS - 1, -1, -1)]

    if user.role == Role.ADMIN.value:
        site_id = None
    elif user.site_id is None:
        return ok(DashboardStats(weekly_stats=[
            DayStat(day=d.strftime("%a"), date=d.isoformat()) for d in days
        ]))
    else:
        site_id = user.site_id

    site_q = select(func.count(Site.id))
    worker_q = select(func.count(Worker.id))
    if site_id is not None:
        site_q = site_q.where(Site.id == site_id)
        worker_q = worker_q.where(Worker.site_id == site_id)
    total_sites = (await db.execute(site_q)).scalar_one()
    total_workers = (await db.execute(worker_q)).scalar_one()

    pending = await repo.count_by_status(
        AttendanceStatus.SUBMITTED, AttendanceStatus.INCHARGE_REVIEWED, site_id=site_id
    )

    records = await repo.find_between(days[0].isoformat(), today.isoformat(), site_id=site_id)
    by_day: dict[str, DayStat] = {
        d.isoformat(): DayStat(day=d.strftime("%a"), date=d.isoformat()) for d in days
    }
    for record in records:
        # Rejected sheets do not count towards presence
        if record.status == AttendanceStatus.REJECTED.value:
            continue
        stat = by_day.get(record.date)
        if stat is None:
            continue
        stat.present += record.present_workers
        stat.total += record.total_workers

    stats = DashboardStats(
        total_sites=total_sites,
        total_workers=total_workers,
        pending_approvals=pending,
        today_attendance=by_day[today.isoformat()].present,
        weekly_stats=list(by_day.values()),
    )
    return ok(stats)


@router.get("/health", response_model=HealthResponse)
async def health(db: AsyncSession = Depends(get_db)) -> HealthResponse:
    """Public health check: database connectivity."""
    db_ok = False
    try:
        await db.execute(select(1))
        db_ok = True
    except SQLAlchemyError as e:
        logger.error("Health check DB failure: %s", e)

    return HealthResponse(
        status="ok" if db_ok else "degraded", db=db_ok, version=settings.VERSION
    )
