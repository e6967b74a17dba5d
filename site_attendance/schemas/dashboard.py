"""Dashboard & health response schemas."""

from __future__ import annotations

from pydantic import BaseModel, Field

from site_attendance.schemas.common import CamelModel


class DayStat(CamelModel):
    day: str  # "Mon", "Tue", ...
    date: str
    present: int = 0
    total: int = 0


class DashboardStats(CamelModel):
    total_sites: int = 0
    total_workers: int = 0
    pending_approvals: int = 0
    today_attendance: int = 0
    weekly_stats: list[DayStat] = Field(default_factory=list)


class HealthResponse(BaseModel):
    status: str
    db: bool
    version: str
