"""Pydantic schemas for attendance submission, review, approval and drafts."""

from __future__ import annotations

import datetime as dt
from typing import Annotated

from pydantic import Field

from site_attendance.core.enums import ReviewDecision
from site_attendance.schemas.common import CamelModel, UtcDateTime
from site_attendance.services.hours import MAX_INPUT_VALUE

# Finite and bounded; clamping to the stored form happens on write
HoursInput = Annotated[
    float, Field(ge=-MAX_INPUT_VALUE, le=MAX_INPUT_VALUE, allow_inf_nan=False)
]


# ── Entries ─────────────────────────────────────────────────────────
class AttendanceEntryIn(CamelModel):
    worker_id: int
    worker_name: str = ""
    designation: str = ""
    is_present: bool = False
    # Negative X or Y above 7 are clamped when stored
    formula_x: HoursInput | None = None
    formula_y: HoursInput | None = None
    hours_worked: HoursInput | None = None
    remarks: str | None = None


class AttendanceEntryEdit(CamelModel):
    """Incharge override for one worker; unset fields keep the submitted value."""

    worker_id: int
    is_present: bool | None = None
    formula_x: HoursInput | None = None
    formula_y: HoursInput | None = None
    hours_worked: HoursInput | None = None
    remarks: str | None = None


class AttendanceEntryRead(CamelModel):
    worker_id: int
    worker_name: str
    designation: str
    is_present: bool
    formula_x: int
    formula_y: int
    hours_worked: int
    remarks: str | None = None


# ── Submission ──────────────────────────────────────────────────────
class AttendanceSubmit(CamelModel):
    date: dt.date
    entries: list[AttendanceEntryIn] = Field(min_length=1)
    in_time: str | None = None
    out_time: str | None = None


class AttendanceDraftSave(CamelModel):
    date: dt.date
    entries: list[AttendanceEntryIn] = Field(default_factory=list)
    in_time: str | None = None
    out_time: str | None = None


class AttendanceDraftRead(CamelModel):
    date: str
    entries: list[AttendanceEntryRead]
    in_time: str | None = None
    out_time: str | None = None
    updated_at: UtcDateTime | None = None


# ── Review / approval ───────────────────────────────────────────────
class InchargeReview(CamelModel):
    action: ReviewDecision
    entries: list[AttendanceEntryEdit] = Field(default_factory=list)
    incharge_comments: str | None = None
    checked_entries: list[int] = Field(default_factory=list)


class AdminDecision(CamelModel):
    action: ReviewDecision
    admin_comments: str | None = None


# ── Records ─────────────────────────────────────────────────────────
class AttendanceRecordRead(CamelModel):
    id: int
    date: str
    site_id: int
    site_name: str
    foreman_id: int
    foreman_name: str
    entries: list[AttendanceEntryRead]
    status: str
    submitted_at: UtcDateTime
    reviewed_at: UtcDateTime | None = None
    reviewed_by: int | None = None
    approved_at: UtcDateTime | None = None
    approved_by: int | None = None
    incharge_comments: str | None = None
    admin_comments: str | None = None
    in_time: str | None = None
    out_time: str | None = None
    total_workers: int
    present_workers: int
    created_by: int
    total_hours: int = 0
