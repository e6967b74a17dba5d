"""
Attendance record, entry and draft models.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (JSON, Boolean, Column, DateTime, ForeignKey, Index,
                        Integer, String, Text, UniqueConstraint)
from sqlalchemy.orm import relationship

from site_attendance.db.base import Base


class AttendanceRecord(Base):
    __tablename__ = "attendance_records"
    __table_args__ = (
        UniqueConstraint("foreman_id", "date", name="uq_record_foreman_date"),
        Index("ix_record_site_status", "site_id", "status"),
    )

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    date: str = Column(String(10), nullable=False, index=True)  # type: ignore[assignment]  # YYYY-MM-DD
    site_id: int = Column(Integer, nullable=False)  # type: ignore[assignment]
    site_name: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    foreman_id: int = Column(Integer, nullable=False)  # type: ignore[assignment]
    foreman_name: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    status: str = Column(String(30), nullable=False, index=True)  # type: ignore[assignment]
    # submitted | incharge_reviewed | admin_approved | rejected
    in_time: str | None = Column(String(20), nullable=True)  # type: ignore[assignment]
    out_time: str | None = Column(String(20), nullable=True)  # type: ignore[assignment]
    total_workers: int = Column(Integer, nullable=False, default=0)  # type: ignore[assignment]
    present_workers: int = Column(Integer, nullable=False, default=0)  # type: ignore[assignment]

    submitted_at: datetime = Column(DateTime(timezone=True), nullable=False)  # type: ignore[assignment]
    created_by: int = Column(Integer, nullable=False)  # type: ignore[assignment]
    reviewed_at: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]
    reviewed_by: int | None = Column(Integer, nullable=True)  # type: ignore[assignment]
    incharge_comments: str | None = Column(Text, nullable=True)  # type: ignore[assignment]
    approved_at: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]
    approved_by: int | None = Column(Integer, nullable=True)  # type: ignore[assignment]
    admin_comments: str | None = Column(Text, nullable=True)  # type: ignore[assignment]

    entries = relationship(
        "AttendanceEntry",
        back_populates="record",
        cascade="all, delete-orphan",
        order_by="AttendanceEntry.id",
        lazy="selectin",
    )


class AttendanceEntry(Base):
    __tablename__ = "attendance_entries"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    record_id: int = Column(  # type: ignore[assignment]
        Integer, ForeignKey("attendance_records.id"), nullable=False, index=True
    )
    worker_id: int = Column(Integer, nullable=False)  # type: ignore[assignment]
    worker_name: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    designation: str = Column(String(100), nullable=False, default="")  # type: ignore[assignment]
    is_present: bool = Column(Boolean, nullable=False, default=False)  # type: ignore[assignment]
    formula_x: int = Column(Integer, nullable=False, default=0)  # type: ignore[assignment]
    formula_y: int = Column(Integer, nullable=False, default=0)  # type: ignore[assignment]
    hours_worked: int = Column(Integer, nullable=False, default=0)  # type: ignore[assignment]
    remarks: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]

    record = relationship("AttendanceRecord", back_populates="entries")


class AttendanceDraft(Base):
    """Work-in-progress sheet a foreman saves before submitting."""

    __tablename__ = "attendance_drafts"
    __table_args__ = (
        UniqueConstraint("foreman_id", "date", name="uq_draft_foreman_date"),
    )

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    foreman_id: int = Column(Integer, nullable=False, index=True)  # type: ignore[assignment]
    date: str = Column(String(10), nullable=False)  # type: ignore[assignment]  # YYYY-MM-DD
    entries: list = Column(JSON, nullable=False, default=list)  # type: ignore[assignment]
    in_time: str | None = Column(String(20), nullable=True)  # type: ignore[assignment]
    out_time: str | None = Column(String(20), nullable=True)  # type: ignore[assignment]
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
