"""
Site & Worker models.

A site has at most one incharge. ``incharge_name`` is a cached copy of the
incharge user's name and is rewritten whenever the incharge changes.
Foremen are not stored on the site; they are the users whose ``site_id``
points at it.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (Boolean, Column, DateTime, ForeignKey, Integer,
                        Numeric, String)

from site_attendance.db.base import Base


class Site(Base):
    __tablename__ = "sites"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    name: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    location: str = Column(String(300), nullable=False)  # type: ignore[assignment]
    incharge_id: int | None = Column(Integer, nullable=True, index=True)  # type: ignore[assignment]
    incharge_name: str = Column(String(200), nullable=False, default="")  # type: ignore[assignment]
    is_active: bool = Column(Boolean, default=True, server_default="1")  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )


class Worker(Base):
    __tablename__ = "workers"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    name: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    father_name: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    designation: str = Column(String(100), nullable=False, default="")  # type: ignore[assignment]
    daily_wage: float = Column(Numeric(10, 2), nullable=False)  # type: ignore[assignment]
    site_id: int = Column(  # type: ignore[assignment]
        Integer, ForeignKey("sites.id"), nullable=False, index=True
    )
    phone: str | None = Column(String(30), nullable=True)  # type: ignore[assignment]
    aadhar: str | None = Column(String(20), nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
