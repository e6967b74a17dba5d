"""
User model — authentication & role-based access control.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String

from site_attendance.db.base import Base


class User(Base):
    __tablename__ = "users"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    username: str = Column(String(100), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    hashed_password: str = Column(String(128), nullable=False)  # type: ignore[assignment]
    name: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    father_name: str | None = Column(String(200), nullable=True)  # type: ignore[assignment]
    email: str | None = Column(String(320), nullable=True)  # type: ignore[assignment]
    role: str = Column(String(20), nullable=False)  # type: ignore[assignment]
    # foreman | site_incharge | admin
    site_id: int | None = Column(  # type: ignore[assignment]
        Integer, ForeignKey("sites.id", ondelete="SET NULL"), nullable=True, index=True
    )
    is_active: bool = Column(Boolean, default=True, server_default="1")  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
