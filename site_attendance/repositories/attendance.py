"""
Attendance record storage.

The workflow only talks to :class:`AttendanceRepository`; the SQLAlchemy
implementation below is the one the API wires in. Uniqueness of
``(foreman_id, date)`` is enforced by a pre-check plus the table's unique
constraint, so a racing duplicate insert still fails with a conflict.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from site_attendance.core.enums import AttendanceStatus, Role
from site_attendance.core.exceptions import ConflictError
from site_attendance.models.attendance import AttendanceDraft, AttendanceRecord
from site_attendance.models.user import User

logger = logging.getLogger(__name__)

DUPLICATE_SUBMISSION = "Attendance already submitted for this date"


class AttendanceRepository(ABC):
    @abstractmethod
    async def create(self, record: AttendanceRecord) -> AttendanceRecord:
        """Insert a new record, assigning its id and ``submitted_at``."""

    @abstractmethod
    async def get(self, record_id: int) -> AttendanceRecord | None: ...

    @abstractmethod
    async def save(self, record: AttendanceRecord) -> AttendanceRecord:
        """Persist every change made to ``record`` in one unit."""

    @abstractmethod
    async def exists_for_date(self, foreman_id: int, date: str) -> bool: ...

    @abstractmethod
    async def find_pending_for_incharge(self, site_id: int) -> Sequence[AttendanceRecord]: ...

    @abstractmethod
    async def find_pending_for_admin(self) -> Sequence[AttendanceRecord]: ...

    @abstractmethod
    async def find_approved(self, limit: int = 20) -> Sequence[AttendanceRecord]: ...

    @abstractmethod
    async def find_recent(
        self,
        role: Role | str,
        site_id: int | None,
        foreman_id: int | None,
        limit: int = 10,
    ) -> Sequence[AttendanceRecord]: ...

    @abstractmethod
    async def find_by_foreman(self, foreman_id: int) -> Sequence[AttendanceRecord]: ...

    @abstractmethod
    async def find_between(
        self, start: str, end: str, site_id: int | None = None
    ) -> Sequence[AttendanceRecord]:
        """Records whose date falls in ``[start, end]`` (inclusive, YYYY-MM-DD)."""

    @abstractmethod
    async def count_by_status(
        self, *statuses: AttendanceStatus, site_id: int | None = None
    ) -> int: ...

    @abstractmethod
    async def foreman_names(self, foreman_ids: Iterable[int]) -> dict[int, str]:
        """Current display names of the given foremen that still exist."""

    # ── Drafts ───────────────────────────────────────────────────────
    @abstractmethod
    async def get_draft(self, foreman_id: int, date: str) -> AttendanceDraft | None: ...

    @abstractmethod
    async def save_draft(self, draft: AttendanceDraft) -> AttendanceDraft: ...


class SqlAttendanceRepository(AttendanceRepository):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def _all(self, query) -> list[AttendanceRecord]:
        result = await self._session.execute(query)
        return list(result.scalars().all())

    async def create(self, record: AttendanceRecord) -> AttendanceRecord:
        if await self.exists_for_date(record.foreman_id, record.date):
            raise ConflictError(DUPLICATE_SUBMISSION)

        record.submitted_at = datetime.now(timezone.utc)
        self._session.add(record)
        try:
            await self._session.flush()
        except IntegrityError:
            await self._session.rollback()
            logger.info(
                "Concurrent duplicate submission for foreman %d on %s",
                record.foreman_id,
                record.date,
            )
            raise ConflictError(DUPLICATE_SUBMISSION) from None

        # A saved draft for the same sheet is superseded by the submission
        draft = await self.get_draft(record.foreman_id, record.date)
        if draft is not None:
            await self._session.delete(draft)

        await self._session.commit()
        await self._session.refresh(record)
        return record

    async def get(self, record_id: int) -> AttendanceRecord | None:
        result = await self._session.execute(
            select(AttendanceRecord).where(AttendanceRecord.id == record_id)
        )
        return result.scalar_one_or_none()

    async def save(self, record: AttendanceRecord) -> AttendanceRecord:
        self._session.add(record)
        try:
            await self._session.commit()
        except Exception:
            await self._session.rollback()
            raise
        await self._session.refresh(record)
        return record

    async def exists_for_date(self, foreman_id: int, date: str) -> bool:
        result = await self._session.execute(
            select(AttendanceRecord.id)
            .where(AttendanceRecord.foreman_id == foreman_id, AttendanceRecord.date == date)
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def find_pending_for_incharge(self, site_id: int) -> list[AttendanceRecord]:
        return await self._all(
            select(AttendanceRecord)
            .where(
                AttendanceRecord.site_id == site_id,
                AttendanceRecord.status == AttendanceStatus.SUBMITTED.value,
            )
            .order_by(AttendanceRecord.submitted_at.asc(), AttendanceRecord.id.asc())
        )

    async def find_pending_for_admin(self) -> list[AttendanceRecord]:
        return await self._all(
            select(AttendanceRecord)
            .where(AttendanceRecord.status == AttendanceStatus.INCHARGE_REVIEWED.value)
            .order_by(AttendanceRecord.reviewed_at.asc(), AttendanceRecord.id.asc())
        )

    async def find_approved(self, limit: int = 20) -> list[AttendanceRecord]:
        return await self._all(
            select(AttendanceRecord)
            .where(AttendanceRecord.status == AttendanceStatus.ADMIN_APPROVED.value)
            .order_by(AttendanceRecord.approved_at.desc(), AttendanceRecord.id.desc())
            .limit(limit)
        )

    async def find_recent(
        self,
        role: Role | str,
        site_id: int | None,
        foreman_id: int | None,
        limit: int = 10,
    ) -> list[AttendanceRecord]:
        role = Role(role)
        # Foremen get an empty dashboard once their sheet is sent off
        if role == Role.FOREMAN:
            return []

        query = select(AttendanceRecord)
        if role == Role.SITE_INCHARGE:
            if site_id is None:
                return []
            query = query.where(AttendanceRecord.site_id == site_id)
        return await self._all(
            query.order_by(AttendanceRecord.submitted_at.desc(), AttendanceRecord.id.desc()).limit(
                limit
            )
        )

    async def find_by_foreman(self, foreman_id: int) -> list[AttendanceRecord]:
        return await self._all(
            select(AttendanceRecord)
            .where(AttendanceRecord.foreman_id == foreman_id)
            .order_by(AttendanceRecord.submitted_at.desc(), AttendanceRecord.id.desc())
        )

    async def find_between(
        self, start: str, end: str, site_id: int | None = None
    ) -> list[AttendanceRecord]:
        query = select(AttendanceRecord).where(
            AttendanceRecord.date >= start, AttendanceRecord.date <= end
        )
        if site_id is not None:
            query = query.where(AttendanceRecord.site_id == site_id)
        return await self._all(query.order_by(AttendanceRecord.date.asc()))

    async def count_by_status(
        self, *statuses: AttendanceStatus, site_id: int | None = None
    ) -> int:
        query = select(func.count(AttendanceRecord.id)).where(
            AttendanceRecord.status.in_([s.value for s in statuses])
        )
        if site_id is not None:
            query = query.where(AttendanceRecord.site_id == site_id)
        return (await self._session.execute(query)).scalar_one()

    async def foreman_names(self, foreman_ids: Iterable[int]) -> dict[int, str]:
        ids = set(foreman_ids)
        if not ids:
            return {}
        result = await self._session.execute(
            select(User.id, User.name).where(User.id.in_(ids))
        )
        return {user_id: name for user_id, name in result.all()}

    async def get_draft(self, foreman_id: int, date: str) -> AttendanceDraft | None:
        result = await self._session.execute(
            select(AttendanceDraft).where(
                AttendanceDraft.foreman_id == foreman_id, AttendanceDraft.date == date
            )
        )
        return result.scalar_one_or_none()

    async def save_draft(self, draft: AttendanceDraft) -> AttendanceDraft:
        self._session.add(draft)
        await self._session.commit()
        await self._session.refresh(draft)
        return draft
