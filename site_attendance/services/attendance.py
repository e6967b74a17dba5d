"""
Attendance workflow service: submission, incharge review, admin approval.

Every operation validates the caller, the record state and the payload
before touching the record, then persists through a single repository
call, so a failure leaves nothing half-written.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from site_attendance.core.enums import AttendanceStatus, ReviewDecision, Role
from site_attendance.core.exceptions import (ConflictError, InvalidInputError,
                                             NotFoundError, PermissionDeniedError)
from site_attendance.models.attendance import (AttendanceDraft, AttendanceEntry,
                                               AttendanceRecord)
from site_attendance.models.site import Site
from site_attendance.models.user import User
from site_attendance.repositories.attendance import (DUPLICATE_SUBMISSION,
                                                     AttendanceRepository)
from site_attendance.schemas.attendance import (AdminDecision, AttendanceDraftSave,
                                                AttendanceEntryIn, AttendanceSubmit,
                                                InchargeReview)
from site_attendance.services import workflow
from site_attendance.services.hours import normalise_entry

logger = logging.getLogger(__name__)


def build_entry(entry: AttendanceEntryIn) -> AttendanceEntry:
    hours = normalise_entry(
        entry.is_present, entry.formula_x, entry.formula_y, entry.hours_worked
    )
    return AttendanceEntry(
        worker_id=entry.worker_id,
        worker_name=entry.worker_name,
        designation=entry.designation,
        is_present=hours.is_present,
        formula_x=hours.formula_x,
        formula_y=hours.formula_y,
        hours_worked=hours.hours_worked,
        remarks=entry.remarks,
    )


def entry_as_input(entry: AttendanceEntry) -> AttendanceEntryIn:
    return AttendanceEntryIn(
        worker_id=entry.worker_id,
        worker_name=entry.worker_name,
        designation=entry.designation,
        is_present=entry.is_present,
        formula_x=entry.formula_x,
        formula_y=entry.formula_y,
        hours_worked=entry.hours_worked,
        remarks=entry.remarks,
    )


def _check_unique_workers(worker_ids: list[int]) -> None:
    if len(worker_ids) != len(set(worker_ids)):
        raise InvalidInputError("Each worker may appear only once per attendance sheet")


def _require_role(user: User, role: Role, message: str) -> None:
    if user.role != role.value:
        raise PermissionDeniedError(message)


class AttendanceWorkflow:
    def __init__(self, records: AttendanceRepository) -> None:
        self._records = records

    async def _get_record(self, record_id: int) -> AttendanceRecord:
        record = await self._records.get(record_id)
        if record is None:
            raise NotFoundError("Attendance record not found")
        return record

    # ── Foreman ──────────────────────────────────────────────────────
    async def submit(
        self, foreman: User, site: Site | None, body: AttendanceSubmit
    ) -> AttendanceRecord:
        _require_role(foreman, Role.FOREMAN, "Only foremen can submit attendance")
        if foreman.site_id is None or site is None:
            raise InvalidInputError("Foreman is not assigned to a site")

        _check_unique_workers([e.worker_id for e in body.entries])
        entries = [build_entry(e) for e in body.entries]
        present = sum(1 for e in entries if e.is_present)
        if present == 0:
            raise InvalidInputError("Please mark at least one worker as present")

        record = AttendanceRecord(
            date=body.date.isoformat(),
            site_id=site.id,
            site_name=site.name,
            foreman_id=foreman.id,
            foreman_name=foreman.name,
            status=AttendanceStatus.SUBMITTED.value,
            in_time=body.in_time or None,
            out_time=body.out_time or None,
            total_workers=len(entries),
            present_workers=present,
            created_by=foreman.id,
            entries=entries,
        )
        record = await self._records.create(record)
        logger.info(
            "Attendance %d submitted by foreman %d for %s (%d/%d present)",
            record.id,
            foreman.id,
            record.date,
            present,
            len(entries),
        )
        return record

    async def has_submitted(self, user: User, date: str) -> bool:
        return await self._records.exists_for_date(user.id, date)

    async def save_draft(self, foreman: User, body: AttendanceDraftSave) -> AttendanceDraft:
        _require_role(foreman, Role.FOREMAN, "Only foremen can save drafts")
        date = body.date.isoformat()
        if await self._records.exists_for_date(foreman.id, date):
            raise ConflictError(DUPLICATE_SUBMISSION)

        _check_unique_workers([e.worker_id for e in body.entries])
        stored = []
        for entry in body.entries:
            hours = normalise_entry(
                entry.is_present, entry.formula_x, entry.formula_y, entry.hours_worked
            )
            stored.append(
                {
                    "worker_id": entry.worker_id,
                    "worker_name": entry.worker_name,
                    "designation": entry.designation,
                    "is_present": hours.is_present,
                    "formula_x": hours.formula_x,
                    "formula_y": hours.formula_y,
                    "hours_worked": hours.hours_worked,
                    "remarks": entry.remarks,
                }
            )

        draft = await self._records.get_draft(foreman.id, date)
        if draft is None:
            draft = AttendanceDraft(foreman_id=foreman.id, date=date)
        draft.entries = stored
        draft.in_time = body.in_time or None
        draft.out_time = body.out_time or None
        draft = await self._records.save_draft(draft)
        logger.info("Draft saved by foreman %d for %s", foreman.id, date)
        return draft

    async def get_draft(self, foreman: User, date: str) -> AttendanceDraft:
        _require_role(foreman, Role.FOREMAN, "Only foremen have drafts")
        draft = await self._records.get_draft(foreman.id, date)
        if draft is None:
            raise NotFoundError("No draft saved for this date")
        return draft

    # ── Site incharge ────────────────────────────────────────────────
    async def pending_for_incharge(self, incharge: User) -> list[AttendanceRecord]:
        _require_role(
            incharge, Role.SITE_INCHARGE, "Only site incharges can review attendance"
        )
        if incharge.site_id is None:
            return []
        return list(await self._records.find_pending_for_incharge(incharge.site_id))

    async def review(
        self, incharge: User, record_id: int, body: InchargeReview
    ) -> AttendanceRecord:
        action = workflow.review_action(body.action)
        workflow.authorize(action, incharge.role)
        record = await self._get_record(record_id)
        if incharge.site_id is None or record.site_id != incharge.site_id:
            raise PermissionDeniedError("This record belongs to another site")
        target = workflow.next_status(record.status, action)

        merged = self._merge_edits(record, body)
        if body.action == ReviewDecision.APPROVE:
            present_ids = {e.worker_id for e in merged if e.is_present}
            if not present_ids:
                raise InvalidInputError("At least one worker must be present to approve")
            unchecked = present_ids - set(body.checked_entries)
            if unchecked:
                raise InvalidInputError(
                    f"Every present entry must be reviewed before approval "
                    f"({len(unchecked)} unchecked)"
                )
            # Only workers still present move forward to the admin stage
            merged = [e for e in merged if e.is_present]

        record.entries = merged
        record.incharge_comments = body.incharge_comments
        record.reviewed_at = datetime.now(timezone.utc)
        record.reviewed_by = incharge.id
        record.status = target.value
        record = await self._records.save(record)
        logger.info(
            "Attendance %d %s by incharge %d -> %s",
            record.id,
            body.action.value,
            incharge.id,
            record.status,
        )
        return record

    @staticmethod
    def _merge_edits(record: AttendanceRecord, body: InchargeReview) -> list[AttendanceEntry]:
        edits = {}
        for edit in body.entries:
            if edit.worker_id in edits:
                raise InvalidInputError(f"Duplicate edit for worker {edit.worker_id}")
            edits[edit.worker_id] = edit

        known = {e.worker_id for e in record.entries}
        unknown = set(edits) - known
        if unknown:
            raise InvalidInputError(
                f"Edits reference workers not on this record: {sorted(unknown)}"
            )

        merged = []
        for entry in record.entries:
            current = entry_as_input(entry)
            edit = edits.get(entry.worker_id)
            if edit is not None:
                changes = edit.model_dump(exclude_unset=True, exclude={"worker_id"})
                if changes.get("is_present", False) is None:
                    # An explicit null leaves presence as submitted
                    del changes["is_present"]
                if "hours_worked" in changes and not {"formula_x", "formula_y"} & changes.keys():
                    # Hours given on their own replace the formula split
                    changes.setdefault("formula_x", None)
                    changes.setdefault("formula_y", None)
                current = current.model_copy(update=changes)
            merged.append(build_entry(current))
        return merged

    # ── Admin ────────────────────────────────────────────────────────
    async def pending_for_admin(self, admin: User) -> list[AttendanceRecord]:
        _require_role(admin, Role.ADMIN, "Only admins can access this")
        return list(await self._records.find_pending_for_admin())

    async def decide(self, admin: User, record_id: int, body: AdminDecision) -> AttendanceRecord:
        action = workflow.admin_action(body.action)
        workflow.authorize(action, admin.role)
        record = await self._get_record(record_id)
        target = workflow.next_status(record.status, action)

        record.admin_comments = body.admin_comments
        record.approved_at = datetime.now(timezone.utc)
        record.approved_by = admin.id
        record.status = target.value
        record = await self._records.save(record)
        logger.info(
            "Attendance %d %s by admin %d -> %s",
            record.id,
            body.action.value,
            admin.id,
            record.status,
        )
        return record
