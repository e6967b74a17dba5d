"""
Attendance approval state machine.

    submitted ──review-approve──▶ incharge_reviewed ──admin-approve──▶ admin_approved
        │                              │
        └──review-reject──▶ rejected ◀─┘ admin-reject

``admin_approved`` and ``rejected`` are terminal.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from site_attendance.core.enums import AttendanceStatus, ReviewDecision, Role
from site_attendance.core.exceptions import InvalidTransitionError, PermissionDeniedError


class WorkflowAction(str, Enum):
    REVIEW_APPROVE = "review-approve"
    REVIEW_REJECT = "review-reject"
    ADMIN_APPROVE = "admin-approve"
    ADMIN_REJECT = "admin-reject"


@dataclass(frozen=True)
class Transition:
    source: AttendanceStatus
    action: WorkflowAction
    actor: Role
    target: AttendanceStatus


TRANSITIONS: dict[tuple[AttendanceStatus, WorkflowAction], Transition] = {
    (t.source, t.action): t
    for t in (
        Transition(
            AttendanceStatus.SUBMITTED,
            WorkflowAction.REVIEW_APPROVE,
            Role.SITE_INCHARGE,
            AttendanceStatus.INCHARGE_REVIEWED,
        ),
        Transition(
            AttendanceStatus.SUBMITTED,
            WorkflowAction.REVIEW_REJECT,
            Role.SITE_INCHARGE,
            AttendanceStatus.REJECTED,
        ),
        Transition(
            AttendanceStatus.INCHARGE_REVIEWED,
            WorkflowAction.ADMIN_APPROVE,
            Role.ADMIN,
            AttendanceStatus.ADMIN_APPROVED,
        ),
        Transition(
            AttendanceStatus.INCHARGE_REVIEWED,
            WorkflowAction.ADMIN_REJECT,
            Role.ADMIN,
            AttendanceStatus.REJECTED,
        ),
    )
}

TERMINAL_STATES = frozenset({AttendanceStatus.ADMIN_APPROVED, AttendanceStatus.REJECTED})

_ACTION_ACTORS = {t.action: t.actor for t in TRANSITIONS.values()}

_REVIEW_ACTIONS = {
    ReviewDecision.APPROVE: WorkflowAction.REVIEW_APPROVE,
    ReviewDecision.REJECT: WorkflowAction.REVIEW_REJECT,
}
_ADMIN_ACTIONS = {
    ReviewDecision.APPROVE: WorkflowAction.ADMIN_APPROVE,
    ReviewDecision.REJECT: WorkflowAction.ADMIN_REJECT,
}


def review_action(decision: ReviewDecision) -> WorkflowAction:
    return _REVIEW_ACTIONS[decision]


def admin_action(decision: ReviewDecision) -> WorkflowAction:
    return _ADMIN_ACTIONS[decision]


def allowed_actions(status: AttendanceStatus | str) -> set[WorkflowAction]:
    status = AttendanceStatus(status)
    return {action for (source, action) in TRANSITIONS if source == status}


def is_terminal(status: AttendanceStatus | str) -> bool:
    return AttendanceStatus(status) in TERMINAL_STATES


def authorize(action: WorkflowAction, role: Role | str) -> None:
    """Raise unless ``role`` is the actor that owns ``action``."""
    if Role(role) != _ACTION_ACTORS[action]:
        raise PermissionDeniedError(
            f"Only {_ACTION_ACTORS[action].value} users can perform {action.value}"
        )


def next_status(current: AttendanceStatus | str, action: WorkflowAction) -> AttendanceStatus:
    """Target status for ``action`` from ``current``; raises if not allowed."""
    current = AttendanceStatus(current)
    transition = TRANSITIONS.get((current, action))
    if transition is None:
        raise InvalidTransitionError(
            f"Cannot {action.value} a record that is {current.value}"
        )
    return transition.target
