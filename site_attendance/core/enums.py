from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Account roles used for access control."""

    FOREMAN = "foreman"
    SITE_INCHARGE = "site_incharge"
    ADMIN = "admin"


class AttendanceStatus(str, Enum):
    """Lifecycle of an attendance record."""

    SUBMITTED = "submitted"
    INCHARGE_REVIEWED = "incharge_reviewed"
    ADMIN_APPROVED = "admin_approved"
    REJECTED = "rejected"


class ReviewDecision(str, Enum):
    """Decision sent by a reviewer (incharge or admin)."""

    APPROVE = "approve"
    REJECT = "reject"
