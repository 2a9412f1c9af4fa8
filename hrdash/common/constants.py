"""Enums and constants for the HR dashboard — matching the store's column values."""

from __future__ import annotations

import enum
from typing import Optional


# ── Auth / Roles ────────────────────────────────────────────────────

class UserRole(str, enum.Enum):
    """Durable, store-enforced role."""

    hr = "hr"
    employee = "employee"


class ViewAs(str, enum.Enum):
    """Session-local display mode; never an authorization boundary."""

    hr = "hr"
    employee = "employee"


# ── Profiles ────────────────────────────────────────────────────────

class EmploymentStatus(str, enum.Enum):
    active = "active"
    on_leave = "on_leave"
    inactive = "inactive"


AVATAR_MIME_PREFIX = "image/"


# ── Leave ───────────────────────────────────────────────────────────

class LeaveStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class StatusFilter(str, enum.Enum):
    """``all`` omits the status predicate; the rest match ``LeaveStatus``."""

    all = "all"
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class LeaveTypeTag(str, enum.Enum):
    vacation = "vacation"
    sick = "sick"
    other = "other"


LEAVE_TYPE_LABELS: dict[str, str] = {
    LeaveTypeTag.vacation.value: "Annual Leave",
    LeaveTypeTag.sick.value: "Sick Leave",
}
GENERIC_LEAVE_LABEL = "Leave"


def leave_type_label(tag: Optional[str]) -> str:
    """Human label for a leave-type tag; unknown or missing tags get the generic label."""
    if isinstance(tag, enum.Enum):
        tag = tag.value
    return LEAVE_TYPE_LABELS.get(tag or "", GENERIC_LEAVE_LABEL)


# ── Announcements / toasts ──────────────────────────────────────────

class AnnouncementType(str, enum.Enum):
    system = "system"
    general = "general"


ANNOUNCEMENT_DURATIONS = (1, 3, 7, 30)


class ToastVariant(str, enum.Enum):
    default = "default"
    destructive = "destructive"


# ── Query cache keys ────────────────────────────────────────────────

PROFILES_KEY = ("profiles",)
MY_PROFILE_KEY = ("my-profile",)
LEAVE_REQUESTS_KEY = ("leave-requests",)

# ── Misc constants ──────────────────────────────────────────────────

UNKNOWN_REQUESTER = "Unknown User"
EXCEL_SHEET_NAME_MAX = 31
