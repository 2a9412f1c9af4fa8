"""Dashboard Pydantic schemas for response serialization."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel

from hrdash.cache.schemas import QueryStatus
from hrdash.common.constants import StatusFilter, ViewAs
from hrdash.profiles.schemas import ProfileBrief
from hrdash.session.schemas import Announcement


class Section(BaseModel):
    """Per-widget tri-state so one failed read does not blank the page."""

    status: QueryStatus
    error: Optional[str] = None


class PendingSection(Section):
    count: Optional[int] = None


class LeaveBreakdown(Section):
    filter: StatusFilter
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    total: int = 0


class WorkforceSection(Section):
    """HR-view only: headcount and monthly payroll from the profiles read."""

    headcount: Optional[int] = None
    monthly_payroll: Optional[Decimal] = None


class MyProfileSection(Section):
    profile: Optional[ProfileBrief] = None


class DashboardSummaryResponse(BaseModel):
    view_as: ViewAs
    pending: PendingSection
    leave: LeaveBreakdown
    workforce: WorkforceSection
    my_profile: MyProfileSection
    announcements: list[Announcement]


class AnnouncementListResponse(BaseModel):
    data: list[Announcement]
