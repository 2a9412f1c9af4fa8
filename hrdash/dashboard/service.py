"""Dashboard service — summary figures aggregated from already-cached reads.

Nothing here queries the store directly: every figure is derived from a
repository read, so the dashboard shares cache keys (and therefore values)
with the header, the leave page and the employee directory.
"""

from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from typing import Union

from hrdash.cache.schemas import QueryResult, QueryStatus
from hrdash.common.constants import LeaveStatus, StatusFilter, ToastVariant
from hrdash.common.exceptions import ForbiddenException, NotFoundException
from hrdash.dashboard.schemas import (
    DashboardSummaryResponse,
    LeaveBreakdown,
    MyProfileSection,
    PendingSection,
    WorkforceSection,
)
from hrdash.leave.service import LeaveRequestRepository, parse_status_filter
from hrdash.notifications.service import NotificationAggregator
from hrdash.profiles.schemas import ProfileBrief
from hrdash.profiles.service import ProfileRepository
from hrdash.session.context import SessionContext
from hrdash.session.schemas import Announcement, AnnouncementCreate

logger = logging.getLogger(__name__)


def leave_breakdown(result: QueryResult, status_filter: StatusFilter) -> LeaveBreakdown:
    requests = result.data if result.is_success else []
    statuses = [r.status for r in requests]
    return LeaveBreakdown(
        status=result.status,
        error=result.error,
        filter=status_filter,
        pending=statuses.count(LeaveStatus.pending),
        approved=statuses.count(LeaveStatus.approved),
        rejected=statuses.count(LeaveStatus.rejected),
        total=len(statuses),
    )


def workforce(result: QueryResult) -> WorkforceSection:
    if not result.is_success:
        return WorkforceSection(status=result.status, error=result.error)
    profiles = result.data
    return WorkforceSection(
        status=result.status,
        headcount=len(profiles),
        monthly_payroll=sum((p.salary or Decimal(0) for p in profiles), Decimal(0)),
    )


class DashboardService:
    def __init__(
        self,
        profiles: ProfileRepository,
        leave: LeaveRequestRepository,
        notifications: NotificationAggregator,
    ) -> None:
        self.profiles = profiles
        self.leave = leave
        self.notifications = notifications

    # ═════════════════════════════════════════════════════════════════
    # GET /summary
    # ═════════════════════════════════════════════════════════════════

    async def summary(
        self,
        ctx: SessionContext,
        leave_filter: Union[str, StatusFilter] = StatusFilter.all,
    ) -> DashboardSummaryResponse:
        status_filter = parse_status_filter(leave_filter)

        pending, leave, profiles, own = await asyncio.gather(
            self.notifications.pending_count(ctx),
            self.leave.list_leave_requests(ctx, status_filter),
            self._workforce_read(ctx),
            self.profiles.get_own_profile(ctx),
        )

        return DashboardSummaryResponse(
            view_as=ctx.view_as,
            pending=PendingSection(
                status=pending.status, error=pending.error, count=pending.data,
            ),
            leave=leave_breakdown(leave, status_filter),
            workforce=workforce(profiles),
            my_profile=MyProfileSection(
                status=own.status,
                error=own.error,
                profile=ProfileBrief.model_validate(own.data) if own.data else None,
            ),
            announcements=ctx.announcements.active(),
        )

    async def _workforce_read(self, ctx: SessionContext) -> QueryResult:
        if not ctx.is_hr_view:
            return QueryResult(status=QueryStatus.idle)
        return await self.profiles.list_profiles(ctx)

    # ═════════════════════════════════════════════════════════════════
    # Announcements
    # ═════════════════════════════════════════════════════════════════

    @staticmethod
    def post_announcement(ctx: SessionContext, body: AnnouncementCreate) -> Announcement:
        if not ctx.is_hr_view:
            ctx.notify("Error", "Only HR can post announcements.", ToastVariant.destructive)
            raise ForbiddenException(detail="Only HR can post announcements.")
        item = ctx.announcements.post(body.topic, body.message, body.days)
        ctx.notify("Announcement Posted", f"\"{item.topic}\" is visible for {item.days} day(s).")
        return item

    @staticmethod
    def dismiss_announcement(ctx: SessionContext, announcement_id: int) -> None:
        if not ctx.announcements.dismiss(announcement_id):
            raise NotFoundException("Announcement", announcement_id)
        logger.debug("announcement %s dismissed", announcement_id)
