"""Dashboard service test suite — summary sections derived from cached reads,
view-mode gating, per-section failures and announcements.
"""

from __future__ import annotations

import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest

from hrdash.cache.schemas import QueryResult, QueryStatus
from hrdash.common.constants import LeaveStatus, StatusFilter, ViewAs
from hrdash.common.exceptions import ForbiddenException, NotFoundException
from hrdash.dashboard.service import DashboardService, leave_breakdown, workforce
from hrdash.leave.service import LeaveRequestRepository
from hrdash.notifications.service import NotificationAggregator
from hrdash.profiles.service import ProfileRepository
from hrdash.session.schemas import AnnouncementCreate
from hrdash.store.service import StoreError
from tests.conftest import make_ctx, seed_leave


@pytest.fixture
def service(store, cache) -> DashboardService:
    leave = LeaveRequestRepository(store, cache)
    return DashboardService(
        ProfileRepository(store, cache), leave, NotificationAggregator(leave),
    )


class TestSections:

    def test_breakdown_of_non_success_is_zeroed(self):
        section = leave_breakdown(QueryResult(status=QueryStatus.loading), StatusFilter.all)
        assert section.status == QueryStatus.loading
        assert section.total == 0

    def test_workforce_of_idle_has_no_figures(self):
        section = workforce(QueryResult(status=QueryStatus.idle))
        assert section.headcount is None
        assert section.monthly_payroll is None


class TestSummary:

    async def test_hr_summary(self, db, service, hr_user, employee_user):
        pid = employee_user["profile"]["id"]
        await seed_leave(db, pid)
        await seed_leave(db, pid, status=LeaveStatus.approved)
        await seed_leave(db, pid, status=LeaveStatus.rejected)

        summary = await service.summary(make_ctx(hr_user))
        assert summary.view_as == ViewAs.hr
        assert summary.pending.count == 1
        assert (summary.leave.pending, summary.leave.approved, summary.leave.rejected) == (1, 1, 1)
        assert summary.workforce.headcount == 2
        assert summary.workforce.monthly_payroll == Decimal("100000.00")
        assert summary.my_profile.profile.full_name == "Alice HR"

    async def test_pending_card_matches_notifications(self, db, service, cache, hr_user, employee_user):
        await seed_leave(db, employee_user["profile"]["id"])
        ctx = make_ctx(hr_user)

        summary = await service.summary(ctx, "pending")
        feed = await service.notifications.feed(ctx)
        assert summary.pending.count == feed.pending_count == summary.leave.total
        assert cache.fetch_count(ctx.cache_scope, ("leave-requests", "pending")) == 1

    async def test_employee_view_skips_workforce(self, service, cache, hr_user):
        ctx = make_ctx(hr_user)
        ctx.toggle_view_as()
        summary = await service.summary(ctx)
        assert summary.workforce.status == QueryStatus.idle
        assert cache.fetch_count(ctx.cache_scope, ("profiles",)) == 0

    async def test_employee_sees_own_figures(self, db, service, hr_user, employee_user):
        await seed_leave(db, hr_user["profile"]["id"])
        await seed_leave(db, employee_user["profile"]["id"], status=LeaveStatus.approved)

        summary = await service.summary(make_ctx(employee_user))
        assert summary.pending.count == 0
        assert summary.leave.total == 1
        assert summary.workforce.status == QueryStatus.idle

    async def test_failed_section_does_not_blank_the_page(self, service, hr_user):
        ctx = make_ctx(hr_user)
        real_select = service.leave.store.select

        async def flaky(identity, table, **kwargs):
            if table == "leave_requests":
                raise StoreError(StoreError.UNREACHABLE, "down")
            return await real_select(identity, table, **kwargs)

        with patch.object(service.leave.store, "select", new=AsyncMock(side_effect=flaky)):
            summary = await service.summary(ctx)

        assert summary.pending.status == QueryStatus.error
        assert summary.leave.status == QueryStatus.error
        assert summary.workforce.status == QueryStatus.success
        assert summary.my_profile.status == QueryStatus.success

    async def test_sections_are_read_concurrently(self, service, hr_user):
        real_select = service.leave.store.select
        active = 0
        peak = 0

        async def counting(identity, table, **kwargs):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0)
            try:
                return await real_select(identity, table, **kwargs)
            finally:
                active -= 1

        with patch.object(service.leave.store, "select", new=AsyncMock(side_effect=counting)):
            summary = await service.summary(make_ctx(hr_user))

        assert summary.workforce.status == QueryStatus.success
        assert peak >= 3


class TestAnnouncements:

    def test_hr_posts(self, hr_user):
        ctx = make_ctx(hr_user)
        item = DashboardService.post_announcement(
            ctx, AnnouncementCreate(topic="Payroll", message="Runs Friday", days=3),
        )
        assert ctx.announcements.active()[0].id == item.id
        assert ctx.drain_toasts()[0].title == "Announcement Posted"

    def test_hr_in_employee_view_cannot_post(self, hr_user):
        ctx = make_ctx(hr_user)
        ctx.toggle_view_as()
        with pytest.raises(ForbiddenException):
            DashboardService.post_announcement(
                ctx, AnnouncementCreate(topic="Payroll", message="Runs Friday"),
            )
        assert ctx.drain_toasts()[0].title == "Error"

    def test_dismiss_unknown(self, employee_user):
        with pytest.raises(NotFoundException):
            DashboardService.dismiss_announcement(make_ctx(employee_user), 42)
