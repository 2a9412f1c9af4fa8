"""Dashboard router — summary widgets and the session's announcement board."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from hrdash.auth.dependencies import get_current_session
from hrdash.dashboard.schemas import AnnouncementListResponse, DashboardSummaryResponse
from hrdash.dashboard.service import DashboardService
from hrdash.dependencies import get_dashboard_service
from hrdash.session.context import SessionContext
from hrdash.session.schemas import Announcement, AnnouncementCreate

router = APIRouter()


# ── GET /summary ────────────────────────────────────────────────────

@router.get("/summary", response_model=DashboardSummaryResponse)
async def dashboard_summary(
    leave_filter: str = Query("all", description="Status filter for the leave breakdown"),
    ctx: SessionContext = Depends(get_current_session),
    service: DashboardService = Depends(get_dashboard_service),
):
    """Pending count, leave breakdown, HR workforce figures, own profile, announcements."""
    return await service.summary(ctx, leave_filter)


# ── Announcements ───────────────────────────────────────────────────

@router.get("/announcements", response_model=AnnouncementListResponse)
async def list_announcements(ctx: SessionContext = Depends(get_current_session)):
    return AnnouncementListResponse(data=ctx.announcements.active())


@router.post("/announcements", response_model=Announcement, status_code=201)
async def post_announcement(
    body: AnnouncementCreate,
    ctx: SessionContext = Depends(get_current_session),
):
    return DashboardService.post_announcement(ctx, body)


@router.delete("/announcements/{announcement_id}", status_code=204)
async def dismiss_announcement(
    announcement_id: int,
    ctx: SessionContext = Depends(get_current_session),
):
    DashboardService.dismiss_announcement(ctx, announcement_id)
