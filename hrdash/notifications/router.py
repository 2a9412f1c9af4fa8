"""Notifications router — pending-leave feed and badge count."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from hrdash.auth.dependencies import get_current_session
from hrdash.dependencies import get_notification_aggregator
from hrdash.notifications.schemas import NotificationFeed, PendingCountResponse
from hrdash.notifications.service import NotificationAggregator
from hrdash.session.context import SessionContext

router = APIRouter(prefix="", tags=["notifications"])


# ── GET / ───────────────────────────────────────────────────────────

@router.get("", response_model=NotificationFeed)
async def notification_feed(
    ctx: SessionContext = Depends(get_current_session),
    notifications: NotificationAggregator = Depends(get_notification_aggregator),
):
    return await notifications.feed(ctx)


# ── GET /pending-count ──────────────────────────────────────────────

@router.get("/pending-count", response_model=PendingCountResponse)
async def pending_count(
    ctx: SessionContext = Depends(get_current_session),
    notifications: NotificationAggregator = Depends(get_notification_aggregator),
):
    result = await notifications.pending_count(ctx)
    return PendingCountResponse(
        status=result.status, pending_count=result.data, error=result.error,
    )
