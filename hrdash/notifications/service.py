"""NotificationAggregator — pending count and feed derived from the pending-leave read.

Every consumer goes through ``LeaveRequestRepository.list_leave_requests(ctx,
"pending")``, so the header badge, the feed and the dashboard card share one
cache key and cannot show different counts for the same data.
"""

from __future__ import annotations

import asyncio
import logging
import textwrap
from datetime import datetime
from typing import AsyncIterator, Optional

from hrdash.cache.schemas import QueryResult
from hrdash.common.constants import UNKNOWN_REQUESTER, StatusFilter
from hrdash.config import settings
from hrdash.leave.schemas import LeaveRequest
from hrdash.leave.service import LeaveRequestRepository, format_days
from hrdash.notifications.schemas import NotificationFeed, NotificationItem
from hrdash.session.context import SessionContext

logger = logging.getLogger(__name__)

ELLIPSIS = "…"


# ── Formatting ──────────────────────────────────────────────────────

def date_label(value: Optional[datetime]) -> str:
    """``Oct 19`` style label."""
    if value is None:
        return ""
    return f"{value:%b} {value.day}"


def clamp_lines(
    text: str,
    max_lines: Optional[int] = None,
    width: Optional[int] = None,
) -> str:
    """Wrap *text* to *width* and keep at most *max_lines*, ending in an ellipsis if cut."""
    max_lines = settings.FEED_MAX_LINES if max_lines is None else max_lines
    width = settings.FEED_LINE_WIDTH if width is None else width
    lines = textwrap.wrap(text, width=width)
    if len(lines) <= max_lines:
        return text
    kept = lines[:max_lines]
    last = kept[-1]
    if len(last) >= width:
        last = last[: width - 1].rstrip()
    kept[-1] = last + ELLIPSIS
    return "\n".join(kept)


def to_item(request: LeaveRequest) -> NotificationItem:
    label = request.leave_label
    return NotificationItem(
        request_id=request.id,
        requester_name=request.requester_name or UNKNOWN_REQUESTER,
        created_at=request.created_at,
        date_label=date_label(request.created_at),
        description=clamp_lines(f"Requested {format_days(request.days)} day(s) of {label}"),
        leave_type=request.leave_type,
        leave_label=label,
        days=request.days,
    )


# ═════════════════════════════════════════════════════════════════════
# Aggregator
# ═════════════════════════════════════════════════════════════════════


class NotificationAggregator:
    def __init__(self, leave: LeaveRequestRepository) -> None:
        self.leave = leave

    async def pending_count(self, ctx: SessionContext) -> QueryResult:
        result = await self.leave.list_leave_requests(ctx, StatusFilter.pending)
        return result.map(len)

    async def feed(self, ctx: SessionContext, *, refresh: bool = False) -> NotificationFeed:
        result = await self.leave.list_leave_requests(
            ctx, StatusFilter.pending, refresh=refresh,
        )
        requests = result.data if result.is_success else []
        return NotificationFeed(
            status=result.status,
            pending_count=len(requests),
            items=[to_item(r) for r in requests],
            error=result.error,
            updated_at=result.updated_at,
        )

    async def poll(
        self,
        ctx: SessionContext,
        interval: Optional[float] = None,
    ) -> AsyncIterator[NotificationFeed]:
        """Yield a feed now, then every *interval* seconds or as soon as the
        pending key is invalidated.

        Each poller is independent; closing or cancelling one never cancels a
        read another consumer is waiting on.
        """
        interval = settings.NOTIFICATION_POLL_SECONDS if interval is None else interval
        wake = asyncio.Event()

        def on_change(state: QueryResult) -> None:
            if state.is_invalidated:
                wake.set()

        unsubscribe = self.leave.subscribe(ctx, StatusFilter.pending, on_change)
        refresh = False
        try:
            while True:
                wake.clear()
                yield await self.feed(ctx, refresh=refresh)
                try:
                    await asyncio.wait_for(wake.wait(), timeout=interval)
                    refresh = False
                except asyncio.TimeoutError:
                    # Interval elapsed: refetch even if the entry is still fresh
                    refresh = True
        finally:
            unsubscribe()
            logger.debug("notification poller for %s stopped", str(ctx.user_id)[:8])
