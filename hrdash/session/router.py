"""Session router — drain pending toasts."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from hrdash.auth.dependencies import get_current_session
from hrdash.session.context import SessionContext
from hrdash.session.schemas import Toast

router = APIRouter(prefix="", tags=["session"])


# ── GET /toasts ─────────────────────────────────────────────────────

@router.get("/toasts", response_model=list[Toast])
async def toasts(
    peek: bool = Query(False, description="Return pending toasts without clearing them"),
    ctx: SessionContext = Depends(get_current_session),
):
    return ctx.pending_toasts if peek else ctx.drain_toasts()
