"""Leave router — filtered list, submit, approve / reject.

Decisions require the durable HR role; the store enforces the same rule on
its own, so a request that slips past this check still fails with 403.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query

from hrdash.auth.dependencies import get_current_session, require_role
from hrdash.cache.schemas import QueryResult
from hrdash.common.constants import UserRole
from hrdash.dependencies import get_leave_repository
from hrdash.leave.schemas import (
    LeaveDecision,
    LeaveMutationResponse,
    LeaveRequest,
    LeaveRequestCreate,
)
from hrdash.leave.service import LeaveRequestRepository
from hrdash.session.context import SessionContext

router = APIRouter(prefix="", tags=["leave"])


# ── GET / ───────────────────────────────────────────────────────────

@router.get("", response_model=QueryResult[list[LeaveRequest]])
async def list_leave_requests(
    status: str = Query("all", description="all | pending | approved | rejected"),
    ctx: SessionContext = Depends(get_current_session),
    repo: LeaveRequestRepository = Depends(get_leave_repository),
):
    return await repo.list_leave_requests(ctx, status)


# ── POST / ──────────────────────────────────────────────────────────

@router.post("", response_model=LeaveMutationResponse, status_code=201)
async def submit_leave_request(
    body: LeaveRequestCreate,
    ctx: SessionContext = Depends(get_current_session),
    repo: LeaveRequestRepository = Depends(get_leave_repository),
):
    request = await repo.submit_leave_request(ctx, body)
    return LeaveMutationResponse(message="Leave request submitted.", data=request)


# ── PUT /{id}/decision ──────────────────────────────────────────────

@router.put("/{request_id}/decision", response_model=LeaveMutationResponse)
async def decide_leave_request(
    request_id: uuid.UUID,
    body: LeaveDecision,
    ctx: SessionContext = Depends(require_role(UserRole.hr)),
    repo: LeaveRequestRepository = Depends(get_leave_repository),
):
    request = await repo.decide_leave_request(ctx, request_id, body)
    return LeaveMutationResponse(
        message=f"Leave request {body.status.value}.", data=request,
    )
