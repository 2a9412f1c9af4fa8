"""Export router — HR spreadsheet downloads built from the cached reads."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from hrdash.auth.dependencies import require_role
from hrdash.common.constants import UserRole
from hrdash.dependencies import get_leave_repository, get_profile_repository
from hrdash.export.service import ExcelFile, export_to_excel
from hrdash.leave.service import LeaveRequestRepository, parse_status_filter
from hrdash.profiles.service import ProfileRepository
from hrdash.session.context import SessionContext

router = APIRouter(prefix="", tags=["export"])

# Inline data-URL avatars would dwarf every other column
PROFILE_EXPORT_EXCLUDE = {"avatar_url"}


def _download(excel: ExcelFile) -> Response:
    return Response(
        content=excel.content,
        media_type=excel.media_type,
        headers={"Content-Disposition": excel.content_disposition},
    )


# ── GET /profiles ───────────────────────────────────────────────────

@router.get("/profiles")
async def export_profiles(
    ctx: SessionContext = Depends(require_role(UserRole.hr)),
    repo: ProfileRepository = Depends(get_profile_repository),
):
    result = (await repo.list_profiles(ctx)).raise_for_error()
    rows = [p.model_dump(exclude=PROFILE_EXPORT_EXCLUDE) for p in result.data or []]
    return _download(export_to_excel(rows, "employees", "Employees"))


# ── GET /leave-requests ─────────────────────────────────────────────

@router.get("/leave-requests")
async def export_leave_requests(
    status: str = Query("all"),
    ctx: SessionContext = Depends(require_role(UserRole.hr)),
    repo: LeaveRequestRepository = Depends(get_leave_repository),
):
    status_filter = parse_status_filter(status)
    result = (await repo.list_leave_requests(ctx, status_filter)).raise_for_error()
    rows = [
        {
            "id": r.id,
            "employee": r.requester_name,
            "leave_type": r.leave_label,
            "days": r.days,
            "status": r.status,
            "created_at": r.created_at,
        }
        for r in result.data or []
    ]
    return _download(
        export_to_excel(rows, f"leave-requests-{status_filter.value}", "Leave Requests"),
    )
