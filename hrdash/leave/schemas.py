"""Leave Pydantic schemas for request / response validation."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from hrdash.common.constants import LeaveStatus, leave_type_label


# ── Embedded ────────────────────────────────────────────────────────

class RequesterBrief(BaseModel):
    full_name: Optional[str] = None


# ── Store row ───────────────────────────────────────────────────────

class LeaveRequest(BaseModel):
    """A ``leave_requests`` row with the requester's name embedded."""

    id: uuid.UUID
    profile_id: uuid.UUID
    leave_type: Optional[str] = None
    days: Decimal
    status: LeaveStatus
    created_at: Optional[datetime] = None
    profile: Optional[RequesterBrief] = None

    model_config = {"from_attributes": True}

    @property
    def leave_label(self) -> str:
        return leave_type_label(self.leave_type)

    @property
    def requester_name(self) -> Optional[str]:
        return self.profile.full_name if self.profile else None


# ── Requests ────────────────────────────────────────────────────────

class LeaveRequestCreate(BaseModel):
    leave_type: str = Field(min_length=1, max_length=32)
    days: Decimal = Field(gt=0, le=365)

    @field_validator("days")
    @classmethod
    def _half_day_steps(cls, v: Decimal) -> Decimal:
        if (v * 2) % 1 != 0:
            raise ValueError("Leave must be requested in whole or half days")
        return v


class LeaveDecision(BaseModel):
    """Pending → approved / rejected; there is no way back to pending."""

    status: LeaveStatus

    @field_validator("status")
    @classmethod
    def _terminal_only(cls, v: LeaveStatus) -> LeaveStatus:
        if v == LeaveStatus.pending:
            raise ValueError("A decision must be 'approved' or 'rejected'")
        return v


# ── Responses ───────────────────────────────────────────────────────

class LeaveMutationResponse(BaseModel):
    message: str
    data: LeaveRequest
