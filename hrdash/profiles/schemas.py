"""Profile Pydantic schemas for store rows, updates and avatar uploads."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from hrdash.common.constants import EmploymentStatus


# ── Store row ───────────────────────────────────────────────────────

class Profile(BaseModel):
    """A ``profiles`` row as returned by the store."""

    id: uuid.UUID
    user_id: uuid.UUID
    full_name: str
    email: str
    phone: Optional[str] = None
    department: Optional[str] = None
    position: Optional[str] = None
    status: Optional[str] = None
    salary: Optional[Decimal] = None
    join_date: Optional[date] = None
    remaining_annual_leave: Optional[Decimal] = None
    remaining_sick_leave: Optional[Decimal] = None
    avatar_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ProfileBrief(BaseModel):
    id: uuid.UUID
    full_name: str
    department: Optional[str] = None
    position: Optional[str] = None
    avatar_url: Optional[str] = None
    remaining_annual_leave: Optional[Decimal] = None
    remaining_sick_leave: Optional[Decimal] = None

    model_config = {"from_attributes": True}


# ── Requests ────────────────────────────────────────────────────────

class ProfileUpdate(BaseModel):
    """Partial update — only fields explicitly set are sent to the store.

    Non-negativity of balances and salary is the store's CHECK constraint.
    """

    model_config = ConfigDict(extra="forbid")

    full_name: Optional[str] = Field(None, min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=30)
    department: Optional[str] = Field(None, max_length=100)
    position: Optional[str] = Field(None, max_length=100)
    status: Optional[EmploymentStatus] = None
    salary: Optional[Decimal] = None
    join_date: Optional[date] = None
    remaining_annual_leave: Optional[Decimal] = None
    remaining_sick_leave: Optional[Decimal] = None

    @field_validator("remaining_annual_leave", "remaining_sick_leave")
    @classmethod
    def _half_day_steps(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        if v is not None and (v * 2) % 1 != 0:
            raise ValueError("Leave balances must be in whole or half days")
        return v

    def to_patch(self) -> dict:
        """Store patch of the explicitly set fields."""
        patch = self.model_dump(exclude_unset=True)
        if "status" in patch and patch["status"] is not None:
            patch["status"] = patch["status"].value
        return patch


class AvatarUpload(BaseModel):
    """Uploaded image: declared MIME type and raw bytes."""

    content_type: Optional[str] = None
    content: bytes
    filename: Optional[str] = None
    # Size reported by the transport; content may be cut short past the cap
    declared_size: Optional[int] = None

    @property
    def size(self) -> int:
        return max(len(self.content), self.declared_size or 0)


# ── Responses ───────────────────────────────────────────────────────

class ProfileMutationResponse(BaseModel):
    message: str
    data: Profile


class AvatarResponse(BaseModel):
    message: str
    avatar_url: str
