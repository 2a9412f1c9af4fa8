"""Session-local Pydantic schemas: identity, toasts, announcements."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from hrdash.common.constants import (
    ANNOUNCEMENT_DURATIONS,
    AnnouncementType,
    ToastVariant,
    UserRole,
    ViewAs,
)


class SessionIdentity(BaseModel):
    user_id: uuid.UUID
    email: str
    full_name: str


# ── Toasts ──────────────────────────────────────────────────────────

class Toast(BaseModel):
    """User-visible outcome of a mutation."""

    title: str
    description: str
    variant: ToastVariant = ToastVariant.default
    created_at: datetime


# ── Announcements ───────────────────────────────────────────────────

class Announcement(BaseModel):
    id: int
    topic: str
    message: str
    date: datetime
    type: AnnouncementType = AnnouncementType.general
    days: int = 7
    expires_at: datetime


class AnnouncementCreate(BaseModel):
    topic: str = Field(min_length=1, max_length=200)
    message: str = Field(min_length=1, max_length=2000)
    days: int = 7

    @field_validator("topic", "message")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()

    @field_validator("days")
    @classmethod
    def _known_duration(cls, v: int) -> int:
        if v not in ANNOUNCEMENT_DURATIONS:
            raise ValueError(f"days must be one of {list(ANNOUNCEMENT_DURATIONS)}")
        return v


# ── Responses ───────────────────────────────────────────────────────

class SessionOut(BaseModel):
    session_id: uuid.UUID
    user_id: uuid.UUID
    email: str
    full_name: str
    role: UserRole
    view_as: ViewAs
    can_toggle_view: bool
    avatar_url: Optional[str] = None
