"""Profiles router — directory, own profile, partial update, avatar upload.

Reads answer with the tri-state ``QueryResult`` envelope; a disabled read
(directory for non-HR) comes back as ``status: "idle"`` rather than 403.
"""

from __future__ import annotations

import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, Request, UploadFile

from hrdash.auth.dependencies import get_current_session
from hrdash.cache.schemas import QueryResult
from hrdash.common.rate_limit import limiter
from hrdash.config import settings
from hrdash.dependencies import get_profile_repository
from hrdash.profiles.schemas import (
    AvatarResponse,
    AvatarUpload,
    Profile,
    ProfileMutationResponse,
    ProfileUpdate,
)
from hrdash.profiles.service import ProfileRepository
from hrdash.session.context import SessionContext

router = APIRouter(prefix="", tags=["profiles"])


# ── GET / ───────────────────────────────────────────────────────────

@router.get("", response_model=QueryResult[list[Profile]])
async def list_profiles(
    q: Optional[str] = Query(None, max_length=100),
    department: Optional[list[str]] = Query(None),
    joined_from: Optional[date] = Query(None),
    joined_to: Optional[date] = Query(None),
    ctx: SessionContext = Depends(get_current_session),
    repo: ProfileRepository = Depends(get_profile_repository),
):
    return await repo.search_profiles(
        ctx,
        name=q,
        departments=department,
        joined_from=joined_from,
        joined_to=joined_to,
    )


# ── GET /me ─────────────────────────────────────────────────────────

@router.get("/me", response_model=QueryResult[Profile])
async def my_profile(
    ctx: SessionContext = Depends(get_current_session),
    repo: ProfileRepository = Depends(get_profile_repository),
):
    return await repo.get_own_profile(ctx)


# ── PATCH /{user_id} ────────────────────────────────────────────────

@router.patch("/{user_id}", response_model=ProfileMutationResponse)
async def update_profile(
    user_id: uuid.UUID,
    body: ProfileUpdate,
    ctx: SessionContext = Depends(get_current_session),
    repo: ProfileRepository = Depends(get_profile_repository),
):
    profile = await repo.update_profile(ctx, user_id, body)
    return ProfileMutationResponse(message="Profile has been updated successfully.", data=profile)


# ── POST /{user_id}/avatar ──────────────────────────────────────────

@router.post("/{user_id}/avatar", response_model=AvatarResponse)
@limiter.limit("20/minute")
async def upload_avatar(
    request: Request,
    user_id: uuid.UUID,
    file: UploadFile = File(...),
    ctx: SessionContext = Depends(get_current_session),
    repo: ProfileRepository = Depends(get_profile_repository),
):
    # Never buffer more than one byte past the cap; encode_avatar rejects it
    upload = AvatarUpload(
        content_type=file.content_type,
        content=await file.read(settings.AVATAR_MAX_BYTES + 1),
        filename=file.filename,
        declared_size=file.size,
    )
    avatar_url = await repo.upload_avatar(ctx, user_id, upload)
    return AvatarResponse(
        message="Your profile picture has been updated successfully.",
        avatar_url=avatar_url,
    )
