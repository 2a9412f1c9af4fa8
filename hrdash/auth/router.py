"""Auth router — Google sign-in, logout, current session, view-mode toggle."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from hrdash.auth.dependencies import get_current_session
from hrdash.auth.schemas import (
    GoogleAuthRequest,
    TokenResponse,
    UserInfo,
    ViewAsResponse,
)
from hrdash.auth.service import (
    create_session,
    find_or_create_user,
    get_user_role,
    validate_domain,
    verify_google_token,
)
from hrdash.cache.query_cache import QueryCache
from hrdash.common.rate_limit import limiter
from hrdash.config import settings
from hrdash.database import get_db
from hrdash.dependencies import (
    get_profile_repository,
    get_query_cache,
    get_session_registry,
)
from hrdash.profiles.service import ProfileRepository
from hrdash.session.context import SessionContext
from hrdash.session.registry import SessionRegistry
from hrdash.session.schemas import SessionOut
from hrdash.session.service import logout as end_session

router = APIRouter(prefix="", tags=["auth"])


# ── POST /google — Google OAuth callback ────────────────────────────

@router.post("/google", response_model=TokenResponse)
@limiter.limit("5/minute")
async def google_auth(
    body: GoogleAuthRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    # 1. Exchange code for Google user info
    google_info = await verify_google_token(body.code, body.redirect_uri)

    # 2. Domain gate
    validate_domain(google_info["email"])

    # 3. Find or register the user; the durable role lives in user_roles
    user = await find_or_create_user(db, google_info)
    role = await get_user_role(db, user.id)

    # 4. Persist session, issue JWT
    ip = request.client.host if request.client else None
    access_token, _ = await create_session(
        db, user, ip, request.headers.get("user-agent"),
    )

    return TokenResponse(
        access_token=access_token,
        expires_in=settings.JWT_EXPIRY_HOURS * 3600,
        user=UserInfo(id=user.id, email=user.email, full_name=user.full_name, role=role),
    )


# ── POST /logout — Revoke session, drop its cache scope ─────────────

@router.post("/logout")
async def logout(
    ctx: SessionContext = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
    registry: SessionRegistry = Depends(get_session_registry),
    cache: QueryCache = Depends(get_query_cache),
):
    await end_session(db, ctx, registry=registry, cache=cache)
    return {"message": "Logged out successfully"}


# ── GET /me — Current session ───────────────────────────────────────

@router.get("/me", response_model=SessionOut)
async def me(
    ctx: SessionContext = Depends(get_current_session),
    profiles: ProfileRepository = Depends(get_profile_repository),
):
    own = await profiles.get_own_profile(ctx)
    return SessionOut(
        session_id=ctx.session_id,
        user_id=ctx.user_id,
        email=ctx.identity.email,
        full_name=ctx.identity.full_name,
        role=ctx.role,
        view_as=ctx.view_as,
        can_toggle_view=ctx.is_hr,
        avatar_url=own.data.avatar_url if own.data else None,
    )


# ── POST /view-as — Toggle HR ↔ employee display mode ───────────────

@router.post("/view-as", response_model=ViewAsResponse)
async def toggle_view_as(ctx: SessionContext = Depends(get_current_session)):
    view_as = ctx.toggle_view_as()
    return ViewAsResponse(role=ctx.role, view_as=view_as)
