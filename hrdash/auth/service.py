"""Auth service — Google OAuth exchange, JWT issue, session lifecycle, durable roles."""

from __future__ import annotations

import hashlib
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import httpx
from jose import jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hrdash.auth.models import User, UserRoleAssignment, UserSession
from hrdash.common.constants import UserRole
from hrdash.common.exceptions import ForbiddenException, NetworkException
from hrdash.config import settings

logger = logging.getLogger(__name__)


# ── Google OAuth ────────────────────────────────────────────────────

async def verify_google_token(code: str, redirect_uri: str) -> dict[str, Any]:
    """Exchange Google authorization code for user info.

    Returns dict with keys: email, name, picture, google_id.
    """
    try:
        async with httpx.AsyncClient(timeout=15) as client:
            token_resp = await client.post(
                "https://oauth2.googleapis.com/token",
                data={
                    "client_id": settings.GOOGLE_CLIENT_ID,
                    "client_secret": settings.GOOGLE_CLIENT_SECRET,
                    "code": code,
                    "redirect_uri": redirect_uri,
                    "grant_type": "authorization_code",
                },
            )
            token_data = token_resp.json()
            if token_resp.status_code != 200 or "access_token" not in token_data:
                raise ForbiddenException(
                    detail=f"Google token exchange failed: {token_data.get('error_description', 'unknown error')}",
                )

            info_resp = await client.get(
                "https://www.googleapis.com/oauth2/v2/userinfo",
                headers={"Authorization": f"Bearer {token_data['access_token']}"},
            )
            if info_resp.status_code != 200:
                raise ForbiddenException(detail="Failed to fetch Google user info.")
            info = info_resp.json()
    except httpx.HTTPError as exc:
        logger.warning("Google OAuth request failed: %s", exc)
        raise NetworkException(detail="Could not reach Google to verify sign-in.") from exc

    return {
        "email": info["email"],
        "name": info.get("name", ""),
        "picture": info.get("picture"),
        "google_id": info["id"],
    }


def validate_domain(email: str) -> None:
    """Ensure the email belongs to the allowed domain, when one is configured."""
    if settings.ALLOWED_DOMAIN and not email.endswith(f"@{settings.ALLOWED_DOMAIN}"):
        raise ForbiddenException(
            detail=f"Only @{settings.ALLOWED_DOMAIN} accounts are permitted.",
        )


# ── Users ───────────────────────────────────────────────────────────

async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalars().first()


async def find_or_create_user(db: AsyncSession, google_info: dict[str, Any]) -> User:
    """Return the user for a Google identity, registering it on first sign-in.

    A freshly registered user has no profile row yet.
    """
    user = await get_user_by_email(db, google_info["email"])
    if user is None:
        user = User(
            email=google_info["email"],
            full_name=google_info.get("name") or google_info["email"],
            google_id=google_info["google_id"],
        )
        db.add(user)
        await db.flush()
        await db.refresh(user)
        logger.info("registered user %s", user.email)
        return user

    if not user.is_active:
        raise ForbiddenException(detail="User account is inactive.")
    if not user.google_id:
        user.google_id = google_info["google_id"]
        await db.flush()
    return user


async def get_user_role(db: AsyncSession, user_id: uuid.UUID) -> UserRole:
    """Durable role for a user (default: employee)."""
    result = await db.execute(
        select(UserRoleAssignment.role).where(UserRoleAssignment.user_id == user_id),
    )
    role = result.scalar_one_or_none()
    return role or UserRole.employee


# ── JWT helpers ─────────────────────────────────────────────────────

def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def create_access_token(user_id: uuid.UUID, session_id: uuid.UUID) -> tuple[str, int]:
    """Return (encoded_jwt, expires_in_seconds).

    The role is not embedded; it is re-read from ``user_roles`` per request.
    """
    expires_in = settings.JWT_EXPIRY_HOURS * 3600
    payload = {
        "sub": str(user_id),
        "sid": str(session_id),
        "type": "access",
        "exp": datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRY_HOURS),
    }
    token = jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    return token, expires_in


# ── Session management ──────────────────────────────────────────────

async def create_session(
    db: AsyncSession,
    user: User,
    ip: Optional[str],
    user_agent: Optional[str],
) -> tuple[str, UserSession]:
    """Issue an access token and persist its session.  Returns (token, session)."""
    session_id = uuid.uuid4()
    access_token, _ = create_access_token(user.id, session_id)

    session = UserSession(
        id=session_id,
        user_id=user.id,
        token_hash=hash_token(access_token),
        ip_address=ip,
        user_agent=user_agent,
        expires_at=datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRY_HOURS),
    )
    db.add(session)
    await db.flush()
    return access_token, session


async def revoke_session(db: AsyncSession, session_id: uuid.UUID) -> None:
    """Mark a persisted session as revoked."""
    result = await db.execute(
        select(UserSession).where(UserSession.id == session_id),
    )
    session = result.scalars().first()
    if session:
        session.is_revoked = True
        await db.flush()
