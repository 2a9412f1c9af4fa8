"""Auth dependencies — JWT validation, session resolution, durable-role checks."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Callable

from fastapi import Depends, Request
from fastapi.exceptions import HTTPException
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hrdash.auth.models import User, UserSession
from hrdash.auth.service import get_user_role, hash_token
from hrdash.common.constants import UserRole
from hrdash.common.exceptions import ForbiddenException
from hrdash.config import settings
from hrdash.database import get_db
from hrdash.session.context import SessionContext
from hrdash.session.registry import SessionRegistry
from hrdash.session.schemas import SessionIdentity


def _extract_bearer(request: Request) -> str:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing or invalid Authorization header.")
    return auth_header[7:]


def _registry(request: Request) -> SessionRegistry:
    return request.app.state.sessions


# ── Core dependency ─────────────────────────────────────────────────

async def get_current_session(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> SessionContext:
    """Validate JWT, verify the persisted session, return its SessionContext."""
    token = _extract_bearer(request)

    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token has expired.")
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token.")

    if payload.get("type") != "access":
        raise HTTPException(status_code=401, detail="Invalid token type.")

    # Session exists, not revoked, not expired
    result = await db.execute(
        select(UserSession).where(
            UserSession.token_hash == hash_token(token),
            UserSession.is_revoked.is_(False),
            UserSession.expires_at > datetime.now(timezone.utc),
        ),
    )
    session = result.scalars().first()
    if session is None:
        raise HTTPException(status_code=401, detail="Session invalid or expired.")

    user_result = await db.execute(
        select(User).where(
            User.id == uuid.UUID(payload["sub"]),
            User.is_active.is_(True),
        ),
    )
    user = user_result.scalars().first()
    if user is None:
        raise HTTPException(status_code=401, detail="User account is inactive or not found.")

    role = await get_user_role(db, user.id)
    ctx = _registry(request).resolve(
        session.id,
        SessionIdentity(user_id=user.id, email=user.email, full_name=user.full_name),
        role,
        expires_at=session.expires_at,
    )
    request.state.session = ctx
    return ctx


# ── Role-based dependency ───────────────────────────────────────────

def require_role(*allowed_roles: UserRole) -> Callable:
    """Return a FastAPI dependency that enforces the durable role.

    ``view_as`` is never consulted here.
    """

    async def _check(
        ctx: SessionContext = Depends(get_current_session),
    ) -> SessionContext:
        if ctx.role not in allowed_roles:
            raise ForbiddenException(
                detail=f"Role '{ctx.role.value}' is not permitted. Required: {[r.value for r in allowed_roles]}.",
            )
        return ctx

    return _check
