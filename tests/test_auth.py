"""Auth service test suite — user registration, durable roles, JWT issue,
session persistence and Google exchange failures.
"""

from __future__ import annotations

import uuid
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from jose import jwt
from sqlalchemy import select

from hrdash.auth.models import User, UserSession
from hrdash.auth.service import (
    create_access_token,
    create_session,
    find_or_create_user,
    get_user_role,
    hash_token,
    revoke_session,
    verify_google_token,
)
from hrdash.common.constants import UserRole
from hrdash.common.exceptions import ForbiddenException, NetworkException
from hrdash.config import settings


def _google(email: str = "new.user@example.com", name: str = "New User") -> dict:
    return {
        "email": email,
        "name": name,
        "picture": None,
        "google_id": f"google-{uuid.uuid4().hex[:12]}",
    }


class TestFindOrCreateUser:

    async def test_first_sign_in_registers(self, db):
        user = await find_or_create_user(db, _google())
        assert user.id is not None
        assert user.full_name == "New User"
        assert await get_user_role(db, user.id) == UserRole.employee

    async def test_missing_name_falls_back_to_email(self, db):
        user = await find_or_create_user(db, _google(name=""))
        assert user.full_name == "new.user@example.com"

    async def test_existing_user_is_reused_and_linked(self, db, hr_user):
        user = await find_or_create_user(db, _google(email=hr_user["email"]))
        assert user.id == hr_user["id"]
        assert user.google_id is not None
        assert await get_user_role(db, user.id) == UserRole.hr

    async def test_inactive_user_is_refused(self, db, employee_user):
        orm_user = await db.get(User, employee_user["id"])
        orm_user.is_active = False
        await db.commit()
        with pytest.raises(ForbiddenException):
            await find_or_create_user(db, _google(email=employee_user["email"]))


class TestTokensAndSessions:

    def test_access_token_claims(self):
        user_id, session_id = uuid.uuid4(), uuid.uuid4()
        token, expires_in = create_access_token(user_id, session_id)
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])

        assert payload["sub"] == str(user_id)
        assert payload["sid"] == str(session_id)
        assert payload["type"] == "access"
        assert "role" not in payload
        assert expires_in == settings.JWT_EXPIRY_HOURS * 3600

    async def test_session_stores_token_hash_only(self, db, employee_user):
        orm_user = await db.get(User, employee_user["id"])
        token, session = await create_session(db, orm_user, "10.0.0.1", "pytest")
        await db.commit()

        row = (
            await db.execute(select(UserSession).where(UserSession.id == session.id))
        ).scalars().one()
        assert row.token_hash == hash_token(token)
        assert row.token_hash != token
        assert not row.is_revoked

    async def test_revoke_unknown_session_is_a_no_op(self, db):
        await revoke_session(db, uuid.uuid4())


class TestGoogleExchange:

    async def test_network_failure_maps_to_network_error(self):
        failing = AsyncMock(side_effect=httpx.ConnectError("unreachable"))
        with patch("httpx.AsyncClient.post", new=failing):
            with pytest.raises(NetworkException):
                await verify_google_token("code", "http://localhost:3000/callback")

    async def test_rejected_code_is_forbidden(self):
        resp = httpx.Response(
            400,
            json={"error": "invalid_grant", "error_description": "Bad code"},
            request=httpx.Request("POST", "https://oauth2.googleapis.com/token"),
        )
        with patch("httpx.AsyncClient.post", new=AsyncMock(return_value=resp)):
            with pytest.raises(ForbiddenException) as exc_info:
                await verify_google_token("code", "http://localhost:3000/callback")
        assert "Bad code" in exc_info.value.detail
