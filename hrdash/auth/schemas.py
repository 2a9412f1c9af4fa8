"""Auth Pydantic schemas for request / response validation."""


import uuid

from pydantic import BaseModel

from hrdash.common.constants import UserRole, ViewAs


# ── Requests ────────────────────────────────────────────────────────

class GoogleAuthRequest(BaseModel):
    code: str
    redirect_uri: str


# ── Embedded / Shared ──────────────────────────────────────────────

class UserInfo(BaseModel):
    id: uuid.UUID
    email: str
    full_name: str
    role: UserRole


# ── Responses ───────────────────────────────────────────────────────

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserInfo


class ViewAsResponse(BaseModel):
    role: UserRole
    view_as: ViewAs
