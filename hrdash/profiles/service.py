"""ProfileRepository — cached profile reads, updates and inline avatar uploads."""

from __future__ import annotations

import base64
import logging
import uuid
from datetime import date
from typing import Any, Optional, Sequence

from hrdash.cache.query_cache import QueryCache
from hrdash.cache.schemas import QueryResult
from hrdash.common.constants import (
    AVATAR_MIME_PREFIX,
    MY_PROFILE_KEY,
    PROFILES_KEY,
    ToastVariant,
)
from hrdash.common.exceptions import (
    AppException,
    FileTooLargeException,
    InvalidFileTypeException,
    ValidationException,
)
from hrdash.config import settings
from hrdash.profiles.schemas import AvatarUpload, Profile, ProfileUpdate
from hrdash.session.context import SessionContext
from hrdash.store.service import RemoteStore, StoreError, translate_store_error

logger = logging.getLogger(__name__)

TABLE = "profiles"


def encode_avatar(upload: AvatarUpload, max_bytes: Optional[int] = None) -> str:
    """Validate an avatar upload and return it as a ``data:`` URL."""
    max_bytes = settings.AVATAR_MAX_BYTES if max_bytes is None else max_bytes
    if not (upload.content_type or "").startswith(AVATAR_MIME_PREFIX):
        raise InvalidFileTypeException(upload.content_type)
    if upload.size > max_bytes:
        raise FileTooLargeException(upload.size, max_bytes)
    payload = base64.b64encode(upload.content).decode("ascii")
    return f"data:{upload.content_type};base64,{payload}"


class ProfileRepository:
    """Profile reads go through the query cache; writes invalidate it."""

    def __init__(self, store: RemoteStore, cache: QueryCache) -> None:
        self.store = store
        self.cache = cache

    # ── Reads ───────────────────────────────────────────────────────

    async def list_profiles(self, ctx: SessionContext) -> QueryResult:
        """All visible profiles by name; disabled unless the durable role is HR."""

        async def load() -> list[Profile]:
            rows = await self._select(ctx, order="full_name,id")
            return [Profile.model_validate(row) for row in rows]

        return await self.cache.query(
            ctx.cache_scope, PROFILES_KEY, load, enabled=ctx.is_hr,
        )

    async def search_profiles(
        self,
        ctx: SessionContext,
        *,
        name: Optional[str] = None,
        departments: Optional[Sequence[str]] = None,
        joined_from: Optional[date] = None,
        joined_to: Optional[date] = None,
    ) -> QueryResult:
        """The directory narrowed by name fragment, departments and join date.

        Same HR gate as ``list_profiles``; with no criteria it is that read.
        Cached under ``("profiles", <criteria>)`` so profile writes invalidate it.
        """
        criteria = {
            "full_name__ilike": name or None,
            "department__in": list(departments) if departments else None,
            "join_date__from": joined_from,
            "join_date__to": joined_to,
        }
        filters = {k: v for k, v in criteria.items() if v is not None}
        if not filters:
            return await self.list_profiles(ctx)

        async def load() -> list[Profile]:
            rows = await self._select(ctx, filters=filters, order="full_name,id")
            return [Profile.model_validate(row) for row in rows]

        key = (*PROFILES_KEY, tuple(sorted((k, str(v)) for k, v in filters.items())))
        return await self.cache.query(ctx.cache_scope, key, load, enabled=ctx.is_hr)

    async def get_own_profile(self, ctx: SessionContext) -> QueryResult:
        """The caller's profile, or ``data=None`` when none exists yet."""

        async def load() -> Optional[Profile]:
            rows = await self._select(ctx, filters={"user_id": ctx.user_id})
            return Profile.model_validate(rows[0]) if rows else None

        return await self.cache.query(
            ctx.cache_scope, (*MY_PROFILE_KEY, str(ctx.user_id)), load,
        )

    # ── Writes ──────────────────────────────────────────────────────

    async def update_profile(
        self,
        ctx: SessionContext,
        user_id: uuid.UUID,
        patch: ProfileUpdate,
    ) -> Profile:
        try:
            fields = patch.to_patch()
            if not fields:
                raise ValidationException(
                    errors={"patch": ["At least one field must be provided."]},
                    detail="Nothing to update.",
                )
            row = await self._update(ctx, user_id, fields)
        except AppException:
            ctx.notify(
                "Error",
                "Failed to update profile. Please try again.",
                ToastVariant.destructive,
            )
            raise

        self._invalidate()
        logger.info("profile updated user=%s fields=%s", user_id, sorted(fields))
        ctx.notify("Profile Updated", "Profile has been updated successfully.")
        return Profile.model_validate(row)

    async def upload_avatar(
        self,
        ctx: SessionContext,
        user_id: uuid.UUID,
        upload: AvatarUpload,
    ) -> str:
        """Inline the image into ``avatar_url`` and return the data URL."""
        try:
            data_url = encode_avatar(upload)
            await self._update(ctx, user_id, {"avatar_url": data_url})
        except AppException as exc:
            ctx.notify("Upload Failed", exc.detail, ToastVariant.destructive)
            raise

        self._invalidate()
        logger.info("avatar updated user=%s bytes=%d", user_id, upload.size)
        ctx.notify("Avatar Updated", "Your profile picture has been updated successfully.")
        return data_url

    # ── Internal helpers ────────────────────────────────────────────

    def _invalidate(self) -> None:
        self.cache.invalidate(PROFILES_KEY)
        self.cache.invalidate(MY_PROFILE_KEY)

    async def _select(self, ctx: SessionContext, **kwargs: Any) -> list[dict[str, Any]]:
        try:
            return await self.store.select(ctx.store_identity, TABLE, **kwargs)
        except StoreError as exc:
            raise translate_store_error(exc, "Profile", ctx.user_id) from exc

    async def _update(
        self,
        ctx: SessionContext,
        user_id: uuid.UUID,
        fields: dict[str, Any],
    ) -> dict[str, Any]:
        try:
            return await self.store.update(
                ctx.store_identity, TABLE, {"user_id": user_id}, fields,
            )
        except StoreError as exc:
            raise translate_store_error(exc, "Profile", user_id) from exc
