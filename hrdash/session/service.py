"""Session lifecycle helpers."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from hrdash.auth.service import revoke_session
from hrdash.cache.query_cache import QueryCache
from hrdash.session.context import SessionContext
from hrdash.session.registry import SessionRegistry

logger = logging.getLogger(__name__)


async def logout(
    db: AsyncSession,
    ctx: SessionContext,
    *,
    registry: SessionRegistry,
    cache: QueryCache,
) -> None:
    """Revoke the persisted session, forget its context and drop its cache scope.

    The caller is expected to send the client back to sign-in.
    """
    await revoke_session(db, ctx.session_id)
    registry.discard(ctx.session_id)
    dropped = cache.clear_scope(ctx.cache_scope)
    logger.info(
        "session %s logged out (%d cache entries dropped)", str(ctx.session_id)[:8], dropped,
    )
