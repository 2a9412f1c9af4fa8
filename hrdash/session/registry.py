"""In-process registry of live SessionContexts, keyed by persisted session id.

Contexts whose session has expired are pruned on a sweep that runs at most
once per ``SWEEP_INTERVAL`` during ``resolve``; logout discards eagerly.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from hrdash.common.constants import UserRole
from hrdash.session.context import SessionContext
from hrdash.session.schemas import SessionIdentity

logger = logging.getLogger(__name__)

SWEEP_INTERVAL = timedelta(minutes=1)


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive timestamps
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SessionRegistry:
    def __init__(self) -> None:
        self._sessions: dict[uuid.UUID, SessionContext] = {}
        self._next_sweep = datetime.now(timezone.utc) + SWEEP_INTERVAL

    def resolve(
        self,
        session_id: uuid.UUID,
        identity: SessionIdentity,
        role: UserRole,
        expires_at: Optional[datetime] = None,
    ) -> SessionContext:
        """Return the context for *session_id*, recreating it if the user or role changed."""
        now = datetime.now(timezone.utc)
        if now >= self._next_sweep:
            self.prune(now)

        ctx = self._sessions.get(session_id)
        if ctx is None or ctx.user_id != identity.user_id or ctx.role != role:
            ctx = SessionContext(session_id, identity, role)
            self._sessions[session_id] = ctx
        else:
            ctx.identity = identity
        ctx.expires_at = _aware(expires_at)
        return ctx

    def prune(self, now: Optional[datetime] = None) -> int:
        """Drop contexts whose session expired before *now*."""
        now = now or datetime.now(timezone.utc)
        expired = [
            sid for sid, ctx in self._sessions.items()
            if ctx.expires_at is not None and ctx.expires_at <= now
        ]
        for sid in expired:
            del self._sessions[sid]
        self._next_sweep = now + SWEEP_INTERVAL
        if expired:
            logger.info("pruned %d expired session contexts", len(expired))
        return len(expired)

    def get(self, session_id: uuid.UUID) -> Optional[SessionContext]:
        return self._sessions.get(session_id)

    def discard(self, session_id: uuid.UUID) -> Optional[SessionContext]:
        return self._sessions.pop(session_id, None)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions
