"""SessionContext — the explicit per-session state passed to every repository call.

``role`` is the durable, store-enforced role.  ``view_as`` is a display-only
override that lets an HR user preview the employee experience; it gates
dashboard widgets and nothing else.  The store always sees ``role``.
"""

from __future__ import annotations

import logging
import uuid
from collections import deque
from datetime import datetime, timezone
from typing import Optional

from hrdash.common.constants import ToastVariant, UserRole, ViewAs
from hrdash.common.exceptions import ForbiddenException
from hrdash.session.announcements import AnnouncementBoard
from hrdash.session.schemas import SessionIdentity, Toast
from hrdash.store.policies import StoreIdentity

logger = logging.getLogger(__name__)

MAX_PENDING_TOASTS = 50


class SessionContext:
    """Identity, durable role, view mode, toasts and announcements of one session."""

    def __init__(
        self,
        session_id: uuid.UUID,
        identity: SessionIdentity,
        role: UserRole,
        view_as: Optional[ViewAs] = None,
    ) -> None:
        self.session_id = session_id
        self.identity = identity
        self.role = role
        self.view_as = view_as or ViewAs(role.value)
        self.expires_at: Optional[datetime] = None
        self.announcements = AnnouncementBoard.seeded()
        self._toasts: deque[Toast] = deque(maxlen=MAX_PENDING_TOASTS)

    # ── Identity ────────────────────────────────────────────────────

    @property
    def user_id(self) -> uuid.UUID:
        return self.identity.user_id

    @property
    def is_hr(self) -> bool:
        """Durable HR role; use for anything the store would also enforce."""
        return self.role == UserRole.hr

    @property
    def is_hr_view(self) -> bool:
        """HR display mode; use only for feature visibility."""
        return self.is_hr and self.view_as == ViewAs.hr

    @property
    def store_identity(self) -> StoreIdentity:
        return StoreIdentity(user_id=self.user_id, role=self.role)

    @property
    def cache_scope(self) -> tuple[str, str]:
        return (str(self.user_id), self.role.value)

    # ── View mode ───────────────────────────────────────────────────

    def toggle_view_as(self) -> ViewAs:
        if not self.is_hr:
            raise ForbiddenException(detail="Only HR users can switch the dashboard view.")
        self.view_as = ViewAs.employee if self.view_as == ViewAs.hr else ViewAs.hr
        logger.info("session %s view_as → %s", str(self.session_id)[:8], self.view_as.value)
        return self.view_as

    # ── Toasts ──────────────────────────────────────────────────────

    def notify(
        self,
        title: str,
        description: str,
        variant: ToastVariant = ToastVariant.default,
    ) -> Toast:
        toast = Toast(
            title=title,
            description=description,
            variant=variant,
            created_at=datetime.now(timezone.utc),
        )
        self._toasts.append(toast)
        return toast

    def drain_toasts(self) -> list[Toast]:
        toasts = list(self._toasts)
        self._toasts.clear()
        return toasts

    @property
    def pending_toasts(self) -> list[Toast]:
        return list(self._toasts)

    def __repr__(self) -> str:
        return (
            f"<SessionContext {self.identity.email!r} role={self.role.value} "
            f"view_as={self.view_as.value}>"
        )
