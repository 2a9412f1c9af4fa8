"""Session-local announcement board.

Nothing here is persisted: dismissing removes an announcement for the rest of
the session, and only a new session brings the seeded default back.
"""

from __future__ import annotations

import time
from datetime import datetime, timedelta, timezone
from typing import Optional

from hrdash.common.constants import AnnouncementType
from hrdash.session.schemas import Announcement

DEFAULT_ANNOUNCEMENT_DAYS = 7

_SEED = {
    "topic": "System Maintenance",
    "message": "System will be down for maintenance on Sunday 10 PM.",
    "type": AnnouncementType.system,
}


class AnnouncementBoard:
    """Ordered, dismissible announcements owned by one session."""

    def __init__(self) -> None:
        self._items: list[Announcement] = []
        self._last_id = 0

    @classmethod
    def seeded(cls) -> AnnouncementBoard:
        board = cls()
        board.post(_SEED["topic"], _SEED["message"], type=_SEED["type"])
        return board

    def _next_id(self) -> int:
        # Creation-time ids, bumped when two posts share a clock tick
        self._last_id = max(self._last_id + 1, time.time_ns())
        return self._last_id

    def post(
        self,
        topic: str,
        message: str,
        days: int = DEFAULT_ANNOUNCEMENT_DAYS,
        *,
        type: AnnouncementType = AnnouncementType.general,
        now: Optional[datetime] = None,
    ) -> Announcement:
        now = now or datetime.now(timezone.utc)
        item = Announcement(
            id=self._next_id(),
            topic=topic,
            message=message,
            date=now,
            type=type,
            days=days,
            expires_at=now + timedelta(days=days),
        )
        self._items.append(item)
        return item

    def dismiss(self, announcement_id: int) -> bool:
        for i, item in enumerate(self._items):
            if item.id == announcement_id:
                del self._items[i]
                return True
        return False

    def active(self, now: Optional[datetime] = None) -> list[Announcement]:
        """Unexpired announcements, newest first."""
        now = now or datetime.now(timezone.utc)
        return sorted(
            (a for a in self._items if a.expires_at > now),
            key=lambda a: a.id,
            reverse=True,
        )

    def __len__(self) -> int:
        return len(self._items)
