"""Notification feed Pydantic schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel

from hrdash.cache.schemas import QueryStatus


class NotificationItem(BaseModel):
    """One pending leave request as shown in the header dropdown.

    ``description`` is display text and may be clamped; ``days`` and
    ``leave_type`` are the untruncated values.
    """

    request_id: uuid.UUID
    requester_name: str
    created_at: Optional[datetime] = None
    date_label: str = ""
    description: str
    leave_type: Optional[str] = None
    leave_label: str
    days: Decimal


class NotificationFeed(BaseModel):
    status: QueryStatus
    pending_count: int = 0
    items: list[NotificationItem] = []
    error: Optional[str] = None
    updated_at: Optional[datetime] = None


class PendingCountResponse(BaseModel):
    status: QueryStatus
    pending_count: Optional[int] = None
    error: Optional[str] = None
