"""Profile ORM model — one row per user, employment metadata and leave balances.

The avatar is stored inline as a data URL in ``avatar_url``; there is no
separate blob store, so every profile read carries the full image payload.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrdash.database import Base

if TYPE_CHECKING:
    from hrdash.leave.models import LeaveRequest


class Profile(Base):
    __tablename__ = "profiles"
    __table_args__ = (
        sa.CheckConstraint(
            "remaining_annual_leave >= 0", name="ck_profiles_annual_leave_non_negative",
        ),
        sa.CheckConstraint(
            "remaining_sick_leave >= 0", name="ck_profiles_sick_leave_non_negative",
        ),
        sa.CheckConstraint("salary >= 0", name="ck_profiles_salary_non_negative"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    full_name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    email: Mapped[str] = mapped_column(sa.String(255), unique=True, nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(sa.String(30))
    department: Mapped[Optional[str]] = mapped_column(sa.String(100))
    position: Mapped[Optional[str]] = mapped_column(sa.String(100))
    status: Mapped[Optional[str]] = mapped_column(
        sa.String(20), server_default="active",
    )
    salary: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(12, 2))
    join_date: Mapped[Optional[date]] = mapped_column(sa.Date)
    remaining_annual_leave: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(5, 1))
    remaining_sick_leave: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(5, 1))
    avatar_url: Mapped[Optional[str]] = mapped_column(sa.Text)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        server_default=sa.func.now(),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # ── Relationships ───────────────────────────────────────────────
    leave_requests: Mapped[list[LeaveRequest]] = relationship(
        back_populates="profile",
    )

    def __repr__(self) -> str:
        return f"<Profile {self.full_name!r}>"
