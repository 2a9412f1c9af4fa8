"""Row-level security policies for the tables the dashboard reads and writes.

Policies are keyed on the caller's durable identity (user id + assigned
role).  The session's ``view_as`` display mode never reaches this module.

* ``read``:      predicate rows must satisfy to be visible (``None`` = all rows).
                 It doubles as the WITH CHECK rule for inserted rows.
* ``writable``:  columns the caller may update (``None`` = any column).
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any, Callable, Optional

from sqlalchemy import ColumnElement, select

from hrdash.common.constants import UserRole
from hrdash.leave.models import LeaveRequest
from hrdash.profiles.models import Profile


@dataclass(frozen=True)
class StoreIdentity:
    """Who the store sees: never derived from the session's view mode."""

    user_id: uuid.UUID
    role: UserRole

    @property
    def is_hr(self) -> bool:
        return self.role == UserRole.hr


@dataclass(frozen=True)
class TablePolicy:
    model: Any
    read: Callable[[StoreIdentity], Optional[ColumnElement]]
    writable: Callable[[StoreIdentity], Optional[frozenset[str]]]


# Employees may edit contact details and their avatar, nothing HR-owned.
EMPLOYEE_PROFILE_COLUMNS = frozenset({"full_name", "email", "phone", "avatar_url"})


def _own_profile_ids(identity: StoreIdentity):
    return select(Profile.id).where(Profile.user_id == identity.user_id)


POLICIES: dict[str, TablePolicy] = {
    "profiles": TablePolicy(
        model=Profile,
        read=lambda ident: None if ident.is_hr else Profile.user_id == ident.user_id,
        writable=lambda ident: None if ident.is_hr else EMPLOYEE_PROFILE_COLUMNS,
    ),
    "leave_requests": TablePolicy(
        model=LeaveRequest,
        read=lambda ident: (
            None if ident.is_hr
            else LeaveRequest.profile_id.in_(_own_profile_ids(ident))
        ),
        writable=lambda ident: None if ident.is_hr else frozenset(),
    ),
}
