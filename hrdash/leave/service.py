"""LeaveRequestRepository — filtered, cached leave reads plus submit / decide."""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal
from typing import Any, Callable, Union

from hrdash.cache.query_cache import QueryCache
from hrdash.cache.schemas import QueryResult
from hrdash.common.constants import (
    LEAVE_REQUESTS_KEY,
    LeaveStatus,
    StatusFilter,
    ToastVariant,
    leave_type_label,
)
from hrdash.common.exceptions import (
    AppException,
    NotFoundException,
    ValidationException,
)
from hrdash.leave.schemas import LeaveDecision, LeaveRequest, LeaveRequestCreate
from hrdash.session.context import SessionContext
from hrdash.store.service import RemoteStore, StoreError, translate_store_error

logger = logging.getLogger(__name__)

TABLE = "leave_requests"
# Newest first; id breaks created_at ties so refetches keep their order
ORDER = "-created_at,id"
REQUESTER_EMBED = {"profile": ("full_name",)}


def parse_status_filter(value: Union[str, StatusFilter, None]) -> StatusFilter:
    if value is None:
        return StatusFilter.all
    try:
        return StatusFilter(value)
    except ValueError:
        raise ValidationException(
            errors={"status": [f"'{value}' is not one of {[f.value for f in StatusFilter]}."]},
            detail="Unknown leave status filter.",
        ) from None


def leave_requests_key(status_filter: Union[str, StatusFilter] = StatusFilter.all) -> tuple:
    return (*LEAVE_REQUESTS_KEY, parse_status_filter(status_filter).value)


def format_days(days: Decimal) -> str:
    """``Decimal("3.0")`` → ``"3"``, ``Decimal("1.5")`` → ``"1.5"``."""
    return str(int(days)) if days == days.to_integral_value() else str(days.normalize())


class LeaveRequestRepository:
    def __init__(self, store: RemoteStore, cache: QueryCache) -> None:
        self.store = store
        self.cache = cache

    # ── Reads ───────────────────────────────────────────────────────

    async def list_leave_requests(
        self,
        ctx: SessionContext,
        status_filter: Union[str, StatusFilter] = StatusFilter.all,
        *,
        refresh: bool = False,
    ) -> QueryResult:
        """Visible leave requests matching *status_filter*; ``all`` has no predicate."""
        f = parse_status_filter(status_filter)
        filters = {} if f == StatusFilter.all else {"status": LeaveStatus(f.value)}

        async def load() -> list[LeaveRequest]:
            rows = await self._select(ctx, filters=filters, order=ORDER, embed=REQUESTER_EMBED)
            return [LeaveRequest.model_validate(row) for row in rows]

        return await self.cache.query(
            ctx.cache_scope, leave_requests_key(f), load, refresh=refresh,
        )

    def subscribe(
        self,
        ctx: SessionContext,
        status_filter: Union[str, StatusFilter],
        callback: Callable[[QueryResult], None],
    ) -> Callable[[], None]:
        return self.cache.subscribe(ctx.cache_scope, leave_requests_key(status_filter), callback)

    # ── Writes ──────────────────────────────────────────────────────

    async def submit_leave_request(
        self,
        ctx: SessionContext,
        body: LeaveRequestCreate,
    ) -> LeaveRequest:
        """File a pending request against the caller's own profile."""
        try:
            profiles = await self._call(
                self.store.select(
                    ctx.store_identity, "profiles",
                    columns=("id",), filters={"user_id": ctx.user_id},
                ),
                "Profile", ctx.user_id,
            )
            if not profiles:
                raise NotFoundException("Profile", ctx.user_id)
            row = await self._call(
                self.store.insert(
                    ctx.store_identity,
                    TABLE,
                    {
                        "profile_id": profiles[0]["id"],
                        "leave_type": body.leave_type,
                        "days": body.days,
                        "status": LeaveStatus.pending,
                    },
                ),
                "LeaveRequest", None,
            )
        except AppException:
            ctx.notify(
                "Request Failed",
                "Failed to submit leave request. Please try again.",
                ToastVariant.destructive,
            )
            raise

        self.cache.invalidate(LEAVE_REQUESTS_KEY)
        label = leave_type_label(body.leave_type)
        logger.info("leave request %s submitted by %s", row["id"], ctx.user_id)
        ctx.notify(
            "Leave Requested",
            f"Your request for {format_days(body.days)} day(s) of {label} has been submitted.",
        )
        return LeaveRequest.model_validate(row)

    async def decide_leave_request(
        self,
        ctx: SessionContext,
        request_id: uuid.UUID,
        decision: LeaveDecision,
    ) -> LeaveRequest:
        """Move a pending request to approved / rejected.

        Decided requests are final.  The store only lets HR write the status.
        """
        try:
            rows = await self._select(
                ctx, filters={"id": request_id}, embed=REQUESTER_EMBED,
            )
            if not rows:
                raise NotFoundException("LeaveRequest", request_id)
            current = LeaveRequest.model_validate(rows[0])
            if current.status != LeaveStatus.pending:
                raise _already_decided(current.status)

            try:
                row = await self.store.update(
                    ctx.store_identity,
                    TABLE,
                    {"id": request_id, "status": LeaveStatus.pending},
                    {"status": decision.status},
                )
            except StoreError as exc:
                if exc.code == StoreError.NO_ROWS:
                    # Decided by someone else between the read and the write
                    raise _already_decided(None) from exc
                raise translate_store_error(exc, "LeaveRequest", request_id) from exc
        except AppException:
            ctx.notify(
                "Error",
                "Failed to update leave request. Please try again.",
                ToastVariant.destructive,
            )
            raise

        self.cache.invalidate(LEAVE_REQUESTS_KEY)
        logger.info(
            "leave request %s %s by %s", request_id, decision.status.value, ctx.user_id,
        )
        requester = current.requester_name or "The employee"
        ctx.notify(
            f"Leave {decision.status.value.capitalize()}",
            f"{requester}'s {current.leave_label} request has been {decision.status.value}.",
        )
        return LeaveRequest.model_validate({**row, "profile": current.profile})

    # ── Internal helpers ────────────────────────────────────────────

    async def _select(self, ctx: SessionContext, **kwargs: Any) -> list[dict[str, Any]]:
        return await self._call(
            self.store.select(ctx.store_identity, TABLE, **kwargs),
            "LeaveRequest", None,
        )

    @staticmethod
    async def _call(operation, entity_type: str, entity_id: Any) -> Any:
        try:
            return await operation
        except StoreError as exc:
            raise translate_store_error(exc, entity_type, entity_id) from exc


def _already_decided(status: LeaveStatus | None) -> ValidationException:
    state = status.value if status else "decided"
    return ValidationException(
        errors={"status": [f"Leave request is already {state}."]},
        detail="Only pending leave requests can be approved or rejected.",
    )
