"""Tri-state read envelope returned by every cached query."""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Any, Callable, Generic, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")
U = TypeVar("U")


class QueryStatus(str, enum.Enum):
    idle = "idle"          # disabled, never executed
    loading = "loading"    # first fetch in flight, no data yet
    error = "error"
    success = "success"


class QueryResult(BaseModel, Generic[T]):
    """Outcome of a cached read.

    ``idle`` / ``loading`` / ``error`` / ``success`` keep "not yet",
    "failed" and "legitimately empty" apart: an empty list is only ever
    reported with ``status == success``.
    """

    status: QueryStatus
    data: Optional[T] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    updated_at: Optional[datetime] = None
    is_invalidated: bool = False

    # The AppException behind an error result; kept off the wire.
    exception: Optional[Any] = Field(default=None, exclude=True)

    @property
    def is_idle(self) -> bool:
        return self.status == QueryStatus.idle

    @property
    def is_loading(self) -> bool:
        return self.status == QueryStatus.loading

    @property
    def is_error(self) -> bool:
        return self.status == QueryStatus.error

    @property
    def is_success(self) -> bool:
        return self.status == QueryStatus.success

    def map(self, fn: Callable[[T], U]) -> "QueryResult[U]":
        """Derive a result from this one; non-success results pass through."""
        return QueryResult(
            status=self.status,
            data=fn(self.data) if self.is_success else None,
            error=self.error,
            error_type=self.error_type,
            updated_at=self.updated_at,
            is_invalidated=self.is_invalidated,
            exception=self.exception,
        )

    def raise_for_error(self) -> "QueryResult[T]":
        if self.is_error and self.exception is not None:
            raise self.exception
        return self
