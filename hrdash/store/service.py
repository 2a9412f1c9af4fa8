"""Remote store — table-scoped CRUD with row-level security.

Stands in for the hosted database: callers name a table, pass filters /
ordering / projections and get plain row dicts back.  Every operation runs
in its own ``AsyncSession`` so independent reads can overlap.  Failures are
raised as ``StoreError`` carrying a Postgres-style code; repositories map
them onto the application exception taxonomy with ``translate_store_error``.
"""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Mapping, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import (
    DBAPIError,
    InterfaceError,
    OperationalError,
    StatementError,
)
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from hrdash.common.exceptions import (
    AppException,
    ForbiddenException,
    NetworkException,
    NotFoundException,
    ValidationException,
)
from hrdash.common.filters import apply_filters, apply_sorting
from hrdash.store.policies import POLICIES, StoreIdentity, TablePolicy

logger = logging.getLogger(__name__)


# ── Errors ──────────────────────────────────────────────────────────

class StoreError(Exception):
    """Store-defined failure carrying a code and a message."""

    NO_ROWS = "PGRST116"
    PERMISSION_DENIED = "42501"
    UNDEFINED_TABLE = "42P01"
    UNDEFINED_COLUMN = "42703"
    CONSTRAINT_VIOLATION = "23000"
    UNREACHABLE = "08006"

    def __init__(self, code: str, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(f"[{code}] {message}")

    @property
    def is_constraint_violation(self) -> bool:
        # SQLSTATE class 22 (data exception) and 23 (integrity constraint)
        return self.code.startswith(("22", "23"))


def translate_store_error(
    exc: StoreError,
    entity_type: str,
    entity_id: Any,
) -> AppException:
    """Map a store failure onto the application exception taxonomy."""
    if exc.code == StoreError.NO_ROWS:
        return NotFoundException(entity_type, entity_id)
    if exc.code == StoreError.PERMISSION_DENIED:
        return ForbiddenException(detail=exc.message)
    if exc.code == StoreError.UNREACHABLE:
        return NetworkException(detail=exc.message)
    if exc.code == StoreError.UNDEFINED_COLUMN or exc.is_constraint_violation:
        return ValidationException(
            errors={entity_type.lower(): [exc.message]},
            detail=f"The store rejected the {entity_type.lower()} write.",
        )
    return AppException(
        status_code=500,
        error_type="store-error",
        title="Store Error",
        detail=exc.message,
    )


# ═════════════════════════════════════════════════════════════════════
# RemoteStore
# ═════════════════════════════════════════════════════════════════════


class RemoteStore:
    """Async table-scoped select / insert / update with row-level security."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    # ─────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    def _policy(table: str) -> TablePolicy:
        try:
            return POLICIES[table]
        except KeyError:
            raise StoreError(
                StoreError.UNDEFINED_TABLE, f'relation "{table}" does not exist',
            ) from None

    @staticmethod
    def _check_columns(policy: TablePolicy, table: str, names: Sequence[str]) -> None:
        known = policy.model.__table__.columns
        for name in names:
            if name not in known:
                raise StoreError(
                    StoreError.UNDEFINED_COLUMN,
                    f'column "{name}" of relation "{table}" does not exist',
                )

    @staticmethod
    def _serialize(
        model: Any,
        obj: Any,
        columns: Optional[Sequence[str]] = None,
        embed: Optional[Mapping[str, Sequence[str]]] = None,
    ) -> dict[str, Any]:
        names = columns or [c.key for c in model.__table__.columns]
        row = {name: getattr(obj, name) for name in names}
        for relation, rel_columns in (embed or {}).items():
            related = getattr(obj, relation)
            row[relation] = (
                None if related is None
                else {name: getattr(related, name) for name in rel_columns}
            )
        return row

    @asynccontextmanager
    async def _session(self, operation: str, table: str) -> AsyncIterator[AsyncSession]:
        """Open a session and convert driver failures into ``StoreError``."""
        try:
            async with self._session_factory() as db:
                yield db
        except StoreError:
            raise
        except (OperationalError, InterfaceError) as exc:
            logger.warning("store %s on %s failed: unreachable (%s)", operation, table, exc.orig)
            raise StoreError(StoreError.UNREACHABLE, str(exc.orig)) from exc
        except (ConnectionError, TimeoutError) as exc:
            logger.warning("store %s on %s failed: %s", operation, table, exc)
            raise StoreError(StoreError.UNREACHABLE, str(exc)) from exc
        except DBAPIError as exc:
            code = getattr(exc.orig, "sqlstate", None) or StoreError.CONSTRAINT_VIOLATION
            logger.info("store %s on %s rejected: %s", operation, table, exc.orig)
            raise StoreError(code, str(exc.orig)) from exc
        except StatementError as exc:
            # Bind-time failures (e.g. a value outside an enum) never reach the driver
            logger.info("store %s on %s rejected: %s", operation, table, exc.orig)
            raise StoreError(StoreError.CONSTRAINT_VIOLATION, str(exc.orig)) from exc

    # ─────────────────────────────────────────────────────────────────
    # Select
    # ─────────────────────────────────────────────────────────────────

    async def select(
        self,
        identity: StoreIdentity,
        table: str,
        *,
        columns: Optional[Sequence[str]] = None,
        filters: Optional[dict[str, Any]] = None,
        order: Optional[str] = None,
        embed: Optional[Mapping[str, Sequence[str]]] = None,
    ) -> list[dict[str, Any]]:
        """Return visible rows matching *filters*, ordered by *order*.

        *embed* maps a relationship name to the columns to project from it,
        e.g. ``{"profile": ["full_name"]}``.
        """
        policy = self._policy(table)
        model = policy.model
        self._check_columns(policy, table, columns or [])

        query = select(model)
        visible = policy.read(identity)
        if visible is not None:
            query = query.where(visible)
        try:
            query = apply_filters(query, model, filters or {})
            query = apply_sorting(query, model, order)
        except KeyError as exc:
            raise StoreError(
                StoreError.UNDEFINED_COLUMN,
                f'column "{exc.args[0]}" of relation "{table}" does not exist',
            ) from None
        for relation in embed or {}:
            query = query.options(selectinload(getattr(model, relation)))

        async with self._session("select", table) as db:
            result = await db.execute(query)
            rows = [
                self._serialize(model, obj, columns, embed)
                for obj in result.scalars().all()
            ]
        logger.debug("store select %s → %d row(s)", table, len(rows))
        return rows

    # ─────────────────────────────────────────────────────────────────
    # Insert
    # ─────────────────────────────────────────────────────────────────

    async def insert(
        self,
        identity: StoreIdentity,
        table: str,
        values: dict[str, Any],
    ) -> dict[str, Any]:
        """Insert one row; the new row must be visible to the caller."""
        policy = self._policy(table)
        model = policy.model
        self._check_columns(policy, table, list(values))

        async with self._session("insert", table) as db:
            obj = model(**values)
            db.add(obj)
            await db.flush()

            visible = policy.read(identity)
            if visible is not None:
                check = await db.execute(
                    select(model.id).where(model.id == obj.id, visible)
                )
                if check.first() is None:
                    await db.rollback()
                    raise StoreError(
                        StoreError.PERMISSION_DENIED,
                        f'new row violates row-level security policy for table "{table}"',
                    )

            await db.commit()
            await db.refresh(obj)
            row = self._serialize(model, obj)
        logger.info("store insert %s id=%s", table, row.get("id"))
        return row

    # ─────────────────────────────────────────────────────────────────
    # Update
    # ─────────────────────────────────────────────────────────────────

    async def update(
        self,
        identity: StoreIdentity,
        table: str,
        filters: dict[str, Any],
        patch: dict[str, Any],
    ) -> dict[str, Any]:
        """Apply *patch* to the visible rows matching *filters*; return the first.

        Raises ``StoreError`` with ``NO_ROWS`` when nothing visible matches and
        ``PERMISSION_DENIED`` when the caller may not write a patched column.
        """
        if not filters:
            raise ValueError("update requires at least one filter")
        policy = self._policy(table)
        model = policy.model
        self._check_columns(policy, table, list(patch))

        query = select(model)
        visible = policy.read(identity)
        if visible is not None:
            query = query.where(visible)
        try:
            query = apply_filters(query, model, filters)
        except KeyError as exc:
            raise StoreError(
                StoreError.UNDEFINED_COLUMN,
                f'column "{exc.args[0]}" of relation "{table}" does not exist',
            ) from None

        async with self._session("update", table) as db:
            targets = (await db.execute(query)).scalars().all()
            if not targets:
                raise StoreError(StoreError.NO_ROWS, "The result contains 0 rows")

            writable = policy.writable(identity)
            if writable is not None:
                denied = sorted(set(patch) - writable)
                if denied:
                    raise StoreError(
                        StoreError.PERMISSION_DENIED,
                        f"permission denied to update {', '.join(denied)} on table \"{table}\"",
                    )

            for obj in targets:
                for name, value in patch.items():
                    setattr(obj, name, value)
            await db.flush()
            await db.commit()

            await db.refresh(targets[0])
            row = self._serialize(model, targets[0])
        logger.info(
            "store update %s %s fields=%s", table, _describe(filters), sorted(patch),
        )
        return row


def _describe(filters: dict[str, Any]) -> str:
    return ",".join(
        f"{k}={v}" if not isinstance(v, uuid.UUID) else f"{k}={str(v)[:8]}"
        for k, v in filters.items()
    )
