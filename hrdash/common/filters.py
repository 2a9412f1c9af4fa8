"""Generic filtering and sorting utilities for store selects."""

from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import Select, and_
from sqlalchemy.orm import InstrumentedAttribute


# ── Sorting ─────────────────────────────────────────────────────────

def apply_sorting(
    query: Select,
    model: Any,
    sort: Optional[str],
) -> Select:
    """
    Parse a sort string like ``"-created_at,id"`` and apply ORDER BY.

    * Comma-separated columns are applied in order.
    * Leading ``-`` → DESC; otherwise ASC.
    * Unknown columns raise ``KeyError``; sort strings come from code, not users.
    """
    if not sort:
        return query

    for part in sort.split(","):
        part = part.strip()
        descending = part.startswith("-")
        col_name = part.lstrip("-")
        col = _get_column(model, col_name)
        if col is None:
            raise KeyError(col_name)
        query = query.order_by(col.desc() if descending else col.asc())

    return query


# ── Generic filtering ──────────────────────────────────────────────

def apply_filters(
    query: Select,
    model: Any,
    filters: dict[str, Any],
) -> Select:
    """
    Apply a dict of filter parameters to a SQLAlchemy ``Select``.

    Key suffixes determine the operator:

    ============  ==================
    Suffix        Operator
    ============  ==================
    (none)        ``==``
    ``__ilike``   case-insensitive LIKE (wraps ``%…%``)
    ``__from``    ``>=``
    ``__to``      ``<=``
    ``__in``      ``IN (…)``
    ============  ==================

    ``None`` values are silently skipped; unknown columns raise ``KeyError``.
    """
    conditions: list = []

    for key, value in filters.items():
        if value is None:
            continue

        if key.endswith("__ilike"):
            col = _require_column(model, key.removesuffix("__ilike"))
            conditions.append(col.ilike(f"%{value}%"))

        elif key.endswith("__from"):
            col = _require_column(model, key.removesuffix("__from"))
            conditions.append(col >= value)

        elif key.endswith("__to"):
            col = _require_column(model, key.removesuffix("__to"))
            conditions.append(col <= value)

        elif key.endswith("__in"):
            col = _require_column(model, key.removesuffix("__in"))
            conditions.append(col.in_(value))

        else:
            col = _require_column(model, key)
            conditions.append(col == value)

    if conditions:
        query = query.where(and_(*conditions))

    return query


# ── Internal helpers ────────────────────────────────────────────────

def _get_column(model: Any, name: str) -> Optional[InstrumentedAttribute]:
    """Safely retrieve a mapped column attribute by name."""
    if name not in model.__table__.columns:
        return None
    return getattr(model, name, None)


def _require_column(model: Any, name: str) -> InstrumentedAttribute:
    col = _get_column(model, name)
    if col is None:
        raise KeyError(name)
    return col
