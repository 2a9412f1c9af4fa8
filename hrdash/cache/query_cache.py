"""Process-wide async read cache keyed by (scope, key).

* **scope**: ``(user_id, role)`` of the reading session, so entries written
  for one identity are never served to another.
* **key**: a tuple whose first element names the entity kind, e.g.
  ``("leave-requests", "pending")``.  Invalidation matches key *prefixes*.

Each load belongs to the generation the entry had when it started.  Readers
of the same generation await one shared task through ``asyncio.shield`` so a
cancelled reader stops waiting without cancelling the read other readers
still need.  Invalidation bumps the generation: a read issued afterwards
starts a new load instead of joining the old one, and only the newest load
writes its result back.  Entries nobody has read or subscribed to for
``gc_time`` seconds are dropped.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional

from hrdash.cache.schemas import QueryResult, QueryStatus
from hrdash.common.exceptions import AppException
from hrdash.config import settings

logger = logging.getLogger(__name__)

Scope = tuple[str, str]
Key = tuple[Any, ...]
Loader = Callable[[], Awaitable[Any]]
Subscriber = Callable[[QueryResult], None]


@dataclass
class CacheEntry:
    status: QueryStatus = QueryStatus.idle
    data: Any = None
    error: Optional[BaseException] = None
    updated_at: Optional[datetime] = None
    fetched_at: float = 0.0
    accessed_at: float = 0.0
    generation: int = 0
    invalidated: bool = False
    task: Optional[asyncio.Task] = None
    task_generation: int = -1
    fetch_count: int = 0


@dataclass
class _Subscription:
    callback: Subscriber
    active: bool = field(default=True)


class QueryCache:
    """Coalescing, invalidating read cache shared by every session."""

    def __init__(
        self,
        stale_time: Optional[float] = None,
        gc_time: Optional[float] = None,
    ) -> None:
        self.stale_time = (
            settings.CACHE_STALE_SECONDS if stale_time is None else stale_time
        )
        self.gc_time = settings.CACHE_GC_SECONDS if gc_time is None else gc_time
        self._entries: dict[tuple[Scope, Key], CacheEntry] = {}
        self._subscribers: dict[tuple[Scope, Key], list[_Subscription]] = {}
        self._last_sweep = time.monotonic()

    def __len__(self) -> int:
        return len(self._entries)

    # ── Reads ───────────────────────────────────────────────────────

    async def fetch(
        self,
        scope: Scope,
        key: Key,
        loader: Loader,
        *,
        refresh: bool = False,
    ) -> Any:
        """Return the cached value for *key*, loading it if missing or stale.

        ``refresh=True`` skips the freshness check but still joins a read of
        the current generation that is already in flight.  A read started
        before the last invalidation is never joined.  Raises whatever the
        loader raised.
        """
        self._maybe_sweep()
        entry = self._entries.setdefault((scope, key), CacheEntry())
        entry.accessed_at = time.monotonic()
        if not refresh and self._is_fresh(entry):
            return entry.data

        if entry.task is not None and entry.task_generation == entry.generation:
            logger.debug("cache join %s %s", scope[0][:8], key)
        else:
            if entry.task is not None:
                logger.debug("cache supersede %s %s", scope[0][:8], key)
            else:
                logger.debug("cache miss %s %s", scope[0][:8], key)
            if entry.status != QueryStatus.success:
                entry.status = QueryStatus.loading
            entry.task_generation = entry.generation
            entry.task = asyncio.create_task(
                self._load(scope, key, entry, loader, entry.generation),
            )
            entry.task.add_done_callback(_consume_exception)

        return await asyncio.shield(entry.task)

    async def query(
        self,
        scope: Scope,
        key: Key,
        loader: Loader,
        *,
        enabled: bool = True,
        refresh: bool = False,
    ) -> QueryResult:
        """Like ``fetch`` but never raises for application errors."""
        if not enabled:
            return QueryResult(status=QueryStatus.idle)
        try:
            await self.fetch(scope, key, loader, refresh=refresh)
        except AppException:
            pass
        return self.get_state(scope, key)

    def get_state(self, scope: Scope, key: Key) -> QueryResult:
        entry = self._entries.get((scope, key))
        if entry is None:
            return QueryResult(status=QueryStatus.idle)
        entry.accessed_at = time.monotonic()
        return _to_result(entry)

    # ── Invalidation ────────────────────────────────────────────────

    def invalidate(self, prefix: Key, scope: Optional[Scope] = None) -> int:
        """Mark every entry whose key starts with *prefix* as invalidated.

        ``scope=None`` reaches every scope: a write by one identity must be
        visible to every other identity's next read.  Returns the count.
        """
        count = 0
        for (entry_scope, key), entry in list(self._entries.items()):
            if scope is not None and entry_scope != scope:
                continue
            if key[: len(prefix)] != tuple(prefix):
                continue
            entry.generation += 1
            entry.invalidated = True
            count += 1
            self._notify(entry_scope, key, entry)
        logger.info("cache invalidate %s → %d entries", prefix, count)
        return count

    def clear_scope(self, scope: Scope) -> int:
        """Drop every entry and subscription belonging to *scope*."""
        keys = [k for k in self._entries if k[0] == scope]
        for k in keys:
            del self._entries[k]
        for k in [k for k in self._subscribers if k[0] == scope]:
            for sub in self._subscribers.pop(k):
                sub.active = False
        logger.info("cache cleared scope %s (%d entries)", scope[0][:8], len(keys))
        return len(keys)

    def clear(self) -> None:
        self._entries.clear()
        self._subscribers.clear()

    def evict_idle(self, now: Optional[float] = None) -> int:
        """Drop entries with no load in flight, no subscriber and no reader
        for ``gc_time`` seconds.  Returns the number dropped.
        """
        now = time.monotonic() if now is None else now
        idle = [
            k for k, entry in self._entries.items()
            if entry.task is None
            and k not in self._subscribers
            and now - entry.accessed_at >= self.gc_time
        ]
        for k in idle:
            del self._entries[k]
        self._last_sweep = now
        if idle:
            logger.info("cache evicted %d idle entries", len(idle))
        return len(idle)

    def in_flight(self, scope: Scope, key: Key) -> bool:
        entry = self._entries.get((scope, key))
        return entry is not None and entry.task is not None

    def fetch_count(self, scope: Scope, key: Key) -> int:
        entry = self._entries.get((scope, key))
        return entry.fetch_count if entry else 0

    # ── Subscriptions ───────────────────────────────────────────────

    def subscribe(
        self,
        scope: Scope,
        key: Key,
        callback: Subscriber,
    ) -> Callable[[], None]:
        """Call *callback* with the entry's result on every state change.

        Returns an unsubscribe function; calling it more than once is harmless.
        """
        sub = _Subscription(callback)
        self._subscribers.setdefault((scope, key), []).append(sub)

        def unsubscribe() -> None:
            sub.active = False
            subs = self._subscribers.get((scope, key))
            if subs and sub in subs:
                subs.remove(sub)
                if not subs:
                    del self._subscribers[(scope, key)]

        return unsubscribe

    # ── Internals ───────────────────────────────────────────────────

    def _is_fresh(self, entry: CacheEntry) -> bool:
        return (
            entry.status == QueryStatus.success
            and not entry.invalidated
            and time.monotonic() - entry.fetched_at < self.stale_time
        )

    def _maybe_sweep(self) -> None:
        now = time.monotonic()
        if now - self._last_sweep >= self.gc_time:
            self.evict_idle(now)

    async def _load(
        self,
        scope: Scope,
        key: Key,
        entry: CacheEntry,
        loader: Loader,
        generation: int,
    ) -> Any:
        this = asyncio.current_task()
        entry.fetch_count += 1
        try:
            data = await loader()
        except Exception as exc:
            if entry.task is this:
                entry.status = QueryStatus.error
                entry.error = exc
                entry.invalidated = False
                if isinstance(exc, AppException):
                    logger.info("cache load %s failed: %s", key, exc.detail)
                else:
                    logger.exception("cache load %s raised unexpectedly", key)
                self._notify(scope, key, entry)
            raise
        finally:
            owner = entry.task is this
            if owner:
                entry.task = None

        if not owner:
            # A newer load owns the entry; this result only serves its joiners
            logger.debug("cache discard superseded load %s", key)
            return data

        entry.status = QueryStatus.success
        entry.data = data
        entry.error = None
        entry.updated_at = datetime.now(timezone.utc)
        entry.fetched_at = time.monotonic()
        # An invalidation that landed mid-flight outlives this result
        entry.invalidated = entry.generation != generation
        self._notify(scope, key, entry)
        return data

    def _notify(self, scope: Scope, key: Key, entry: CacheEntry) -> None:
        subs = self._subscribers.get((scope, key))
        if not subs:
            return
        result = _to_result(entry)
        for sub in list(subs):
            if not sub.active:
                continue
            try:
                sub.callback(result)
            except Exception:
                logger.exception("cache subscriber for %s failed", key)


def _to_result(entry: CacheEntry) -> QueryResult:
    exc = entry.error
    return QueryResult(
        status=entry.status,
        data=entry.data if entry.status != QueryStatus.error else None,
        error=(
            exc.detail if isinstance(exc, AppException)
            else str(exc) if exc is not None else None
        ),
        error_type=exc.error_type if isinstance(exc, AppException) else None,
        updated_at=entry.updated_at,
        is_invalidated=entry.invalidated,
        exception=exc,
    )


def _consume_exception(task: asyncio.Task) -> None:
    # Every reader may have been cancelled; retrieve so asyncio stays quiet
    if not task.cancelled():
        task.exception()
