"""Query cache — coalesced, invalidating, tri-state reads."""

from hrdash.cache.query_cache import QueryCache
from hrdash.cache.schemas import QueryResult, QueryStatus

__all__ = ["QueryCache", "QueryResult", "QueryStatus"]
