"""Remote store — row-level-secured table access."""

from hrdash.store.policies import POLICIES, StoreIdentity, TablePolicy
from hrdash.store.service import RemoteStore, StoreError, translate_store_error

__all__ = [
    "POLICIES",
    "RemoteStore",
    "StoreError",
    "StoreIdentity",
    "TablePolicy",
    "translate_store_error",
]
