"""
Read-through cache collaborator.

The client never depends on the cache being correct: a miss, an expired entry
or a stored None always falls back to the network. Eviction and expiry are the
cache's own business.
"""

import hashlib
from typing import Any, Mapping, Optional, Protocol, runtime_checkable

from .pagination import fingerprint


@runtime_checkable
class ItemCache(Protocol):
    """Anything with ``get(key)`` and ``set(key, value, ttl)``."""

    def get(self, key: str) -> Optional[Any]:
        ...

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> Any:
        ...


def cache_key(table_name: str, key: Mapping[str, Any]) -> str:
    """Stable cache key of one item: MD5 of the table and its key pairs."""
    raw = f"{table_name}|{fingerprint(key)}"
    return hashlib.md5(raw.encode('utf-8')).hexdigest()
