"""
In-process cache backend on `cachetools.TLRUCache`.

Every entry carries its own TTL; expired entries are purged on each write
and the least recently used entry goes first once `maxsize` is reached.
"""

from __future__ import annotations

import time
from typing import Any, Callable

from cachetools import TLRUCache

DEFAULT_MAXSIZE = 1024


def _expires_at(_key: str, entry: tuple[float, Any], now: float) -> float:
    ttl_s, _ = entry
    return now + ttl_s


class MemoryCache:
    name = "memory"

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        *,
        maxsize: int = DEFAULT_MAXSIZE,
    ) -> None:
        self._entries: TLRUCache = TLRUCache(maxsize=maxsize, ttu=_expires_at, timer=clock)

    async def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        return entry[1]

    async def set(self, key: str, value: Any, ttl_s: float) -> None:
        self._entries[key] = (ttl_s, value)

    async def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    async def close(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        self._entries.expire()
        return len(self._entries)
