"""
Time-boxed get-or-compute cache.

The backend is chosen once by `init_cache()`: Redis when `ENABLE_REDIS` is
set and reachable, otherwise process memory. Callers only use the functions
below and never talk to a backend directly.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Protocol, TypeVar

from core import config

from .memory import MemoryCache

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CacheBackend(Protocol):
    name: str

    async def get(self, key: str) -> Any | None: ...

    async def set(self, key: str, value: Any, ttl_s: float) -> None: ...

    async def delete(self, key: str) -> bool: ...

    async def close(self) -> None: ...


_backend: CacheBackend | None = None

# key -> [lock, number of coroutines holding or waiting on it]
_inflight: dict[str, list[Any]] = {}


async def init_cache() -> CacheBackend:
    global _backend
    if _backend is not None:
        return _backend

    if config.env_flag("ENABLE_REDIS"):
        from .redis_backend import RedisCache

        redis_cache = RedisCache()
        try:
            await redis_cache.connect()
        except Exception as exc:
            logger.error("[cache] Redis load fail, use memory instead: %r", exc)
            await redis_cache.close()
        else:
            logger.info("[cache] Redis loaded.")
            _backend = redis_cache
            return _backend

    _backend = MemoryCache()
    logger.info("[cache] Memory cache loaded.")
    return _backend


def set_backend(backend: CacheBackend | None) -> None:
    global _backend
    _backend = backend
    _inflight.clear()


async def backend() -> CacheBackend:
    if _backend is None:
        return await init_cache()
    return _backend


async def close_cache() -> None:
    global _backend
    if _backend is None:
        return None
    await _backend.close()
    _backend = None
    _inflight.clear()


async def get_with_cache(
    key: str,
    ttl_s: float,
    compute: Callable[[], Awaitable[T | None]],
) -> T | None:
    """
    Return the cached value for `key`, or compute, store and return it.

    A `None` result is returned but not cached. Concurrent misses for the
    same key share one `compute()` call.
    """
    cache = await backend()
    value = await cache.get(key)
    if value is not None:
        return value

    slot = _inflight.setdefault(key, [asyncio.Lock(), 0])
    slot[1] += 1
    try:
        async with slot[0]:
            value = await cache.get(key)
            if value is not None:
                return value

            value = await compute()
            if value is not None:
                await cache.set(key, value, ttl_s)
            return value
    finally:
        slot[1] -= 1
        if slot[1] == 0 and _inflight.get(key) is slot:
            del _inflight[key]


async def remove_cached_item(key: str) -> bool:
    cache = await backend()
    return await cache.delete(key)
