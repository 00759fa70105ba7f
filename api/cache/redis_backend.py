"""
Redis cache backend (redis.asyncio).

Values are stored JSON-encoded under `REDIS_KEY_PREFIX + key` with a
millisecond TTL, so they must be JSON-serializable.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import redis.asyncio as aioredis

from core import config

logger = logging.getLogger(__name__)


def redis_url() -> str:
    return config.env_str("REDIS_URL", "redis://localhost:6379/0")


def redis_key_prefix() -> str:
    return config.env_str("REDIS_KEY_PREFIX")


class RedisCache:
    name = "redis"

    def __init__(self, client: aioredis.Redis | None = None, *, key_prefix: str | None = None) -> None:
        self.client = client if client is not None else aioredis.from_url(redis_url())
        self.key_prefix = redis_key_prefix() if key_prefix is None else key_prefix

    def _key(self, key: str) -> str:
        return self.key_prefix + key

    async def connect(self) -> None:
        await self.client.ping()

    async def get(self, key: str) -> Any | None:
        try:
            raw = await self.client.get(self._key(key))
        except aioredis.RedisError as exc:
            logger.error("[cache/redis] Redis Client Error: %r", exc)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError as exc:
            logger.error("[cache/redis] Corrupt value under %s: %r", self._key(key), exc)
            return None

    async def set(self, key: str, value: Any, ttl_s: float) -> None:
        try:
            await self.client.set(
                self._key(key),
                json.dumps(value, ensure_ascii=False),
                px=max(1, int(ttl_s * 1000)),
            )
        except aioredis.RedisError as exc:
            logger.error("[cache/redis] Redis Client Error: %r", exc)

    async def delete(self, key: str) -> bool:
        try:
            return bool(await self.client.delete(self._key(key)))
        except aioredis.RedisError as exc:
            logger.error("[cache/redis] Redis Client Error: %r", exc)
            return False

    async def close(self) -> None:
        await self.client.aclose()
