"""
Reviewer statistics business logic.

Replica queries are slow, so results are served through the shared cache.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

import cache

from . import repository

logger = logging.getLogger(__name__)

REVIEWER_DATA_CACHE_KEY = "api/reviewer-data/data"
REVIEWER_DATA_TTL_S = 60 * 60

SYSOP_PATROLLER_CACHE_KEY = "api/list-sysop-patroller/data"
SYSOP_PATROLLER_TTL_S = 5 * 60


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


async def reviewer_data() -> dict | None:
    """
    `{"dataTimestamp": ..., "reviewerData": [...]}`, cached for an hour.

    Replica errors propagate to the caller; nothing is cached for them.
    """

    async def compute() -> dict:
        rows = await repository.list_reviewer_stats()
        logger.debug("[reviewers] Fetched stats for %d reviewers", len(rows))
        return {"dataTimestamp": _utc_now_iso(), "reviewerData": rows}

    return await cache.get_with_cache(REVIEWER_DATA_CACHE_KEY, REVIEWER_DATA_TTL_S, compute)


async def purge_reviewer_data() -> bool:
    return await cache.remove_cached_item(REVIEWER_DATA_CACHE_KEY)


async def sysop_patroller_names() -> list[str]:
    async def compute() -> list[str]:
        return await repository.list_sysop_patroller_names()

    names = await cache.get_with_cache(SYSOP_PATROLLER_CACHE_KEY, SYSOP_PATROLLER_TTL_S, compute)
    return names or []
