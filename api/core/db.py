"""
Async access to the Toolforge wiki replica (raw SQL) using aiomysql.

This module owns the connection pool. It is created lazily on the first
query and closed on shutdown (see `api/main.py`).

SQL parameter style:
- aiomysql uses `%s` placeholders. Queries executed without arguments are
  sent verbatim, so literal `%` (e.g. in LIKE patterns) needs no escaping.
"""

from __future__ import annotations

import asyncio
import configparser
import logging
import os
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any

import aiomysql

from . import config

logger = logging.getLogger(__name__)

DEFAULT_REPLICA_HOST = "zhwiki.web.db.svc.eqiad.wmflabs"
DEFAULT_REPLICA_DATABASE = "zhwiki_p"

# Idle connections older than this are recycled.
POOL_RECYCLE_S = 2 * 60

_pool: aiomysql.Pool | None = None
_pool_lock = asyncio.Lock()


class ReplicaError(RuntimeError):
    pass


class ReplicaDisabledError(ReplicaError):
    def __init__(self) -> None:
        super().__init__("Replica query is disabled.")


def is_replica_enabled() -> bool:
    return config.env_flag("ENABLE_REPLICA_QUERY")


def replica_config_path() -> Path:
    raw = config.env_str("REPLICA_CNF")
    return Path(raw) if raw else Path(os.path.expanduser("~")) / "replica.my.cnf"


def read_credentials(path: Path) -> tuple[str, str]:
    """
    Read `[client] user/password` from a Toolforge `replica.my.cnf`.
    """
    if not path.is_file():
        raise ReplicaError(f"{path} not found.")

    parser = configparser.ConfigParser(interpolation=None)
    parser.read(path, encoding="utf-8")
    try:
        user = parser.get("client", "user").strip().strip("'\"")
        password = parser.get("client", "password").strip().strip("'\"")
    except (configparser.NoSectionError, configparser.NoOptionError) as exc:
        raise ReplicaError(f"{path} has no [client] user/password.") from exc
    return user, password


async def init_pool() -> aiomysql.Pool:
    global _pool
    if not is_replica_enabled():
        raise ReplicaDisabledError()

    async with _pool_lock:
        if _pool is not None:
            return _pool

        user, password = read_credentials(replica_config_path())
        try:
            _pool = await aiomysql.create_pool(
                host=config.env_str("REPLICA_HOST", DEFAULT_REPLICA_HOST),
                port=config.env_int("REPLICA_PORT", 3306),
                user=user,
                password=password,
                db=config.env_str("REPLICA_DATABASE", DEFAULT_REPLICA_DATABASE),
                charset="utf8mb4",
                connect_timeout=10,
                minsize=0,
                maxsize=5,
                pool_recycle=POOL_RECYCLE_S,
                autocommit=True,
            )
        except Exception as exc:
            raise ReplicaError(f"Cannot connect to replica: {exc}") from exc

        logger.info("[replica] Pool created.")
        return _pool


async def close_pool() -> None:
    global _pool
    if _pool is None:
        return None
    _pool.close()
    await _pool.wait_closed()
    _pool = None
    logger.info("[replica] Pool closed.")


async def pool() -> aiomysql.Pool:
    if _pool is not None:
        return _pool
    return await init_pool()


def _normalize_value(value: Any) -> Any:
    # Replica text columns are VARBINARY.
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def _normalize_row(row: dict[str, Any]) -> dict[str, Any]:
    return {key: _normalize_value(value) for key, value in row.items()}


async def fetch_all(sql: str, *args: Any) -> list[dict[str, Any]]:
    """
    Run a query and return all rows as a list of dicts.
    """
    replica = await pool()
    try:
        async with replica.acquire() as conn:
            async with conn.cursor(aiomysql.DictCursor) as cur:
                await cur.execute(sql, args or None)
                rows = await cur.fetchall()
    except aiomysql.Error as exc:
        raise ReplicaError(f"Replica query failed: {exc}") from exc

    if not isinstance(rows, (list, tuple)):
        raise ReplicaError(f"Unknown replica response: {rows!r}")
    return [_normalize_row(r) for r in rows]


async def fetch_one(sql: str, *args: Any) -> dict[str, Any] | None:
    """
    Run a query and return a single row as a dict (or None).
    """
    rows = await fetch_all(sql, *args)
    return rows[0] if rows else None
