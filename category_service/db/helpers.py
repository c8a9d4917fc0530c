"""Async database helpers on top of the asyncpg pool.

Usage Examples:
    row = await fetch_one("SELECT * FROM categories WHERE id = $1", entity_id)
    rows = await fetch_all("SELECT * FROM categories WHERE status = $1", "active")
    total = await fetch_val("SELECT COUNT(*) FROM categories")

    async with transaction() as conn:
        await conn.execute("UPDATE categories SET sort_order = $1 WHERE id = $2", 3, entity_id)

Notes:
    - Uses $1, $2, $3 parameter placeholders (asyncpg format)
    - Rows are returned as plain dicts
    - Errors are logged with the failing query and re-raised
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

import asyncpg

from category_service.db.pool import get_pool

logger = logging.getLogger(__name__)


def _log_failure(operation: str, error: Exception, query: str, args: tuple) -> None:
    logger.error(f"Error in {operation}: {error}", exc_info=True)
    logger.error(f"Query: {query}")
    logger.error(f"Args: {args}")


async def fetch_one(query: str, *args) -> Optional[Dict[str, Any]]:
    """Fetch a single row as a dict, or None if the query returns no rows."""
    pool = get_pool()

    try:
        async with pool.acquire() as conn:
            row = await conn.fetchrow(query, *args)
            return dict(row) if row else None

    except Exception as e:
        _log_failure("fetch_one", e, query, args)
        raise


async def fetch_all(query: str, *args) -> List[Dict[str, Any]]:
    """Fetch all rows as a list of dicts."""
    pool = get_pool()

    try:
        async with pool.acquire() as conn:
            rows = await conn.fetch(query, *args)
            return [dict(row) for row in rows]

    except Exception as e:
        _log_failure("fetch_all", e, query, args)
        raise


async def fetch_val(query: str, *args) -> Any:
    """Fetch the first column of the first row."""
    pool = get_pool()

    try:
        async with pool.acquire() as conn:
            return await conn.fetchval(query, *args)

    except Exception as e:
        _log_failure("fetch_val", e, query, args)
        raise


async def execute(query: str, *args) -> str:
    """
    Execute an INSERT/UPDATE/DELETE statement.

    Returns:
        asyncpg status string, e.g. "UPDATE 3"
    """
    pool = get_pool()

    try:
        async with pool.acquire() as conn:
            return await conn.execute(query, *args)

    except Exception as e:
        _log_failure("execute", e, query, args)
        raise


async def execute_with_returning(query: str, *args) -> Optional[Dict[str, Any]]:
    """Execute a statement with a RETURNING clause and return the row as a dict."""
    pool = get_pool()

    try:
        async with pool.acquire() as conn:
            row = await conn.fetchrow(query, *args)
            return dict(row) if row else None

    except Exception as e:
        _log_failure("execute_with_returning", e, query, args)
        raise


@asynccontextmanager
async def transaction() -> AsyncIterator[asyncpg.Connection]:
    """
    Async context manager yielding a connection inside a transaction.

    Commits when the block exits normally, rolls back when it raises.
    """
    pool = get_pool()

    async with pool.acquire() as conn:
        async with conn.transaction():
            try:
                yield conn
            except Exception as e:
                logger.error(f"Transaction rolled back: {e}")
                raise


def affected_rows(status: str) -> int:
    """Row count from an asyncpg status string ("UPDATE 3" -> 3)."""
    try:
        return int(status.split()[-1])
    except (AttributeError, IndexError, ValueError):
        return 0
