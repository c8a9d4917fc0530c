"""Database layer: asyncpg pool, query helpers and the taxonomy accessor."""

from .pool import (
    DatabaseConfig,
    init_pool,
    get_pool,
    close_pool,
    check_pool_health,
)
from .query_builders import SelectQuery, build_insert, build_update, validate_identifier

__all__ = [
    "DatabaseConfig",
    "init_pool",
    "get_pool",
    "close_pool",
    "check_pool_health",
    "SelectQuery",
    "build_insert",
    "build_update",
    "validate_identifier",
]
