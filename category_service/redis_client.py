"""Async Redis connection pool for the Redis cache backend.

Only used when CACHE_BACKEND=redis. The pool is created once during
application startup and closed on shutdown.

Usage:
    # In the FastAPI lifespan
    redis = await init_redis_pool()
    store = RedisStore(redis)

    # On shutdown
    await close_redis_pool()
"""

import os
import logging
from typing import Optional

from redis import asyncio as aioredis
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


class RedisConfig:
    """Configuration for Redis connection pool.

    REDIS_URL wins when set; otherwise the URL is assembled from the
    individual REDIS_* variables.
    """

    def __init__(self):
        self.url = os.getenv("REDIS_URL")
        self.host = os.getenv("REDIS_HOST", "localhost")
        self.port = int(os.getenv("REDIS_PORT", "6379"))
        self.db = int(os.getenv("REDIS_DB", "0"))
        self.password = os.getenv("REDIS_PASSWORD", None)
        self.max_connections = int(os.getenv("REDIS_MAX_CONNECTIONS", "10"))
        self.socket_timeout = int(os.getenv("REDIS_SOCKET_TIMEOUT", "5"))
        self.socket_connect_timeout = int(os.getenv("REDIS_SOCKET_CONNECT_TIMEOUT", "5"))

    def get_url(self) -> str:
        if self.url:
            return self.url
        auth = f":{self.password}@" if self.password else ""
        return f"redis://{auth}{self.host}:{self.port}/{self.db}"

    def __repr__(self) -> str:
        """String representation (safe - no password)."""
        return (
            f"RedisConfig("
            f"host={self.host}, "
            f"port={self.port}, "
            f"db={self.db}, "
            f"max_connections={self.max_connections})"
        )


# Global async Redis pool singleton
_redis_pool: Optional[aioredis.Redis] = None
_redis_config: Optional[RedisConfig] = None


async def init_redis_pool() -> aioredis.Redis:
    """Initialize the global async Redis connection pool.

    Safe to call multiple times; the existing pool is returned.

    Raises:
        redis.exceptions.RedisError: If the server cannot be reached
    """
    global _redis_pool, _redis_config

    if _redis_pool is not None:
        logger.info("Redis pool already initialized, returning existing pool")
        return _redis_pool

    _redis_config = RedisConfig()
    logger.info(f"Initializing Redis pool with config: {_redis_config}")

    try:
        _redis_pool = aioredis.from_url(
            _redis_config.get_url(),
            max_connections=_redis_config.max_connections,
            socket_timeout=_redis_config.socket_timeout,
            socket_connect_timeout=_redis_config.socket_connect_timeout,
            decode_responses=True,
        )
        await _redis_pool.ping()
        logger.info("Redis pool initialized successfully")
        return _redis_pool

    except Exception as e:
        logger.error(f"Failed to initialize Redis pool: {e}", exc_info=True)
        _redis_pool = None
        _redis_config = None
        raise


async def close_redis_pool() -> None:
    """Close the global async Redis connection pool."""
    global _redis_pool, _redis_config

    if _redis_pool is None:
        return

    try:
        await _redis_pool.aclose()
        logger.info("Redis pool closed")
    except Exception as e:
        logger.error(f"Error closing Redis pool: {e}", exc_info=True)
    finally:
        _redis_pool = None
        _redis_config = None


async def check_redis_health() -> dict:
    """
    Check the health of the Redis connection pool.

    Returns:
        dict with "status" ("healthy", "degraded" or "unavailable") and,
        when known, host/port/db or the error message.
    """
    if _redis_pool is None:
        return {"status": "unavailable", "error": "Pool not initialized"}

    try:
        await _redis_pool.ping()
        return {
            "status": "healthy",
            "host": _redis_config.host if _redis_config else None,
            "port": _redis_config.port if _redis_config else None,
            "db": _redis_config.db if _redis_config else None,
        }
    except Exception as e:
        logger.error(f"Redis health check failed: {e}", exc_info=True)
        return {"status": "degraded", "error": str(e)}
