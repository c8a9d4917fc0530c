"""Configuration for the Category Service."""

import logging
import os
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()


def get_port(env_var: str, default: int) -> int:
    """Get port from environment or return default."""
    try:
        return int(os.getenv(env_var, default))
    except ValueError:
        logging.getLogger(__name__).warning(f"Invalid {env_var}, using default {default}")
        return default


def get_int(env_var: str, default: Optional[int]) -> Optional[int]:
    """Read an integer setting; empty string or "none" means unset."""
    raw = os.getenv(env_var)
    if raw is None:
        return default
    if raw.strip().lower() in ("", "none"):
        return None
    try:
        return int(raw)
    except ValueError:
        logging.getLogger(__name__).warning(f"Invalid {env_var}={raw!r}, using default {default}")
        return default


# ============================================================================
# Application
# ============================================================================

APP_NAME = os.getenv("APP_NAME", "Category Service")
APP_VERSION = os.getenv("APP_VERSION", "1.0.0")
API_PREFIX = "/" + os.getenv("API_PREFIX", "api/v1").strip("/")

# HTTP server port
PORT = get_port("PORT", 5000)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def get_cors_origins() -> List[str]:
    """Allowed CORS origins, comma separated in ALLOWED_ORIGINS."""
    raw = os.getenv("ALLOWED_ORIGINS")
    if not raw:
        return ["http://localhost:3000", "http://localhost:5000"]
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


# ============================================================================
# Cache
# ============================================================================

# "memory" (in-process expiring store) or "redis"
CACHE_BACKEND = os.getenv("CACHE_BACKEND", "memory").lower()

# Capacity bound for the in-process store; unset/"none" disables it
CACHE_MAX_ENTRIES = get_int("CACHE_MAX_ENTRIES", 1000)

# TTL classes in seconds
CACHE_TTL_LIST = get_int("CACHE_TTL_LIST", 300)
CACHE_TTL_DETAIL = get_int("CACHE_TTL_DETAIL", 600)
CACHE_TTL_STATS = get_int("CACHE_TTL_STATS", 900)
CACHE_TTL_VALIDATION = get_int("CACHE_TTL_VALIDATION", 60)

# Key namespace used by the Redis store
CACHE_NAMESPACE = os.getenv("CACHE_NAMESPACE", "category-service")


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging once for the process."""
    logging.basicConfig(
        level=getattr(logging, (level or LOG_LEVEL), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
