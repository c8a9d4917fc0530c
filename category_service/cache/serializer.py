"""Serialization utilities for cached values.

Cached payloads are stored as compact JSON strings so that the in-process
store and the Redis store hold exactly the same representation.

Special Type Handling:
    - datetime/date/time: Converted to ISO format strings
    - Decimal: Converted to float
    - UUID: Converted to string
    - Enum: Converted to its value
    - set: Converted to list

Usage:
    from category_service.cache.serializer import serialize, deserialize

    payload = serialize({"created_at": datetime.now(), "id": uuid4()})
    original = deserialize(payload)
"""

import json
import logging
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Union
from uuid import UUID

logger = logging.getLogger(__name__)


def _json_default(obj: Any) -> Any:
    """
    Custom JSON encoder for special types.

    Args:
        obj: Object to encode

    Returns:
        JSON-serializable representation

    Raises:
        TypeError: If object type is not supported
    """
    if isinstance(obj, (datetime, date, time)):
        return obj.isoformat()

    if isinstance(obj, Decimal):
        return float(obj)

    if isinstance(obj, UUID):
        return str(obj)

    if isinstance(obj, Enum):
        return obj.value

    if isinstance(obj, (set, frozenset)):
        return list(obj)

    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def serialize(data: Any) -> str:
    """
    Serialize data to a compact JSON string.

    Raises:
        ValueError: If serialization fails

    Example:
        >>> serialize({"page": 1, "items": []})
        '{"page":1,"items":[]}'
    """
    try:
        return json.dumps(data, default=_json_default, separators=(",", ":"))
    except (TypeError, ValueError) as e:
        logger.error(f"JSON serialization failed: {e}", exc_info=True)
        raise ValueError(f"Failed to serialize to JSON: {e}")


def deserialize(data: Union[str, bytes]) -> Any:
    """
    Deserialize a JSON string (or UTF-8 bytes) produced by serialize().

    Raises:
        ValueError: If deserialization fails
    """
    try:
        if isinstance(data, bytes):
            data = data.decode("utf-8")
        return json.loads(data)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Failed to deserialize from JSON: {e}")
