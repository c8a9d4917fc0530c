"""Response envelopes shared by every route and exception handler.

Success:
    {"success": true, "status_code", "message", "data",
     "meta": {"timestamp", "request_id", "path", "method", "pagination"?}}

Error:
    {"success": false, "status_code", "timestamp", "path", "method",
     "message", "error", "request_id"}
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional
from urllib.parse import quote

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def request_id_of(request: Request) -> Optional[str]:
    return getattr(request.state, "request_id", None)


def success_response(
    request: Request,
    data: Any,
    message: str = "Success",
    status_code: int = 200,
    pagination: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    meta: Dict[str, Any] = {
        "timestamp": _now(),
        "request_id": request_id_of(request),
        "path": request.url.path,
        "method": request.method,
    }
    if pagination is not None:
        meta["pagination"] = pagination

    body = {
        "success": True,
        "status_code": status_code,
        "message": message,
        "data": data,
        "meta": meta,
    }
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body), headers=headers)


def error_response(
    request: Request,
    status_code: int,
    message: Any,
    error: str,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    body = {
        "success": False,
        "status_code": status_code,
        "timestamp": _now(),
        "path": request.url.path,
        "method": request.method,
        "message": message,
        "error": error,
        "request_id": request_id_of(request),
    }
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body), headers=headers)


def cache_headers(ttl: int, key: str) -> Dict[str, str]:
    """Headers telling HTTP caches how long a GET body stays fresh.

    Header values must be latin-1, so the key is percent-encoded; keys that
    are already ASCII pass through unchanged.
    """
    return {"Cache-Control": f"public, max-age={int(ttl)}", "X-Cache-Key": quote(key, safe=":%")}
