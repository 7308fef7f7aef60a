from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException


logger = logging.getLogger(__name__)


def _get_request_id(request: Request) -> Optional[str]:
    rid = getattr(getattr(request, "state", None), "request_id", None)
    if rid:
        return rid
    return request.headers.get("X-Request-Id")


def _error_payload(code: str, message: str, request_id: Optional[str]) -> Dict[str, Any]:
    return {"error": {"code": code, "message": message, "request_id": request_id}}


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """
    Normalize HTTP errors (unknown path, wrong method) into the error schema.
    Registered for Starlette's HTTPException so router-level 404/405 are covered too.
    """
    rid = _get_request_id(request)

    code = "not_found" if exc.status_code == 404 else "http_error"
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_payload(code=code, message=message, request_id=rid),
        headers={"X-Request-Id": rid} if rid else None,
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Catch-all handler for bugs in the exporter itself.
    Data-source failures never get here; collectors absorb them.
    """
    rid = _get_request_id(request)
    logger.exception("Unhandled error")

    return JSONResponse(
        status_code=500,
        content=_error_payload(code="internal_error", message="Internal server error", request_id=rid),
        headers={"X-Request-Id": rid} if rid else None,
    )
