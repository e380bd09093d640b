"""
One structured log line per API request
"""

import time

from fastapi import Request

from config import get_logger
from server.middleware.request_id import get_request_id

logger = get_logger(__name__).bind(component="api")

# Scrapes and health probes would drown out real traffic
_QUIET_PATHS = {"/metrics", "/api/health"}


async def log_requests(request: Request, call_next):
    if request.url.path in _QUIET_PATHS:
        return await call_next(request)

    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception:
        logger.error(
            "request crashed",
            method=request.method,
            path=request.url.path,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
            request_id=get_request_id(request),
            exc_info=True,
        )
        raise

    log = logger.warning if response.status_code >= 500 else logger.info
    log(
        "request handled",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round((time.perf_counter() - started) * 1000, 1),
        request_id=get_request_id(request),
    )
    return response
