"""
Prometheus instrumentation for API requests

Requests are labelled by their route template (/api/polls/{poll_id}/vote),
not the raw URL, so ids never turn into label values. Requests that match
no route share the "unmatched" label.

Usage:
    app.middleware("http")(metrics_middleware)
"""

import time

from fastapi import Request

from server.metrics import metrics

UNMATCHED_ENDPOINT = "unmatched"


def route_template(request: Request) -> str:
    """Path template of the route that served the request"""
    route = request.scope.get("route")
    return getattr(route, "path", None) or UNMATCHED_ENDPOINT


def _observe(request: Request, status_code: int, started: float) -> None:
    endpoint = route_template(request)
    metrics.api_requests.labels(
        endpoint=endpoint, method=request.method, status_code=status_code
    ).inc()
    metrics.api_request_duration.labels(
        endpoint=endpoint, method=request.method
    ).observe(time.perf_counter() - started)


async def metrics_middleware(request: Request, call_next):
    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception:
        _observe(request, 500, started)
        raise
    _observe(request, response.status_code, started)
    return response
