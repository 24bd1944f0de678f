"""
Middleware for collecting HTTP request metrics
"""
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from pairmatch.core.metrics import (http_request_duration_seconds,
                                    http_requests_total)


def normalize_endpoint(path: str) -> str:
    """Replace UUID path segments with {id} so label cardinality stays bounded"""
    parts = path.split("/")
    for i, part in enumerate(parts):
        if len(part) == 36 and part.count("-") == 4:
            parts[i] = "{id}"
    return "/".join(parts)


class MetricsMiddleware(BaseHTTPMiddleware):
    """
    Middleware to collect HTTP request metrics for Prometheus
    """

    async def dispatch(self, request: Request, call_next):
        if request.url.path == "/metrics":
            return await call_next(request)

        start_time = time.time()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            endpoint = normalize_endpoint(request.url.path)
            http_requests_total.labels(
                method=request.method,
                endpoint=endpoint,
                status_code=str(status_code),
            ).inc()
            http_request_duration_seconds.labels(
                method=request.method,
                endpoint=endpoint,
            ).observe(time.time() - start_time)
