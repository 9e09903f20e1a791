"""Production middleware for Bergizi-ID.

Provides request ID tracing, request logging, security headers,
and Prometheus HTTP metrics collection.
All four middleware classes are registered in bergizi/main.py.

RequestIdMiddleware sets ``bergizi.common.logging.request_id_var``.
"""

from __future__ import annotations

import re
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from bergizi.common.logging import get_logger, request_id_var
from bergizi.common.metrics import (
    HTTP_REQUEST_DURATION_SECONDS,
    HTTP_REQUESTS_IN_PROGRESS,
    HTTP_REQUESTS_TOTAL,
)

logger = get_logger("SYSTEM")

# Probe traffic is skipped in logging and metrics
_SKIP_PATHS = frozenset({"/health", "/ready", "/metrics", "/api/system/ping"})

# Dynamic segments collapsed to keep label cardinality bounded
_PATH_ID_PATTERNS = [
    (re.compile(r"/[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}"), "/{id}"),
    (re.compile(r"/[0-9a-f]{32}"), "/{id}"),
    (re.compile(r"/c[a-z0-9]{24}"), "/{id}"),
    (re.compile(r"/\d+"), "/{id}"),
]


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Inject a unique request ID into every request/response cycle.

    - Reads ``X-Request-ID`` from the incoming request. If absent,
      generates a UUID4.
    - Stores the ID in a ``ContextVar`` so the structured logger can
      include it in every log line.
    - Returns the ID in the ``X-Request-ID`` response header.
    """

    async def dispatch(self, request: Request, call_next) -> Response:  # noqa: ANN001
        rid = request.headers.get("x-request-id") or uuid.uuid4().hex
        request_id_var.set(rid)

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every HTTP request with method, path, status, and duration."""

    async def dispatch(self, request: Request, call_next) -> Response:  # noqa: ANN001
        if request.url.path in _SKIP_PATHS:
            return await call_next(request)

        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000

        logger.info(
            f"{request.method} {request.url.path} {response.status_code}",
            extra={
                "data": {
                    "method": request.method,
                    "path": request.url.path,
                    "status": response.status_code,
                    "duration_ms": round(duration_ms, 1),
                    "request_id": request_id_var.get(""),
                }
            },
        )
        return response


def _normalize_path(path: str) -> str:
    """Normalize a URL path by replacing dynamic segments with {id}.

    Examples:
        /api/notifications/123/read   -> /api/notifications/{id}/read
        /api/nutrition/menus/550e8400-... -> /api/nutrition/menus/{id}
    """
    for pattern, replacement in _PATH_ID_PATTERNS:
        path = pattern.sub(replacement, path)
    return path


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Record Prometheus HTTP metrics for every request."""

    async def dispatch(self, request: Request, call_next) -> Response:  # noqa: ANN001
        path = request.url.path
        if path in _SKIP_PATHS:
            return await call_next(request)

        method = request.method
        path_template = _normalize_path(path)

        HTTP_REQUESTS_IN_PROGRESS.labels(method=method).inc()
        start = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            HTTP_REQUESTS_TOTAL.labels(
                method=method,
                path_template=path_template,
                status_code="500",
            ).inc()
            HTTP_REQUEST_DURATION_SECONDS.labels(
                method=method,
                path_template=path_template,
            ).observe(time.perf_counter() - start)
            raise
        finally:
            HTTP_REQUESTS_IN_PROGRESS.labels(method=method).dec()

        HTTP_REQUESTS_TOTAL.labels(
            method=method,
            path_template=path_template,
            status_code=str(response.status_code),
        ).inc()
        HTTP_REQUEST_DURATION_SECONDS.labels(
            method=method,
            path_template=path_template,
        ).observe(time.perf_counter() - start)

        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security-related HTTP headers to every response.

    Headers follow OWASP recommendations for API servers. Event streams
    keep their own ``Cache-Control`` value.
    """

    HEADERS: dict[str, str] = {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
        "Referrer-Policy": "strict-origin-when-cross-origin",
        "Permissions-Policy": "camera=(), microphone=(), geolocation=()",
    }

    async def dispatch(self, request: Request, call_next) -> Response:  # noqa: ANN001
        response = await call_next(request)
        for header, value in self.HEADERS.items():
            response.headers[header] = value
        if "cache-control" not in response.headers:
            response.headers["Cache-Control"] = "no-store"
        return response
