"""FastAPI application factory for Bergizi-ID.

Run with: uvicorn bergizi.main:app --reload
"""

from __future__ import annotations

import asyncio
import contextlib
import traceback
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app as make_metrics_app
from sqlalchemy import text
from starlette.middleware.gzip import GZipMiddleware

from bergizi.api.dashboard import router as dashboard_router
from bergizi.api.notifications import router as notifications_router
from bergizi.api.nutrition import router as nutrition_router
from bergizi.api.system import router as system_router
from bergizi.common.cache import close_redis, get_redis
from bergizi.common.config import get_settings
from bergizi.common.exceptions import (
    BergiziBaseException,
    NotFoundError,
    PermissionDeniedError,
    RealtimeError,
)
from bergizi.common.logging import get_logger, request_id_var
from bergizi.common.metrics import set_app_info
from bergizi.common.middleware import (
    PrometheusMiddleware,
    RequestIdMiddleware,
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
)
from bergizi.realtime.manager import manager as ws_manager
from bergizi.realtime.router import router as ws_router
from bergizi.realtime.sse import router as sse_router
from bergizi.realtime.subscriber import heartbeat_loop, redis_subscriber

logger = get_logger("SYSTEM")

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(application: FastAPI) -> AsyncGenerator[None, None]:
    """Start the Redis relay and heartbeat, stop them on shutdown."""
    subscriber_task = asyncio.create_task(redis_subscriber(ws_manager))
    logger.info("WebSocket Redis subscriber started")

    heartbeat_task = asyncio.create_task(heartbeat_loop(ws_manager))
    logger.info("WebSocket heartbeat started")

    yield

    heartbeat_task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await heartbeat_task
    logger.info("WebSocket heartbeat stopped")

    subscriber_task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await subscriber_task
    logger.info("WebSocket Redis subscriber stopped")

    await ws_manager.close_all()
    await close_redis()


def _error_response(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": type(exc).__name__, "message": str(exc)},
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    app = FastAPI(
        title="Bergizi-ID",
        version=VERSION,
        description="Multi-tenant backend for SPPG school-feeding operations",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Production middleware (last added = outermost = runs first on request)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(GZipMiddleware, minimum_size=1000)  # Compress responses > 1KB
    app.add_middleware(PrometheusMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIdMiddleware)

    # ─── Exception Handlers ───

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
        logger.info(
            f"NotFoundError: {exc}",
            extra={"data": {"path": str(request.url), "context": exc.context}},
        )
        return _error_response(404, exc)

    @app.exception_handler(PermissionDeniedError)
    async def permission_denied_handler(
        request: Request, exc: PermissionDeniedError
    ) -> JSONResponse:
        logger.warning(
            f"{type(exc).__name__}: {exc}",
            extra={"data": {"path": str(request.url), "context": exc.context}},
        )
        return _error_response(403, exc)

    @app.exception_handler(RealtimeError)
    async def realtime_error_handler(request: Request, exc: RealtimeError) -> JSONResponse:
        logger.error(
            f"RealtimeError: {exc}",
            extra={"data": {"path": str(request.url), "context": exc.context}},
        )
        return _error_response(503, exc)

    @app.exception_handler(BergiziBaseException)
    async def bergizi_exception_handler(
        request: Request, exc: BergiziBaseException
    ) -> JSONResponse:
        """Handle remaining Bergizi exceptions as 400 with structured JSON."""
        logger.error(
            f"{type(exc).__name__}: {exc}",
            extra={"data": {"path": str(request.url), "context": exc.context}},
        )
        return _error_response(400, exc)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unhandled exceptions: log traceback, return 500."""
        rid = request_id_var.get("")
        logger.error(
            f"Unhandled {type(exc).__name__}: {exc}",
            extra={
                "data": {
                    "path": str(request.url),
                    "request_id": rid,
                    "traceback": traceback.format_exc(),
                }
            },
        )
        body: dict = {
            "error": "InternalServerError",
            "message": "An unexpected error occurred",
        }
        if rid:
            body["request_id"] = rid
        return JSONResponse(status_code=500, content=body)

    # ─── Health / Readiness ───

    @app.get("/health")
    async def health_check() -> dict:
        """Liveness check: confirms the process is running."""
        return {"status": "ok", "version": VERSION}

    @app.get("/ready")
    async def readiness_check() -> JSONResponse:
        """Readiness check: checks DB and Redis connectivity."""
        checks: dict[str, str] = {}
        all_ok = True

        try:
            from bergizi.common.database import _get_engine

            engine = _get_engine()
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            checks["database"] = "ok"
        except Exception as exc:
            checks["database"] = f"error: {type(exc).__name__}"
            all_ok = False

        try:
            await get_redis().ping()
            checks["redis"] = "ok"
        except Exception as exc:
            checks["redis"] = f"error: {type(exc).__name__}"
            all_ok = False

        return JSONResponse(
            status_code=200 if all_ok else 503,
            content={
                "status": "ok" if all_ok else "degraded",
                "version": VERSION,
                "checks": checks,
            },
        )

    # ─── Prometheus Metrics ───

    metrics_app = make_metrics_app()
    app.mount("/metrics", metrics_app)
    set_app_info(version=VERSION, environment=settings.environment)

    # ─── Router Mounting ───

    app.include_router(nutrition_router, prefix="/api/nutrition", tags=["nutrition"])
    app.include_router(notifications_router, prefix="/api/notifications", tags=["notifications"])
    app.include_router(dashboard_router, prefix="/api/dashboard", tags=["dashboard"])
    app.include_router(system_router, prefix="/api/system", tags=["system"])
    app.include_router(sse_router, prefix="/api/sse", tags=["sse"])
    app.include_router(ws_router, tags=["websocket"])

    logger.info("App started", extra={"data": {"version": VERSION}})

    return app


app = create_app()
