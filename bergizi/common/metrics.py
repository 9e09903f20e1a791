"""Prometheus metrics definitions for Bergizi-ID.

All metric objects are centralized here as module-level singletons.
Import what you need from anywhere in the codebase:

    from bergizi.common.metrics import HTTP_REQUESTS_TOTAL, WS_CONNECTIONS_ACTIVE

The /metrics endpoint is mounted in bergizi/main.py via
prometheus_client.make_asgi_app().
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram, Info

# ─── App Info ───

APP_INFO = Info("app", "Application metadata")

# ─── HTTP Metrics ───

HTTP_REQUESTS_TOTAL = Counter(
    "http_requests_total",
    "Total HTTP requests",
    labelnames=["method", "path_template", "status_code"],
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    labelnames=["method", "path_template"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

HTTP_REQUESTS_IN_PROGRESS = Gauge(
    "http_requests_in_progress",
    "HTTP requests currently in progress",
    labelnames=["method"],
)

# ─── Celery Task Metrics ───

CELERY_TASK_TOTAL = Counter(
    "celery_task_total",
    "Total Celery task executions",
    labelnames=["task_name", "status"],
)

CELERY_TASK_DURATION_SECONDS = Histogram(
    "celery_task_duration_seconds",
    "Celery task duration in seconds",
    labelnames=["task_name"],
    buckets=(0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0),
)

# ─── WebSocket Metrics ───

WS_CONNECTIONS_ACTIVE = Gauge(
    "ws_connections_active",
    "Active WebSocket connections",
)

WS_MESSAGES_SENT_TOTAL = Counter(
    "ws_messages_sent_total",
    "WebSocket messages sent to clients",
    labelnames=["event_type"],
)

# ─── Broker Metrics ───

REALTIME_EVENTS_RECEIVED_TOTAL = Counter(
    "realtime_events_received_total",
    "Events received from Redis pub/sub by the relay",
    labelnames=["channel_kind"],
)

REALTIME_EVENTS_PUBLISHED_TOTAL = Counter(
    "realtime_events_published_total",
    "Events published to Redis pub/sub",
    labelnames=["event_type"],
)

REALTIME_SUBSCRIBER_RECONNECTS_TOTAL = Counter(
    "realtime_subscriber_reconnects_total",
    "Redis subscriber reconnection attempts",
)

# ─── SSE Metrics ───

SSE_STREAMS_ACTIVE = Gauge(
    "sse_streams_active",
    "Active Server-Sent Events streams",
    labelnames=["stream"],
)

# ─── Business Metrics ───

NUTRITION_CALCULATIONS_TOTAL = Counter(
    "nutrition_calculations_total",
    "Nutrition calculations by outcome",
    labelnames=["operation", "outcome"],
)

LOW_STOCK_ALERTS_TOTAL = Counter(
    "low_stock_alerts_total",
    "Low-stock alerts published",
    labelnames=["urgency"],
)

DASHBOARD_CACHE_TOTAL = Counter(
    "dashboard_cache_total",
    "Dashboard summary cache lookups",
    labelnames=["result"],
)


def set_app_info(version: str, environment: str) -> None:
    """Set the app_info metric values. Called once at startup."""
    APP_INFO.info({"version": version, "environment": environment})
