"""Real-time dashboard fan-out for connected browsers.

Bridges events published by API handlers and Celery workers to the
frontend via Redis pub/sub, FastAPI WebSocket connections and
Server-Sent Events streams.

Architecture:
    API handler / Celery task -> publish_event() -> Redis channel
    -> redis_subscriber() background task -> ConnectionManager.route()
    -> subscribed WebSocket clients of the same SPPG

    Redis channel -> event_stream() (one pubsub per SSE request)
    -> text/event-stream response
"""
