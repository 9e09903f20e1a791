"""Celery application configuration for background task processing.

Run worker: celery -A bergizi.celery_app worker --loglevel=info
Run beat:   celery -A bergizi.celery_app beat --loglevel=info
"""

from __future__ import annotations

import time as _time

from celery import Celery
from celery.schedules import crontab
from celery.signals import task_failure, task_postrun, task_prerun, task_retry

from bergizi.common.config import get_settings
from bergizi.common.metrics import CELERY_TASK_DURATION_SECONDS, CELERY_TASK_TOTAL

settings = get_settings()

celery_app = Celery(
    "bergizi",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="Asia/Jakarta",
    enable_utc=True,
    task_track_started=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_soft_time_limit=300,
    task_time_limit=360,
    # Tasks live in scheduler.py modules, which autodiscover_tasks() won't find
    include=[
        "bergizi.dashboard.scheduler",
        "bergizi.inventory.scheduler",
    ],
)

# ─── Beat Schedule ───

celery_app.conf.beat_schedule = {
    "refresh-dashboards-every-5-min": {
        "task": "bergizi.dashboard.scheduler.refresh_dashboards",
        "schedule": crontab(minute="*/5"),
    },
    "check-low-stock-every-30-min": {
        "task": "bergizi.inventory.scheduler.check_low_stock",
        "schedule": crontab(minute="*/30"),
    },
}


# ─── Prometheus Metrics via Celery Signals ───

_task_start_times: dict[str, float] = {}


def _short_name(sender) -> str:  # noqa: ANN001
    """Extract the short task name (e.g. 'check_low_stock' from full dotted path)."""
    name = sender.name if sender else "unknown"
    return name.rsplit(".", 1)[-1] if name else "unknown"


@task_prerun.connect
def _on_task_prerun(sender=None, task_id=None, **kwargs) -> None:  # noqa: ANN001, ANN003
    if task_id:
        _task_start_times[task_id] = _time.monotonic()


@task_postrun.connect
def _on_task_postrun(sender=None, task_id=None, state=None, **kwargs) -> None:  # noqa: ANN001, ANN003
    """Record completion and duration. Failed runs are counted by _on_task_failure."""
    short = _short_name(sender)
    if state in (None, "SUCCESS"):
        CELERY_TASK_TOTAL.labels(task_name=short, status="success").inc()

    start = _task_start_times.pop(task_id, None) if task_id else None
    if start is not None:
        CELERY_TASK_DURATION_SECONDS.labels(task_name=short).observe(_time.monotonic() - start)


@task_failure.connect
def _on_task_failure(sender=None, task_id=None, **kwargs) -> None:  # noqa: ANN001, ANN003
    CELERY_TASK_TOTAL.labels(task_name=_short_name(sender), status="failure").inc()
    if task_id:
        _task_start_times.pop(task_id, None)


@task_retry.connect
def _on_task_retry(sender=None, **kwargs) -> None:  # noqa: ANN001, ANN003
    CELERY_TASK_TOTAL.labels(task_name=_short_name(sender), status="retry").inc()
