"""Celery task that refreshes every active SPPG's dashboard summary.

Task schedule:
    - refresh_dashboards: Every 5 minutes

Usage:
    from bergizi.dashboard.scheduler import refresh_dashboards
    refresh_dashboards.delay()
"""

from __future__ import annotations

from datetime import UTC, datetime

from asgiref.sync import async_to_sync
from celery import shared_task
from sqlalchemy import select

from bergizi.common.cache import close_redis
from bergizi.common.database import get_task_session
from bergizi.common.logging import get_logger
from bergizi.common.models import Sppg, SppgStatus
from bergizi.dashboard.summary import refresh_summary

logger = get_logger("DASHBOARD")


async def _refresh_dashboards_async() -> dict:
    """Refresh each active SPPG. One failing SPPG does not stop the rest."""
    refreshed = 0
    failed = 0
    try:
        async with await get_task_session() as db:
            result = await db.execute(select(Sppg.id).where(Sppg.status == SppgStatus.ACTIVE))
            sppg_ids = list(result.scalars().all())

            for sppg_id in sppg_ids:
                try:
                    await refresh_summary(db, sppg_id)
                    refreshed += 1
                except Exception as exc:
                    failed += 1
                    logger.error(
                        "Dashboard refresh failed for SPPG",
                        extra={"data": {"sppg_id": sppg_id, "error": str(exc)}},
                    )
    finally:
        # Each async_to_sync call runs on a fresh loop; drop the loop-bound client
        await close_redis()

    return {"refreshed": refreshed, "failed": failed}


@shared_task(
    bind=True,
    max_retries=3,
    default_retry_delay=30,
    soft_time_limit=120,
    time_limit=180,
)
def refresh_dashboards(self) -> dict:
    """Recompute and broadcast dashboard summaries for all active SPPGs.

    Runs every 5 minutes via Celery beat. Retries up to 3 times on
    unhandled exceptions.

    Returns:
        Dict with task execution metadata.
    """
    start_time = datetime.now(UTC)
    logger.info("Starting dashboard refresh cycle")

    try:
        result = async_to_sync(_refresh_dashboards_async)()
    except Exception as exc:
        logger.error(
            "Dashboard refresh cycle failed, retrying",
            extra={"data": {"error": str(exc)}},
        )
        raise self.retry(exc=exc) from exc

    elapsed = (datetime.now(UTC) - start_time).total_seconds()
    logger.info(
        "Dashboard refresh cycle completed",
        extra={"data": {**result, "elapsed_seconds": round(elapsed, 1)}},
    )
    return {"status": "completed", "elapsed_seconds": round(elapsed, 1), **result}
