"""Celery task that publishes low-stock alerts for every active SPPG.

Task schedule:
    - check_low_stock: Every 30 minutes

Usage:
    from bergizi.inventory.scheduler import check_low_stock
    check_low_stock.delay()
"""

from __future__ import annotations

from datetime import UTC, datetime

from asgiref.sync import async_to_sync
from celery import shared_task
from sqlalchemy import select

from bergizi.common.database import get_task_session
from bergizi.common.logging import get_logger
from bergizi.common.models import Sppg, SppgStatus
from bergizi.inventory.alerts import publish_low_stock_alerts

logger = get_logger("INVENTORY")


async def _check_low_stock_async() -> dict:
    """Publish alerts per active SPPG. One failing SPPG does not stop the rest."""
    checked = 0
    alerts = 0
    async with await get_task_session() as db:
        result = await db.execute(select(Sppg.id).where(Sppg.status == SppgStatus.ACTIVE))
        sppg_ids = list(result.scalars().all())

        for sppg_id in sppg_ids:
            try:
                alerts += await publish_low_stock_alerts(db, sppg_id)
                checked += 1
            except Exception as exc:
                logger.error(
                    "Low-stock check failed for SPPG",
                    extra={"data": {"sppg_id": sppg_id, "error": str(exc)}},
                )

    return {"sppgs_checked": checked, "alerts": alerts}


@shared_task(
    bind=True,
    max_retries=3,
    default_retry_delay=60,
    soft_time_limit=240,
    time_limit=300,
)
def check_low_stock(self) -> dict:
    """Publish low-stock alerts for all active SPPGs.

    Runs every 30 minutes via Celery beat. Retries up to 3 times on
    unhandled exceptions.

    Returns:
        Dict with task execution metadata.
    """
    start_time = datetime.now(UTC)
    logger.info("Starting low-stock check")

    try:
        result = async_to_sync(_check_low_stock_async)()
    except Exception as exc:
        logger.error(
            "Low-stock check failed, retrying",
            extra={"data": {"error": str(exc)}},
        )
        raise self.retry(exc=exc) from exc

    elapsed = (datetime.now(UTC) - start_time).total_seconds()
    logger.info(
        "Low-stock check completed",
        extra={"data": {**result, "elapsed_seconds": round(elapsed, 1)}},
    )
    return {"status": "completed", "elapsed_seconds": round(elapsed, 1), **result}
