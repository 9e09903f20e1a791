"""Stock status, reorder recommendations and low-stock alert publishing.

Usage:
    from bergizi.inventory.alerts import publish_low_stock_alerts

    sent = await publish_low_stock_alerts(db, sppg_id)
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bergizi.common.logging import get_logger
from bergizi.common.metrics import LOW_STOCK_ALERTS_TOTAL
from bergizi.common.models import InventoryItem
from bergizi.common.schemas import ReorderRecommendation, ReorderUrgency, StockStatus
from bergizi.realtime.events import broadcast_inventory_update

logger = get_logger("INVENTORY")

_URGENCY: dict[str, ReorderUrgency] = {
    "OUT_OF_STOCK": "CRITICAL",
    "LOW_STOCK": "HIGH",
    "IN_STOCK": "LOW",
}


def stock_status(item: InventoryItem) -> StockStatus:
    if item.current_stock <= 0:
        return "OUT_OF_STOCK"
    if item.current_stock <= item.min_stock:
        return "LOW_STOCK"
    return "IN_STOCK"


def reorder_recommendation(item: InventoryItem) -> ReorderRecommendation:
    """Suggest a reorder that refills the item to ``max_stock``."""
    status = stock_status(item)
    return ReorderRecommendation(
        item_id=item.id,
        item_name=item.item_name,
        status=status,
        reorder_suggested=item.current_stock <= item.min_stock,
        quantity_to_order=max(0.0, item.max_stock - item.current_stock),
        urgency=_URGENCY[status],
    )


async def find_low_stock(db: AsyncSession, sppg_id: str) -> list[InventoryItem]:
    """Active items of the SPPG at or below their minimum stock."""
    result = await db.execute(
        select(InventoryItem)
        .where(
            InventoryItem.sppg_id == sppg_id,
            InventoryItem.is_active.is_(True),
            InventoryItem.current_stock <= InventoryItem.min_stock,
        )
        .order_by(InventoryItem.item_name)
    )
    return list(result.scalars().all())


async def publish_low_stock_alerts(db: AsyncSession, sppg_id: str) -> int:
    """Broadcast one ``low_stock_alert`` per low item.

    Returns:
        Number of alerts published.
    """
    items = await find_low_stock(db, sppg_id)
    for item in items:
        rec = reorder_recommendation(item)
        message = (
            f"Stok {item.item_name} tersisa {item.current_stock:g} {item.unit} "
            f"(minimum {item.min_stock:g} {item.unit})"
        )
        await broadcast_inventory_update(
            sppg_id,
            "low_stock_alert",
            {
                "id": item.id,
                "name": item.item_name,
                "currentStock": item.current_stock,
                "minStock": item.min_stock,
                "quantityToOrder": rec.quantity_to_order,
                "urgency": rec.urgency,
            },
            message,
        )
        LOW_STOCK_ALERTS_TOTAL.labels(urgency=rec.urgency).inc()

    if items:
        logger.info(
            "Low-stock alerts published",
            extra={"data": {"sppg_id": sppg_id, "count": len(items)}},
        )
    return len(items)
