"""
Read-only dashboard figures: stock health, sales by category over the latest
orders, monthly revenue trend, unread alerts and recent movements.
"""
import calendar
import logging
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List
from tortoise import timezone
from app.core.config import (
    ANALYTICS_ALERT_LIMIT,
    ANALYTICS_MOVEMENT_LIMIT,
    ANALYTICS_ORDER_WINDOW,
    ANALYTICS_TREND_MONTHS,
)
from app.models.alert import StockAlert
from app.models.catalog import Order
from app.models.inventory import InventoryLine, StockMovement
from app.services.inventory_service import inventory_stats, stock_status

log = logging.getLogger(__name__)

DISTRIBUTION_STATUS = {"out": "out_of_stock", "low": "low", "ok": "healthy"}


def months_ago(moment: datetime, months: int) -> datetime:
    """Same day of the month ``months`` earlier, clamped to that month's length."""
    year, month = divmod(moment.year * 12 + moment.month - 1 - months, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def sales_by_category(orders: Iterable[Order]) -> List[Dict[str, Any]]:
    """Revenue and units per product category. Orders need ``items__product`` fetched."""
    totals: Dict[str, Dict[str, Any]] = {}
    for order in orders:
        for item in order.items:
            category = item.product.category
            entry = totals.setdefault(category, {"category": category, "revenue": Decimal("0"), "units": 0})
            entry["revenue"] += Decimal(str(item.unit_price)) * item.quantity
            entry["units"] += item.quantity
    return sorted(totals.values(), key=lambda e: e["category"])


def monthly_trend(orders: Iterable[Order]) -> List[Dict[str, Any]]:
    revenue: Dict[str, Decimal] = {}
    for order in orders:
        month = order.created_at.strftime("%Y-%m")
        revenue[month] = revenue.get(month, Decimal("0")) + Decimal(str(order.total_amount))
    return [{"month": month, "revenue": revenue[month]} for month in sorted(revenue)]


def stock_health(healthy: int, total: int) -> int:
    """Share of healthy lines as a whole percentage, rounded half up."""
    if not total:
        return 0
    return int((Decimal(healthy * 100) / total).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


async def get_inventory_analytics() -> Dict[str, Any]:
    lines = await InventoryLine.all().order_by("sku").prefetch_related("product")
    stats = inventory_stats(lines)
    healthy = sum(1 for line in lines if stock_status(line) == "ok")

    recent_orders = await Order.all().order_by("-created_at").limit(ANALYTICS_ORDER_WINDOW).prefetch_related(
        "items__product"
    )
    since = months_ago(timezone.now(), ANALYTICS_TREND_MONTHS)
    trend_orders = await Order.filter(created_at__gte=since).order_by("created_at")

    alerts = await StockAlert.filter(is_read=False).order_by("-created_at").limit(
        ANALYTICS_ALERT_LIMIT
    ).prefetch_related("inventory_line__product")
    movements = await StockMovement.all().order_by("-created_at").limit(
        ANALYTICS_MOVEMENT_LIMIT
    ).prefetch_related("inventory_line__product")

    log.info(f"Analytics computed over {len(lines)} lines and {len(recent_orders)} recent orders.")
    return {
        "kpis": {
            "total_products": stats["total_items"],
            "total_stock_value": stats["total_value"],
            "total_units": sum(line.quantity for line in lines),
            "low_stock_count": stats["low_stock_count"],
            "out_of_stock_count": stats["out_of_stock_count"],
            "healthy_count": healthy,
            "stock_health": stock_health(healthy, len(lines)),
        },
        "sales_by_category": sales_by_category(recent_orders),
        "stock_distribution": [
            {
                "name": line.product.name,
                "sku": line.sku,
                "category": line.product.category,
                "quantity": line.quantity,
                "reorder_point": line.reorder_point,
                "status": DISTRIBUTION_STATUS[stock_status(line)],
            }
            for line in lines
        ],
        "monthly_trend": monthly_trend(trend_orders),
        "alerts": alerts,
        "recent_movements": movements,
    }
