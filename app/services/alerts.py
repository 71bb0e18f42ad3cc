import logging
from typing import List, Literal, Optional, Sequence, Union
from uuid import UUID
from tortoise.exceptions import IntegrityError
from app.core.config import ALERT_LIST_LIMIT
from app.models.alert import StockAlert, AlertKind, AlertSeverity, open_key_for
from app.models.inventory import InventoryLine

log = logging.getLogger(__name__)


def classify(quantity: int) -> tuple:
    """Alert kind and severity for a quantity at or below its threshold."""
    if quantity == 0:
        return AlertKind.OUT_OF_STOCK, AlertSeverity.CRITICAL
    return AlertKind.LOW_STOCK, AlertSeverity.WARNING


async def raise_alert(line: InventoryLine, kind: AlertKind, message: str) -> Optional[StockAlert]:
    """
    Creates an open alert for (line, kind) unless one is already open.

    Returns the new alert, or None when an open alert of the same kind exists.
    The existing alert is left untouched. A concurrent evaluator that wins the
    race trips the unique ``open_key`` and is treated the same way. A key still
    held by an alert whose ``resolved_at`` is set is released and the insert
    retried once.
    """
    existing = await StockAlert.filter(
        inventory_line_id=line.id, kind=kind, resolved_at__isnull=True
    ).exists()
    if existing:
        return None

    severity = AlertSeverity.CRITICAL if kind == AlertKind.OUT_OF_STOCK else AlertSeverity.WARNING
    key = open_key_for(line.id, kind)
    for attempt in range(2):
        try:
            alert = await StockAlert.create(
                inventory_line_id=line.id,
                kind=kind,
                message=message,
                severity=severity,
                open_key=key,
            )
            break
        except IntegrityError:
            holder = await StockAlert.get_or_none(open_key=key)
            if holder is not None and holder.resolved_at is None:
                log.info(f"Open {kind.value} alert for {line.sku} already recorded by a concurrent writer.")
                return None
            if attempt == 1:
                log.warning(f"Could not record {kind.value} alert for {line.sku}: open key still taken.")
                return None
            if holder is not None:
                # resolved without clearing the key
                await StockAlert.filter(id=holder.id, resolved_at__isnull=False).update(open_key=None)

    log.warning(f"ALERT {severity.value}: {message}")
    return alert


async def evaluate_and_alert(line: InventoryLine) -> Optional[StockAlert]:
    """Checks the line against its reorder point and records a deduplicated alert."""
    if not line.is_below_reorder_point:
        return None

    kind, _ = classify(line.quantity)
    state = "depleted" if kind == AlertKind.OUT_OF_STOCK else "low"
    message = f"Stock for {line.sku} is {state} ({line.quantity}/{line.reorder_point})"
    return await raise_alert(line, kind, message)


async def list_alerts(unread_only: bool = False, limit: int = ALERT_LIST_LIMIT) -> List[StockAlert]:
    query = StockAlert.all()
    if unread_only:
        query = query.filter(is_read=False)
    return await query.order_by("-created_at").limit(limit).prefetch_related("inventory_line__product")


async def mark_read(ids: Union[Literal["all"], Sequence[UUID]]) -> int:
    """
    Marks alerts as read. ``"all"`` covers every unread alert, a list covers
    only those ids. ``resolved_at`` is never touched.
    """
    if ids == "all":
        updated = await StockAlert.filter(is_read=False).update(is_read=True)
    else:
        if not ids:
            return 0
        updated = await StockAlert.filter(id__in=list(ids)).update(is_read=True)

    log.info(f"Marked {updated} alert(s) as read.")
    return updated
