"""
Stock bookings for customer orders.

Each booking is idempotent per (order, kind): the movements carry the order id
as ``reference``, and an order that already has movements of that kind is not
booked again. Cancelled orders cannot be fulfilled, and only fulfilled orders
can be returned.
"""
import logging
from typing import List
from uuid import UUID
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.models.catalog import Order, OrderStatus
from app.models.inventory import InventoryLine, MovementKind, StockMovement
from app.services.ledger import record_movement

log = logging.getLogger(__name__)


async def _booked(order_id: UUID, kind: MovementKind) -> List[StockMovement]:
    return await StockMovement.filter(reference=str(order_id), kind=kind).order_by("created_at")


async def _book_order(order: Order, kind: MovementKind, reason: str) -> List[StockMovement]:
    bad_items = [str(item.id) for item in order.items if item.quantity <= 0]
    if bad_items:
        raise ValidationError("Order contains items with non-positive quantities.", details={"items": bad_items})

    product_ids = [item.product_id for item in order.items]
    lines = await InventoryLine.filter(product_id__in=product_ids)
    line_map = {line.product_id: line for line in lines}

    movements = []
    for item in order.items:
        line = line_map.get(item.product_id)
        if not line:
            log.warning(f"Order {order.id}: product {item.product_id} has no inventory line, skipped.")
            continue
        # One transaction per movement, referenced by the order id
        movements.append(await record_movement(
            line.id, kind, item.quantity, reason=reason, reference=str(order.id)
        ))

    log.info(f"Order {order.id}: booked {len(movements)} {kind.value} movement(s).")
    return movements


async def _get_order(order_id: UUID) -> Order:
    # Prefetch items so we know what to move
    order = await Order.get_or_none(id=order_id).prefetch_related("items")
    if not order:
        raise NotFoundError(f"Order {order_id} not found.")
    return order


async def record_order_fulfillment(order_id: UUID) -> List[StockMovement]:
    """
    Books an ``out`` movement for every stocked item of the order. A repeated
    call returns the movements booked the first time.
    """
    order = await _get_order(order_id)

    existing = await _booked(order.id, MovementKind.OUT)
    if existing:
        log.info(f"Order {order.id} already fulfilled; skipping duplicate booking.")
        return existing
    if order.status == OrderStatus.CANCELLED:
        raise ConflictError(f"Order {order.id} is cancelled and cannot be fulfilled.")

    return await _book_order(order, MovementKind.OUT, "Order fulfilment")


async def record_order_return(order_id: UUID) -> List[StockMovement]:
    """
    Books a ``return`` movement for every stocked item of a fulfilled order.
    A repeated call returns the movements booked the first time.
    """
    order = await _get_order(order_id)

    existing = await _booked(order.id, MovementKind.RETURN)
    if existing:
        log.info(f"Order {order.id} already returned; skipping duplicate booking.")
        return existing
    if not await StockMovement.filter(reference=str(order.id), kind=MovementKind.OUT).exists():
        raise ConflictError(f"Order {order.id} has no fulfilment to return.")

    return await _book_order(order, MovementKind.RETURN, "Order return")
