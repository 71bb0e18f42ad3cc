"""
Movement ledger: the only writer of ``InventoryLine.quantity``.

Every quantity change is an append-only ``StockMovement`` row committed in the
same transaction as the cached quantity. The line row is locked for the
duration of the transaction and the new quantity is written with a
compare-and-swap, so a store without row locks reports a lost update instead
of silently overwriting it.

Known limitation: an ``out`` larger than the current stock floors the quantity
at zero but the movement row keeps the requested amount, so summing the ledger
does not always reproduce the cached quantity.
"""
import logging
from datetime import datetime
from typing import Any, List, Optional, Union
from uuid import UUID
from tortoise import timezone
from tortoise.exceptions import DBConnectionError, OperationalError
from tortoise.transactions import in_transaction
from app.core.config import MOVEMENT_LIST_LIMIT
from app.core.exceptions import ConflictError, NotFoundError, PersistenceError, ValidationError
from app.models.inventory import InventoryLine, MovementKind, StockMovement
from app.services.alerts import evaluate_and_alert

log = logging.getLogger(__name__)


def parse_kind(kind: Union[str, MovementKind]) -> MovementKind:
    try:
        return MovementKind(kind)
    except ValueError:
        allowed = ", ".join(k.value for k in MovementKind)
        raise ValidationError(f"Unknown movement kind '{kind}'. Expected one of: {allowed}.")


def validate_amount(kind: MovementKind, amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValidationError("Movement amount must be an integer.", details={"amount": amount})
    if kind.is_absolute:
        if amount < 0:
            raise ValidationError("Adjustment quantity cannot be negative.", details={"amount": amount})
    elif amount <= 0:
        raise ValidationError(
            f"Movement amount must be positive for '{kind.value}'.", details={"amount": amount}
        )


def next_quantity(kind: MovementKind, current: int, amount: int) -> int:
    """Quantity after applying a movement of ``kind`` to ``current``."""
    if kind in (MovementKind.IN, MovementKind.RETURN):
        return current + amount
    if kind == MovementKind.OUT:
        return max(0, current - amount)
    # adjustment sets the absolute quantity
    return amount


async def swap_quantity(
    line_id: UUID,
    expected: int,
    new_quantity: int,
    restocked_at: Optional[datetime] = None,
    conn: Any = None,
) -> bool:
    """
    Writes ``new_quantity`` only if the stored quantity still equals ``expected``.
    Returns False when another writer changed the row in between.
    """
    changes = {"quantity": new_quantity, "updated_at": timezone.now()}
    if restocked_at is not None:
        changes["last_restocked_at"] = restocked_at

    updated = await InventoryLine.filter(id=line_id, quantity=expected).using_db(conn).update(**changes)
    return updated == 1


async def record_movement(
    inventory_line_id: UUID,
    kind: Union[str, MovementKind],
    amount: int,
    reason: Optional[str] = None,
    reference: Optional[str] = None,
) -> StockMovement:
    """
    Records a stock movement and applies it to the line's cached quantity.

    For ``in``, ``out`` and ``return`` the amount is a positive delta; for
    ``adjustment`` it is the new absolute quantity. Alerts are evaluated after
    the transaction commits.
    """
    kind = parse_kind(kind)
    validate_amount(kind, amount)

    try:
        async with in_transaction() as conn:
            # CRITICAL: lock the line so concurrent writers serialize on it
            line = await InventoryLine.filter(id=inventory_line_id).select_for_update().using_db(conn).first()
            if not line:
                raise NotFoundError(f"Inventory line {inventory_line_id} not found.")

            previous = line.quantity
            new_quantity = next_quantity(kind, previous, amount)
            restocked_at = timezone.now() if kind == MovementKind.IN else None

            movement = await StockMovement.create(
                inventory_line_id=line.id,
                kind=kind,
                amount=amount,
                reason=reason,
                reference=reference,
                using_db=conn,
            )

            if not await swap_quantity(line.id, previous, new_quantity, restocked_at, conn=conn):
                raise ConflictError(
                    f"Inventory line {line.sku} changed during the movement; retry the request.",
                    details={"inventory_line_id": str(line.id), "expected_quantity": previous},
                )
    except (OperationalError, DBConnectionError) as e:
        log.error(f"Movement on inventory line {inventory_line_id} rolled back: {e}")
        raise PersistenceError(
            "Failed to record stock movement.",
            details={"inventory_line_id": str(inventory_line_id), "original_error": str(e)},
        ) from e

    line.quantity = new_quantity
    if restocked_at is not None:
        line.last_restocked_at = restocked_at

    if kind == MovementKind.OUT and amount > previous:
        log.warning(
            f"OUT of {amount} on {line.sku} exceeded stock {previous}; quantity floored at 0, "
            f"movement keeps the requested amount."
        )
    log.info(f"Movement {kind.value} {amount} on {line.sku}: {previous} -> {new_quantity}")

    await evaluate_and_alert(line)
    return movement


async def list_movements(
    inventory_line_id: Optional[UUID] = None,
    kind: Optional[Union[str, MovementKind]] = None,
    limit: int = MOVEMENT_LIST_LIMIT,
) -> List[StockMovement]:
    """Lists movements newest first, optionally filtered by line and kind."""
    if limit < 1 or limit > 500:
        raise ValidationError("limit must be between 1 and 500.", details={"limit": limit})

    query = StockMovement.all()
    if inventory_line_id:
        query = query.filter(inventory_line_id=inventory_line_id)
    if kind:
        query = query.filter(kind=parse_kind(kind))
    return await query.order_by("-created_at").limit(limit).prefetch_related("inventory_line__product")
