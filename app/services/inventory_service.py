import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID
from tortoise import timezone
from tortoise.exceptions import DBConnectionError, IntegrityError, OperationalError
from tortoise.transactions import in_transaction
from app.core.exceptions import ConflictError, NotFoundError, PersistenceError, ValidationError
from app.models.catalog import Product
from app.models.inventory import InventoryLine, MovementKind, StockMovement
from app.services.alerts import evaluate_and_alert
from app.services.ledger import record_movement

log = logging.getLogger(__name__)

SORT_FIELDS = ("updated_at", "created_at", "quantity", "sku", "unit_cost")
STOCK_STATUSES = ("low", "out", "ok")
EDITABLE_FIELDS = {"sku", "quantity", "reserved_qty", "reorder_point", "reorder_qty", "unit_cost", "location"}
NULLABLE_FIELDS = {"location"}


def stock_status(line: InventoryLine) -> str:
    if line.quantity == 0:
        return "out"
    if line.quantity <= line.reorder_point:
        return "low"
    return "ok"


def inventory_stats(lines: List[InventoryLine]) -> Dict[str, Any]:
    statuses = [stock_status(line) for line in lines]
    return {
        "total_items": len(lines),
        "total_value": sum((line.quantity * Decimal(str(line.unit_cost)) for line in lines), Decimal("0")),
        "low_stock_count": statuses.count("low"),
        "out_of_stock_count": statuses.count("out"),
    }


async def list_inventory(
    search: Optional[str] = None,
    category: Optional[str] = None,
    status: Optional[str] = None,
    sort_by: str = "updated_at",
    sort_order: str = "desc",
) -> Dict[str, Any]:
    """
    Lists inventory lines with their products and unread alerts.
    Stats always cover every line, not only the filtered ones.
    """
    if sort_by not in SORT_FIELDS:
        raise ValidationError(f"Cannot sort by '{sort_by}'.", details={"allowed": list(SORT_FIELDS)})
    if sort_order not in ("asc", "desc"):
        raise ValidationError("sort_order must be 'asc' or 'desc'.")
    if status and status not in STOCK_STATUSES:
        raise ValidationError(f"Unknown stock status '{status}'.", details={"allowed": list(STOCK_STATUSES)})

    ordering = sort_by if sort_order == "asc" else f"-{sort_by}"
    lines = await InventoryLine.all().order_by(ordering).prefetch_related("product", "alerts")

    filtered = lines
    if search:
        q = search.lower()
        filtered = [
            line for line in filtered
            if q in line.sku.lower()
            or q in line.product.name.lower()
            or q in line.product.category.lower()
        ]
    if category:
        filtered = [line for line in filtered if line.product.category == category]
    if status:
        filtered = [line for line in filtered if stock_status(line) == status]

    return {"inventory": filtered, "stats": inventory_stats(lines)}


async def get_inventory_line(line_id: UUID) -> InventoryLine:
    line = await InventoryLine.get_or_none(id=line_id).prefetch_related("product", "alerts")
    if not line:
        raise NotFoundError(f"Inventory line {line_id} not found.")
    return line


async def create_inventory_line(data: Dict[str, Any]) -> InventoryLine:
    """
    Creates the inventory line for a product. A positive opening quantity is
    booked as an ``in`` movement in the same transaction.
    """
    product = await Product.get_or_none(id=data["product_id"])
    if not product:
        raise NotFoundError(f"Product {data['product_id']} not found.")
    if await InventoryLine.filter(product_id=product.id).exists():
        raise ConflictError(f"Product {product.name} already has an inventory line.")
    if await InventoryLine.filter(sku=data["sku"]).exists():
        raise ConflictError(f"SKU {data['sku']} is already in use.")

    quantity = data.get("quantity", 0)
    if quantity < 0:
        raise ValidationError("Opening quantity cannot be negative.", details={"quantity": quantity})

    try:
        async with in_transaction() as conn:
            line = await InventoryLine.create(
                product=product,
                sku=data["sku"],
                quantity=quantity,
                reserved_qty=data.get("reserved_qty", 0),
                reorder_point=data.get("reorder_point", 5),
                reorder_qty=data.get("reorder_qty", 10),
                unit_cost=data.get("unit_cost", Decimal("0")),
                location=data.get("location"),
                last_restocked_at=timezone.now() if quantity > 0 else None,
                using_db=conn,
            )
            if quantity > 0:
                await StockMovement.create(
                    inventory_line_id=line.id,
                    kind=MovementKind.IN,
                    amount=quantity,
                    reason="Initial stock entry",
                    using_db=conn,
                )
    except IntegrityError as e:
        raise ConflictError(f"SKU {data['sku']} is already in use.", details={"original_error": str(e)}) from e
    except (OperationalError, DBConnectionError) as e:
        log.error(f"Inventory line creation for {data['sku']} rolled back: {e}")
        raise PersistenceError("Failed to create inventory line.", details={"original_error": str(e)}) from e

    log.info(f"Inventory line {line.sku} created for '{product.name}' with {quantity} units.")
    await evaluate_and_alert(line)
    return await get_inventory_line(line.id)


async def update_inventory_line(line_id: UUID, changes: Dict[str, Any]) -> InventoryLine:
    """
    Updates line settings. A changed quantity is booked through the ledger as
    an ``in`` or ``out`` movement of the difference, never written directly.

    Everything that can be checked up front is validated before any write.
    The movement is booked first and the settings saved after it, so a
    rejected movement leaves the line untouched. The two writes are separate
    transactions: a store failure on the settings save keeps the movement.
    """
    line = await InventoryLine.get_or_none(id=line_id)
    if not line:
        raise NotFoundError(f"Inventory line {line_id} not found.")

    unknown = set(changes) - EDITABLE_FIELDS
    if unknown:
        raise ValidationError("Unknown inventory fields.", details={"fields": sorted(unknown)})
    nulls = sorted(field for field, value in changes.items() if value is None and field not in NULLABLE_FIELDS)
    if nulls:
        raise ValidationError("These inventory fields cannot be null.", details={"fields": nulls})

    changes = dict(changes)
    new_quantity = changes.pop("quantity", None)
    if new_quantity is not None and new_quantity < 0:
        raise ValidationError("Quantity cannot be negative.", details={"quantity": new_quantity})
    if "sku" in changes and changes["sku"] != line.sku:
        if await InventoryLine.filter(sku=changes["sku"]).exclude(id=line.id).exists():
            raise ConflictError(f"SKU {changes['sku']} is already in use.")

    if new_quantity is not None and new_quantity != line.quantity:
        diff = new_quantity - line.quantity
        await record_movement(
            line.id,
            MovementKind.IN if diff > 0 else MovementKind.OUT,
            abs(diff),
            reason="Manual adjustment",
        )

    if changes:
        for field, value in changes.items():
            setattr(line, field, value)
        try:
            # quantity is left out: the ledger owns it
            await line.save(update_fields=list(changes) + ["updated_at"])
        except IntegrityError as e:
            if "sku" in changes:
                raise ConflictError(f"SKU {line.sku} is already in use.", details={"original_error": str(e)}) from e
            log.error(f"Settings update for inventory line {line.sku} rejected by the store: {e}")
            raise PersistenceError("Failed to update inventory line.", details={"original_error": str(e)}) from e
        except (OperationalError, DBConnectionError) as e:
            log.error(f"Settings update for inventory line {line.sku} failed: {e}")
            raise PersistenceError("Failed to update inventory line.", details={"original_error": str(e)}) from e

    # Threshold settings may have changed even when the quantity did not
    await evaluate_and_alert(await InventoryLine.get(id=line_id))
    return await get_inventory_line(line_id)
