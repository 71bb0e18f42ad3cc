import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, Field
from app.models.catalog import Product
from app.models.inventory import InventoryLine, MovementKind, StockMovement


class InventoryLineCreate(BaseModel):
    product_id: uuid.UUID = Field(..., description="Catalogue product this line tracks.")
    sku: str = Field(..., min_length=1, max_length=64, description="Unique stock keeping unit, e.g. TRM-SOF-0001.")
    quantity: int = Field(0, ge=0, description="Opening stock, booked as an 'in' movement.")
    reserved_qty: int = Field(0, ge=0)
    reorder_point: int = Field(5, ge=0, description="Alert threshold: quantity at or below triggers an alert.")
    reorder_qty: int = Field(10, ge=0, description="Default purchase quantity for reorder suggestions.")
    unit_cost: Decimal = Field(Decimal("0"), ge=0, max_digits=12, decimal_places=2)
    location: Optional[str] = Field(None, max_length=128)


class InventoryLineUpdate(BaseModel):
    """Partial update. A changed quantity is booked as a movement of the difference."""
    sku: Optional[str] = Field(None, min_length=1, max_length=64)
    quantity: Optional[int] = Field(None, ge=0)
    reserved_qty: Optional[int] = Field(None, ge=0)
    reorder_point: Optional[int] = Field(None, ge=0)
    reorder_qty: Optional[int] = Field(None, ge=0)
    unit_cost: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    location: Optional[str] = Field(None, max_length=128)


class InventoryLineOut(BaseModel):
    id: uuid.UUID
    product_id: uuid.UUID
    product_name: str
    category: str
    sku: str
    quantity: int
    reserved_qty: int
    reorder_point: int
    reorder_qty: int
    unit_cost: Decimal
    location: Optional[str] = None
    stock_status: str
    unread_alerts: int
    last_restocked_at: Optional[datetime] = None
    updated_at: datetime

    @classmethod
    def from_line(cls, line: InventoryLine, stock_status: str) -> "InventoryLineOut":
        """Expects ``product`` and ``alerts`` to be prefetched."""
        return cls(
            id=line.id,
            product_id=line.product_id,
            product_name=line.product.name,
            category=line.product.category,
            sku=line.sku,
            quantity=line.quantity,
            reserved_qty=line.reserved_qty,
            reorder_point=line.reorder_point,
            reorder_qty=line.reorder_qty,
            unit_cost=line.unit_cost,
            location=line.location,
            stock_status=stock_status,
            unread_alerts=sum(1 for alert in line.alerts if not alert.is_read),
            last_restocked_at=line.last_restocked_at,
            updated_at=line.updated_at,
        )


class InventoryStats(BaseModel):
    total_items: int
    total_value: Decimal
    low_stock_count: int
    out_of_stock_count: int


class InventoryListResponse(BaseModel):
    inventory: List[InventoryLineOut]
    stats: InventoryStats


class MovementRequest(BaseModel):
    """
    Records a stock movement. For 'in', 'out' and 'return' the amount is a
    positive delta; for 'adjustment' it is the new absolute quantity.
    """
    inventory_line_id: uuid.UUID
    kind: MovementKind
    amount: int = Field(..., description="Delta for in/out/return, absolute quantity for adjustment.")
    reason: Optional[str] = Field(None, max_length=255)
    reference: Optional[str] = Field(None, max_length=128, description="External reference, e.g. an order id.")


class MovementOut(BaseModel):
    id: uuid.UUID
    inventory_line_id: uuid.UUID
    sku: Optional[str] = None
    product_name: Optional[str] = None
    kind: MovementKind
    amount: int
    reason: Optional[str] = None
    reference: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_movement(cls, movement: StockMovement) -> "MovementOut":
        # inventory_line is only available when prefetched
        line = movement.inventory_line if isinstance(movement.inventory_line, InventoryLine) else None
        return cls(
            id=movement.id,
            inventory_line_id=movement.inventory_line_id,
            sku=line.sku if line else None,
            product_name=line.product.name if line and isinstance(line.product, Product) else None,
            kind=movement.kind,
            amount=movement.amount,
            reason=movement.reason,
            reference=movement.reference,
            created_at=movement.created_at,
        )
