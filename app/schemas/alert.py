import uuid
from datetime import datetime
from typing import List, Literal, Optional, Union
from pydantic import BaseModel, Field
from app.models.alert import AlertKind, AlertSeverity, StockAlert
from app.models.catalog import Product
from app.models.inventory import InventoryLine


class MarkReadRequest(BaseModel):
    """Either the literal string "all" or an explicit list of alert ids."""
    ids: Union[Literal["all"], List[uuid.UUID]] = Field(..., description='"all" or a list of alert ids.')


class AlertOut(BaseModel):
    id: uuid.UUID
    inventory_line_id: uuid.UUID
    sku: Optional[str] = None
    product_name: Optional[str] = None
    kind: AlertKind
    severity: AlertSeverity
    message: str
    is_read: bool
    resolved_at: Optional[datetime] = None
    created_at: datetime

    @classmethod
    def from_alert(cls, alert: StockAlert) -> "AlertOut":
        line = alert.inventory_line if isinstance(alert.inventory_line, InventoryLine) else None
        return cls(
            id=alert.id,
            inventory_line_id=alert.inventory_line_id,
            sku=line.sku if line else None,
            product_name=line.product.name if line and isinstance(line.product, Product) else None,
            kind=alert.kind,
            severity=alert.severity,
            message=alert.message,
            is_read=alert.is_read,
            resolved_at=alert.resolved_at,
            created_at=alert.created_at,
        )
