from enum import Enum
from tortoise import fields, models
import uuid


class AlertKind(str, Enum):
    LOW_STOCK = "low_stock"
    OUT_OF_STOCK = "out_of_stock"


class AlertSeverity(str, Enum):
    WARNING = "warning"
    CRITICAL = "critical"


def open_key_for(inventory_line_id, kind: AlertKind) -> str:
    return f"{inventory_line_id}:{kind.value}"


class StockAlert(models.Model):
    """
    Threshold alert for an inventory line.

    An alert is open while ``resolved_at`` is null. ``open_key`` holds
    ``"<line id>:<kind>"`` while the alert is open; its unique constraint keeps
    at most one open alert per (line, kind). A resolver only has to set
    ``resolved_at``; a key left behind is released on the next breach.
    """
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    inventory_line = fields.ForeignKeyField("models.InventoryLine", related_name="alerts")
    kind = fields.CharEnumField(AlertKind, max_length=16)
    message = fields.CharField(max_length=512)
    severity = fields.CharEnumField(AlertSeverity, max_length=16)
    is_read = fields.BooleanField(default=False)
    resolved_at = fields.DatetimeField(null=True)
    open_key = fields.CharField(max_length=80, null=True, unique=True)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "stock_alerts"
        indexes = [
            ("is_read",),
            ("inventory_line_id", "kind"),
            ("created_at",),
        ]
