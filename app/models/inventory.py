from enum import Enum
from tortoise import fields, models
import uuid


class MovementKind(str, Enum):
    """
    Kind of stock movement. The same ``amount`` field carries a different
    meaning per kind:

    - ``in`` / ``return``: positive delta added to the quantity
    - ``out``: positive delta removed, floored at zero
    - ``adjustment``: the new absolute quantity, not a delta
    """
    IN = "in"
    OUT = "out"
    ADJUSTMENT = "adjustment"
    RETURN = "return"

    @property
    def is_absolute(self) -> bool:
        return self is MovementKind.ADJUSTMENT


class InventoryLine(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    # One-to-one link to ensure a single inventory record per product
    product = fields.OneToOneField("models.Product", related_name="inventory")
    sku = fields.CharField(max_length=64, unique=True)
    # Cached value derived from the movement ledger; only the ledger writes it
    quantity = fields.IntField(default=0)
    reserved_qty = fields.IntField(default=0)
    reorder_point = fields.IntField(default=5)
    reorder_qty = fields.IntField(default=10)
    unit_cost = fields.DecimalField(max_digits=12, decimal_places=2, default=0)
    location = fields.CharField(max_length=128, null=True)
    last_restocked_at = fields.DatetimeField(null=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "inventory_lines"
        indexes = [
            ("quantity",),
            ("updated_at",),
        ]

    @property
    def is_below_reorder_point(self) -> bool:
        return self.quantity <= self.reorder_point


class StockMovement(models.Model):
    """Append-only audit row. Never updated or deleted."""
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    inventory_line = fields.ForeignKeyField("models.InventoryLine", related_name="movements")
    kind = fields.CharEnumField(MovementKind, max_length=16)
    # Requested amount, stored as given even when an `out` is clamped at zero
    amount = fields.IntField()
    reason = fields.CharField(max_length=255, null=True)
    reference = fields.CharField(max_length=128, null=True)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "stock_movements"
        indexes = [
            ("inventory_line_id",),
            ("kind",),
            ("created_at",),
            ("inventory_line_id", "created_at"),
            ("reference", "kind"),          # Order booking lookups
        ]
