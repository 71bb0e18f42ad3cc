from tortoise import fields, models
import uuid


class ReorderRule(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    name = fields.CharField(max_length=255)
    # NULL category is the catch-all rule
    category = fields.CharField(max_length=100, null=True)
    min_stock_level = fields.IntField(null=True)
    reorder_quantity = fields.IntField(null=True)
    max_stock_level = fields.IntField(null=True)
    auto_reorder = fields.BooleanField(default=False)
    is_active = fields.BooleanField(default=True)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "reorder_rules"
        indexes = [
            ("is_active",),
            ("category",),
        ]
