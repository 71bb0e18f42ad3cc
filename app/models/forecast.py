from enum import Enum
from tortoise import fields, models
import uuid


class Seasonality(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Trend(str, Enum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


class ForecastSource(str, Enum):
    AI = "ai"
    STATISTICAL = "statistical"


class DemandForecast(models.Model):
    """Write-once forecast row. Rows written by one run share a ``run_id``."""
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    run_id = fields.UUIDField()
    product_name = fields.CharField(max_length=255)
    sku = fields.CharField(max_length=64)
    forecast_date = fields.DatetimeField()
    predicted_qty = fields.IntField()
    confidence = fields.FloatField()
    seasonality = fields.CharEnumField(Seasonality, max_length=16)
    trend = fields.CharEnumField(Trend, max_length=16)
    factors = fields.TextField(null=True)
    source = fields.CharEnumField(ForecastSource, max_length=16, default=ForecastSource.AI)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "demand_forecasts"
        indexes = [
            ("created_at",),   # Freshness window lookups
            ("run_id",),
            ("sku",),
        ]
