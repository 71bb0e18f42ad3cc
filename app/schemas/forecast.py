import math
import uuid
from datetime import datetime
from typing import Any, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from app.models.forecast import ForecastSource, Seasonality, Trend


class ForecastEntry(BaseModel):
    """
    One product forecast, either decoded from the AI response (camelCase keys)
    or produced by the statistical fallback.
    """
    model_config = ConfigDict(populate_by_name=True)

    product_name: str = Field(..., alias="productName", min_length=1)
    sku: str = Field(..., min_length=1)
    predicted_qty: int = Field(..., alias="predictedQty", ge=0)
    confidence: float = Field(..., ge=0, le=1)
    seasonality: Seasonality
    trend: Trend
    factors: str = ""
    source: ForecastSource = ForecastSource.AI

    @field_validator("predicted_qty", mode="before")
    @classmethod
    def round_quantity(cls, v: Any) -> Any:
        # Models sometimes answer with fractional units
        if isinstance(v, float) and math.isfinite(v):
            return math.floor(v + 0.5)
        return v

    @field_validator("seasonality", "trend", mode="before")
    @classmethod
    def normalise_label(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v


class AIForecastPayload(BaseModel):
    """Top-level shape expected from the forecasting collaborator."""
    # Entries are decoded one by one so a malformed entry can be skipped
    forecasts: List[Any]
    summary: Optional[str] = None
    recommendations: List[str] = Field(default_factory=list)


class ForecastOut(BaseModel):
    """Schema for a persisted demand forecast row."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    run_id: uuid.UUID
    product_name: str
    sku: str
    forecast_date: datetime
    predicted_qty: int
    confidence: float
    seasonality: Seasonality
    trend: Trend
    factors: Optional[str] = None
    source: ForecastSource
    created_at: datetime


class ForecastResponse(BaseModel):
    forecasts: List[ForecastOut]
    summary: Optional[str] = None
    recommendations: List[str] = Field(default_factory=list)
    source: ForecastSource
    cached: bool
