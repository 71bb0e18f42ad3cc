import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class ReorderRuleCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    category: Optional[str] = Field(None, max_length=100, description="Product category; omit for the catch-all rule.")
    min_stock_level: Optional[int] = Field(None, ge=0, description="Threshold; falls back to the line's reorder point.")
    reorder_quantity: Optional[int] = Field(None, ge=0, description="Suggested quantity; falls back to the line's reorder qty.")
    max_stock_level: Optional[int] = Field(None, ge=0)
    auto_reorder: bool = False
    is_active: bool = True


class ReorderRuleUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    category: Optional[str] = Field(None, max_length=100)
    min_stock_level: Optional[int] = Field(None, ge=0)
    reorder_quantity: Optional[int] = Field(None, ge=0)
    max_stock_level: Optional[int] = Field(None, ge=0)
    auto_reorder: Optional[bool] = None
    is_active: Optional[bool] = None


class ReorderRuleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    category: Optional[str] = None
    min_stock_level: Optional[int] = None
    reorder_quantity: Optional[int] = None
    max_stock_level: Optional[int] = None
    auto_reorder: bool
    is_active: bool
    created_at: datetime


class Suggestion(BaseModel):
    inventory_line_id: uuid.UUID
    product: str
    sku: str
    rule: str
    current_stock: int
    reorder_point: int
    suggested_qty: int
    estimated_cost: Decimal
    urgency: str


class ReorderCheckResponse(BaseModel):
    suggestions: List[Suggestion]
    total_items: int
    total_estimated_cost: Decimal
