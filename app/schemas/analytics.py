from decimal import Decimal
from typing import List
from pydantic import BaseModel
from app.schemas.alert import AlertOut
from app.schemas.inventory import MovementOut


class AnalyticsKpis(BaseModel):
    total_products: int
    total_stock_value: Decimal
    total_units: int
    low_stock_count: int
    out_of_stock_count: int
    healthy_count: int
    stock_health: int


class CategorySales(BaseModel):
    category: str
    revenue: Decimal
    units: int


class StockLevel(BaseModel):
    name: str
    sku: str
    category: str
    quantity: int
    reorder_point: int
    status: str


class MonthlyRevenue(BaseModel):
    month: str
    revenue: Decimal


class AnalyticsResponse(BaseModel):
    """Dashboard payload served by GET /analytics."""
    kpis: AnalyticsKpis
    sales_by_category: List[CategorySales]
    stock_distribution: List[StockLevel]
    monthly_trend: List[MonthlyRevenue]
    alerts: List[AlertOut]
    recent_movements: List[MovementOut]
