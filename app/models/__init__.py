# app/models/__init__.py
from .catalog import Product, Order, OrderItem, OrderStatus
from .inventory import InventoryLine, StockMovement, MovementKind
from .alert import StockAlert, AlertKind, AlertSeverity
from .reorder import ReorderRule
from .forecast import DemandForecast, Seasonality, Trend, ForecastSource

# Export all models
__all__ = [
    "Product",
    "Order",
    "OrderItem",
    "OrderStatus",
    "InventoryLine",
    "StockMovement",
    "MovementKind",
    "StockAlert",
    "AlertKind",
    "AlertSeverity",
    "ReorderRule",
    "DemandForecast",
    "Seasonality",
    "Trend",
    "ForecastSource",
]
