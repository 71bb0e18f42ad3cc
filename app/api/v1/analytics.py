from fastapi import APIRouter
from app.schemas.alert import AlertOut
from app.schemas.analytics import AnalyticsResponse
from app.schemas.inventory import MovementOut
from app.schemas.response import SuccessResponse
from app.services.analytics import get_inventory_analytics

router = APIRouter()


@router.get("", response_model=SuccessResponse)
async def analytics_endpoint():
    """Stock health KPIs, sales by category, 6-month revenue trend, unread alerts and recent movements."""
    result = await get_inventory_analytics()
    data = AnalyticsResponse(
        kpis=result["kpis"],
        sales_by_category=result["sales_by_category"],
        stock_distribution=result["stock_distribution"],
        monthly_trend=result["monthly_trend"],
        alerts=[AlertOut.from_alert(a) for a in result["alerts"]],
        recent_movements=[MovementOut.from_movement(m) for m in result["recent_movements"]],
    ).model_dump()
    return SuccessResponse(data=data)
