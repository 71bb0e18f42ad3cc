from fastapi import APIRouter, Depends
from app.schemas.forecast import ForecastOut, ForecastResponse
from app.schemas.response import SuccessResponse
from app.services.forecast import Forecaster, get_demand_forecast
from app.services.forecaster import gemini_forecaster

router = APIRouter()


def get_forecaster() -> Forecaster:
    """Forecasting collaborator used by the endpoint; overridden in tests."""
    return gemini_forecaster


@router.get("", response_model=SuccessResponse)
async def demand_forecast_endpoint(refresh: bool = False, forecaster: Forecaster = Depends(get_forecaster)):
    """
    Returns the 30-day demand forecast. A run from the last 24 hours is reused
    unless ``refresh=true``. When the AI service fails the forecast is computed
    from sales averages instead; this endpoint never fails because of it.
    """
    result = await get_demand_forecast(force_refresh=refresh, forecaster=forecaster)
    data = ForecastResponse(
        forecasts=[ForecastOut.model_validate(row) for row in result["forecasts"]],
        summary=result["summary"],
        recommendations=result["recommendations"],
        source=result["source"],
        cached=result["cached"],
    ).model_dump()
    return SuccessResponse(data=data)
