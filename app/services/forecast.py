"""
Demand forecast orchestration.

A run either reuses the latest run stored within the freshness window, or
builds a sales/inventory snapshot, asks the forecasting collaborator for a
30-day prediction and persists the result. Any collaborator failure (error,
timeout, unparseable answer) falls back to a deterministic statistical
forecast, so callers always receive a forecast for every product.
"""
import asyncio
import logging
import math
import re
import uuid
from datetime import timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional
from pydantic import ValidationError as PydanticValidationError
from tortoise import timezone
from tortoise.exceptions import DBConnectionError, OperationalError
from tortoise.transactions import in_transaction
from app.core.config import (
    FORECAST_CACHE_HOURS,
    FORECAST_HORIZON_DAYS,
    FORECAST_ORDER_WINDOW,
    FORECAST_TIMEOUT_SECONDS,
)
from app.core.exceptions import PersistenceError
from app.models.catalog import Order
from app.models.forecast import DemandForecast, ForecastSource, Seasonality, Trend
from app.models.inventory import InventoryLine
from app.schemas.forecast import AIForecastPayload, ForecastEntry
from app.services.forecaster import gemini_forecaster

log = logging.getLogger(__name__)

Forecaster = Callable[[List[Dict[str, Any]], str, int], Awaitable[str]]

FALLBACK_CONFIDENCE = 0.6
FALLBACK_FACTORS = "statistical average"
FALLBACK_SUMMARY = "Statistical forecast based on sales averages (AI analysis unavailable)"
FALLBACK_RECOMMENDATIONS = ["Monitor stock levels closely", "Consider seasonal trends"]

JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


async def build_snapshot(order_window: int = FORECAST_ORDER_WINDOW) -> List[Dict[str, Any]]:
    """Per-product sales summary over the latest ``order_window`` orders, sorted by SKU."""
    lines = await InventoryLine.all().order_by("sku").prefetch_related("product")
    orders = await Order.all().order_by("-created_at").limit(order_window).prefetch_related("items")

    sold: Dict[Any, int] = {}
    counts: Dict[Any, int] = {}
    for order in orders:
        for item in order.items:
            sold[item.product_id] = sold.get(item.product_id, 0) + item.quantity
            counts[item.product_id] = counts.get(item.product_id, 0) + 1

    snapshot = []
    for line in lines:
        total_sold = sold.get(line.product_id, 0)
        order_count = counts.get(line.product_id, 0)
        snapshot.append({
            "name": line.product.name,
            "sku": line.sku,
            "category": line.product.category,
            "total_sold": total_sold,
            "order_count": order_count,
            "avg_order_qty": _round_half_up(total_sold / order_count) if order_count else 0,
            "current_stock": line.quantity,
            "reorder_point": line.reorder_point,
        })
    return snapshot


def statistical_entry(item: Dict[str, Any]) -> ForecastEntry:
    return ForecastEntry(
        product_name=item["name"],
        sku=item["sku"],
        predicted_qty=max(item["avg_order_qty"] * 4, item["reorder_point"], 0),
        confidence=FALLBACK_CONFIDENCE,
        seasonality=Seasonality.MEDIUM,
        trend=Trend.STABLE,
        factors=FALLBACK_FACTORS,
        source=ForecastSource.STATISTICAL,
    )


def statistical_forecast(snapshot: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Deterministic fallback forecast. Has no failure path for a well-formed snapshot."""
    return {
        "entries": [statistical_entry(item) for item in snapshot],
        "summary": FALLBACK_SUMMARY,
        "recommendations": list(FALLBACK_RECOMMENDATIONS),
        "source": ForecastSource.STATISTICAL,
    }


def decode_forecast_response(text: str) -> Optional[AIForecastPayload]:
    """
    Extracts the JSON object from a model answer and decodes it.
    Returns None when the answer does not have the expected shape.
    """
    if not text:
        return None
    match = JSON_OBJECT.search(text)
    if not match:
        return None
    try:
        return AIForecastPayload.model_validate_json(match.group(0))
    except PydanticValidationError as e:
        log.warning(f"Forecast response rejected: {e.error_count()} validation error(s).")
        return None


def merge_with_snapshot(payload: AIForecastPayload, snapshot: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Keeps the valid AI entries for known SKUs and fills any product the
    collaborator left out with its statistical entry. Returns None when no
    usable AI entry remains.
    """
    known = {item["sku"] for item in snapshot}
    by_sku: Dict[str, ForecastEntry] = {}
    for raw in payload.forecasts:
        try:
            entry = ForecastEntry.model_validate(raw)
        except PydanticValidationError:
            log.warning(f"Skipping malformed forecast entry: {raw!r}")
            continue
        if entry.sku not in known:
            log.warning(f"Skipping forecast for unknown SKU {entry.sku}.")
            continue
        by_sku.setdefault(entry.sku, entry.model_copy(update={"source": ForecastSource.AI}))

    if not by_sku:
        return None

    entries = []
    for item in snapshot:
        entry = by_sku.get(item["sku"])
        if entry is None:
            log.info(f"No AI forecast for {item['sku']}; using statistical average.")
            entry = statistical_entry(item)
        entries.append(entry)

    return {
        "entries": entries,
        "summary": payload.summary,
        "recommendations": payload.recommendations,
        "source": ForecastSource.AI,
    }


async def request_ai_forecast(
    snapshot: List[Dict[str, Any]],
    forecaster: Forecaster,
    timeout: float,
) -> Optional[Dict[str, Any]]:
    """Calls the collaborator; any failure is logged and reported as None."""
    now = timezone.now()
    try:
        text = await asyncio.wait_for(forecaster(snapshot, now.strftime("%B"), now.year), timeout=timeout)
    except asyncio.TimeoutError:
        log.error(f"Forecasting collaborator timed out after {timeout}s; using statistical fallback.")
        return None
    except Exception as e:
        log.error(f"Forecasting collaborator failed: {e}; using statistical fallback.")
        return None

    payload = decode_forecast_response(text)
    if payload is None:
        log.error("Forecasting collaborator returned an unusable response; using statistical fallback.")
        return None
    return merge_with_snapshot(payload, snapshot)


async def get_cached_forecast(cache_hours: int = FORECAST_CACHE_HOURS) -> List[DemandForecast]:
    """Rows of the latest run created within the freshness window, or an empty list."""
    cutoff = timezone.now() - timedelta(hours=cache_hours)
    latest = await DemandForecast.filter(created_at__gte=cutoff).order_by("-created_at").first()
    if not latest:
        return []
    return await DemandForecast.filter(run_id=latest.run_id).order_by("sku")


async def persist_forecast(entries: List[ForecastEntry]) -> List[DemandForecast]:
    run_id = uuid.uuid4()
    forecast_date = timezone.now() + timedelta(days=FORECAST_HORIZON_DAYS)
    rows = []
    try:
        async with in_transaction() as conn:
            for entry in entries:
                rows.append(await DemandForecast.create(
                    run_id=run_id,
                    product_name=entry.product_name,
                    sku=entry.sku,
                    forecast_date=forecast_date,
                    predicted_qty=entry.predicted_qty,
                    confidence=entry.confidence,
                    seasonality=entry.seasonality,
                    trend=entry.trend,
                    factors=entry.factors,
                    source=entry.source,
                    using_db=conn,
                ))
    except (OperationalError, DBConnectionError) as e:
        log.error(f"Failed to persist forecast run {run_id}: {e}")
        raise PersistenceError("Failed to store demand forecast.", details={"original_error": str(e)}) from e
    return rows


async def get_demand_forecast(
    force_refresh: bool = False,
    forecaster: Optional[Forecaster] = None,
    timeout: Optional[float] = None,
) -> Dict[str, Any]:
    """
    Returns ``{forecasts, summary, recommendations, source, cached}``.

    ``forecaster`` defaults to the Gemini collaborator and ``timeout`` to
    FORECAST_TIMEOUT_SECONDS.
    """
    if not force_refresh:
        cached_rows = await get_cached_forecast()
        if cached_rows:
            log.info(f"Serving cached forecast run {cached_rows[0].run_id} ({len(cached_rows)} products).")
            sources = {row.source for row in cached_rows}
            return {
                "forecasts": cached_rows,
                "summary": None,
                "recommendations": [],
                "source": ForecastSource.AI if ForecastSource.AI in sources else ForecastSource.STATISTICAL,
                "cached": True,
            }

    snapshot = await build_snapshot()
    result = None
    if snapshot:
        result = await request_ai_forecast(
            snapshot,
            forecaster or gemini_forecaster,
            FORECAST_TIMEOUT_SECONDS if timeout is None else timeout,
        )
    if result is None:
        result = statistical_forecast(snapshot)

    rows = await persist_forecast(result["entries"])
    log.info(f"Forecast run stored for {len(rows)} products (source: {result['source'].value}).")
    return {
        "forecasts": rows,
        "summary": result["summary"],
        "recommendations": result["recommendations"],
        "source": result["source"],
        "cached": False,
    }
