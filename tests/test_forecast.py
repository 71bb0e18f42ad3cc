import pytest
from datetime import timedelta
from tortoise import timezone
from app.models.forecast import DemandForecast, ForecastSource, Seasonality, Trend
from app.services.forecast import (
    FALLBACK_SUMMARY,
    build_snapshot,
    decode_forecast_response,
    get_demand_forecast,
    statistical_forecast,
)
from app.testing.testing_mocks import FakeForecaster, failing_forecaster, forecast_entry, forecast_payload


@pytest.fixture
async def stocked(make_line, make_order):
    """Two lines; only the sofa has sales (2 and 3 units over two orders)."""
    sofa = await make_line("TRM-SOF-0001", name="Velvet Sofa", quantity=20, reorder_point=5)
    table = await make_line("TRM-TAB-0002", name="Oak Table", category="Tables", quantity=12, reorder_point=5)
    await make_order((sofa.product_id, 2))
    await make_order((sofa.product_id, 3))
    return sofa, table


def _by_sku(rows):
    return {row.sku: row for row in rows}


# --- SNAPSHOT AND FALLBACK ---

async def test_snapshot_summarises_sales_per_product(stocked):
    snapshot = await build_snapshot()

    assert [item["sku"] for item in snapshot] == ["TRM-SOF-0001", "TRM-TAB-0002"]
    sofa = snapshot[0]
    assert sofa["total_sold"] == 5
    assert sofa["order_count"] == 2
    assert sofa["avg_order_qty"] == 3
    assert sofa["current_stock"] == 20
    assert sofa["reorder_point"] == 5
    assert sofa["category"] == "Sofas"


def test_statistical_forecast_formula():
    snapshot = [
        {"name": "Velvet Sofa", "sku": "TRM-SOF-0001", "avg_order_qty": 3, "reorder_point": 5},
        {"name": "Oak Table", "sku": "TRM-TAB-0002", "avg_order_qty": 0, "reorder_point": 5},
    ]

    result = statistical_forecast(snapshot)

    sofa, table = result["entries"]
    assert sofa.predicted_qty == 12
    assert table.predicted_qty == 5
    assert sofa.confidence == 0.6
    assert sofa.seasonality == Seasonality.MEDIUM
    assert sofa.trend == Trend.STABLE
    assert sofa.factors == "statistical average"
    assert result["source"] == ForecastSource.STATISTICAL
    assert result["summary"] == FALLBACK_SUMMARY


def test_decode_forecast_response():
    text = 'Sure!\n```json\n{"forecasts": [], "summary": "ok"}\n```'
    assert decode_forecast_response(text).summary == "ok"
    assert decode_forecast_response("no json here") is None
    assert decode_forecast_response('{"summary": "missing forecasts"}') is None
    assert decode_forecast_response("") is None


@pytest.mark.parametrize("forecaster, timeout", [
    (failing_forecaster(), None),
    (FakeForecaster(payload={}, delay=1), 0.01),
    (FakeForecaster(text="I cannot help with that."), None),
    (FakeForecaster(text='{"forecasts": "not a list"}'), None),
])
async def test_collaborator_failures_fall_back_to_statistics(stocked, forecaster, timeout):
    result = await get_demand_forecast(forecaster=forecaster, timeout=timeout)

    assert result["source"] == ForecastSource.STATISTICAL
    assert result["cached"] is False
    assert result["summary"] == FALLBACK_SUMMARY
    rows = _by_sku(result["forecasts"])
    assert rows["TRM-SOF-0001"].predicted_qty == 12
    assert rows["TRM-TAB-0002"].predicted_qty == 5
    assert all(row.confidence == 0.6 for row in rows.values())
    assert await DemandForecast.all().count() == 2


async def test_empty_inventory_skips_collaborator(db):
    forecaster = FakeForecaster(payload=forecast_payload())

    result = await get_demand_forecast(forecaster=forecaster)

    assert forecaster.calls == []
    assert result["forecasts"] == []
    assert result["source"] == ForecastSource.STATISTICAL


# --- AI PATH ---

async def test_ai_forecast_is_persisted(stocked):
    forecaster = FakeForecaster(payload=forecast_payload(
        forecast_entry("TRM-SOF-0001", "Velvet Sofa", predicted_qty=40, trend="UP"),
        forecast_entry("TRM-TAB-0002", "Oak Table", predicted_qty=8.6, seasonality="low", trend="down"),
        summary="Festive demand for sofas",
    ))

    result = await get_demand_forecast(forecaster=forecaster)

    assert result["source"] == ForecastSource.AI
    assert result["summary"] == "Festive demand for sofas"
    assert result["recommendations"] == ["Restock sofas"]
    rows = _by_sku(result["forecasts"])
    assert rows["TRM-SOF-0001"].predicted_qty == 40
    assert rows["TRM-SOF-0001"].trend == Trend.UP
    assert rows["TRM-TAB-0002"].predicted_qty == 9
    assert rows["TRM-TAB-0002"].seasonality == Seasonality.LOW
    assert {row.run_id for row in rows.values()} == {rows["TRM-SOF-0001"].run_id}

    horizon = rows["TRM-SOF-0001"].forecast_date - rows["TRM-SOF-0001"].created_at
    assert timedelta(days=29, hours=23) < horizon < timedelta(days=30, hours=1)
    assert [item["sku"] for item in forecaster.calls[0]["snapshot"]] == ["TRM-SOF-0001", "TRM-TAB-0002"]


async def test_malformed_and_missing_entries_use_statistics(stocked):
    forecaster = FakeForecaster(payload=forecast_payload(
        forecast_entry("TRM-SOF-0001", "Velvet Sofa", predicted_qty=40),
        forecast_entry("TRM-TAB-0002", "Oak Table", confidence=1.7),
        forecast_entry("TRM-XXX-9999", "Unknown", predicted_qty=3),
    ))

    result = await get_demand_forecast(forecaster=forecaster)

    rows = _by_sku(result["forecasts"])
    assert set(rows) == {"TRM-SOF-0001", "TRM-TAB-0002"}
    assert rows["TRM-SOF-0001"].source == ForecastSource.AI
    assert rows["TRM-TAB-0002"].source == ForecastSource.STATISTICAL
    assert rows["TRM-TAB-0002"].predicted_qty == 5
    assert result["source"] == ForecastSource.AI


async def test_no_usable_ai_entry_falls_back(stocked):
    forecaster = FakeForecaster(payload=forecast_payload(
        forecast_entry("TRM-SOF-0001", "Velvet Sofa", seasonality="extreme"),
    ))

    result = await get_demand_forecast(forecaster=forecaster)

    assert result["source"] == ForecastSource.STATISTICAL
    assert len(result["forecasts"]) == 2


# --- CACHING ---

async def test_fresh_run_is_served_from_cache(stocked):
    forecaster = FakeForecaster(payload=forecast_payload(
        forecast_entry("TRM-SOF-0001", "Velvet Sofa", predicted_qty=40),
        forecast_entry("TRM-TAB-0002", "Oak Table", predicted_qty=9),
    ))

    first = await get_demand_forecast(forecaster=forecaster)
    second = await get_demand_forecast(forecaster=forecaster)

    assert len(forecaster.calls) == 1
    assert second["cached"] is True
    assert second["source"] == ForecastSource.AI
    assert second["summary"] is None
    assert second["recommendations"] == []
    assert [r.id for r in second["forecasts"]] == [r.id for r in first["forecasts"]]
    assert [r.predicted_qty for r in second["forecasts"]] == [40, 9]


async def test_refresh_bypasses_cache(stocked):
    forecaster = FakeForecaster(payload=forecast_payload(
        forecast_entry("TRM-SOF-0001", "Velvet Sofa"),
        forecast_entry("TRM-TAB-0002", "Oak Table"),
    ))

    first = await get_demand_forecast(forecaster=forecaster)
    second = await get_demand_forecast(force_refresh=True, forecaster=forecaster)

    assert len(forecaster.calls) == 2
    assert second["cached"] is False
    assert second["forecasts"][0].run_id != first["forecasts"][0].run_id
    assert await DemandForecast.all().count() == 4


async def test_cache_returns_only_latest_run(stocked):
    await get_demand_forecast(forecaster=failing_forecaster())
    latest = await get_demand_forecast(force_refresh=True, forecaster=failing_forecaster())

    cached = await get_demand_forecast(forecaster=failing_forecaster())

    assert cached["cached"] is True
    assert {r.run_id for r in cached["forecasts"]} == {latest["forecasts"][0].run_id}
    assert cached["source"] == ForecastSource.STATISTICAL


async def test_expired_run_triggers_new_forecast(stocked):
    forecaster = failing_forecaster()
    await get_demand_forecast(forecaster=forecaster)
    await DemandForecast.all().update(created_at=timezone.now() - timedelta(hours=25))

    result = await get_demand_forecast(forecaster=forecaster)

    assert result["cached"] is False
    assert len(forecaster.calls) == 2
