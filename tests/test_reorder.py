import pytest
from decimal import Decimal
from uuid import uuid4
from app.core.exceptions import NotFoundError, ValidationError
from app.models.alert import AlertKind, StockAlert
from app.models.reorder import ReorderRule
from app.services.reorder import create_rule, match_rule, run_reorder_check, update_rule


def _rule(name, category=None, is_active=True):
    return ReorderRule(name=name, category=category, is_active=is_active)


async def test_match_rule_prefers_category_over_catch_all(db):
    catch_all = _rule("Default")
    sofas = _rule("Sofas", category="Sofas")

    assert match_rule("Sofas", [catch_all, sofas]) is sofas
    assert match_rule("Tables", [catch_all, sofas]) is catch_all


async def test_match_rule_ignores_inactive_rules(db):
    rules = [_rule("Sofas", category="Sofas", is_active=False), _rule("Default", is_active=False)]
    assert match_rule("Sofas", rules) is None


async def test_urgency_follows_stock_level(make_line):
    await make_line("TRM-SOF-0001", quantity=3, reorder_point=5, unit_cost=Decimal("1200.00"))
    await make_line("TRM-SOF-0002", quantity=0, reorder_point=5, unit_cost=Decimal("800.00"))
    await create_rule({"name": "Sofas", "category": "Sofas", "min_stock_level": 5, "reorder_quantity": 10})

    result = await run_reorder_check()

    by_sku = {s["sku"]: s for s in result["suggestions"]}
    assert by_sku["TRM-SOF-0001"]["urgency"] == "warning"
    assert by_sku["TRM-SOF-0002"]["urgency"] == "critical"
    assert by_sku["TRM-SOF-0001"]["suggested_qty"] == 10
    assert by_sku["TRM-SOF-0001"]["reorder_point"] == 5
    assert by_sku["TRM-SOF-0001"]["rule"] == "Sofas"


async def test_total_cost_is_exact_sum(make_line):
    await make_line("TRM-SOF-0001", quantity=1, unit_cost=Decimal("0.10"))
    await make_line("TRM-SOF-0002", quantity=1, unit_cost=Decimal("0.20"))
    await create_rule({"name": "Sofas", "category": "Sofas", "min_stock_level": 5, "reorder_quantity": 3})

    result = await run_reorder_check()

    assert result["total_items"] == 2
    assert result["total_estimated_cost"] == Decimal("0.90")
    assert sum(s["estimated_cost"] for s in result["suggestions"]) == result["total_estimated_cost"]


async def test_catch_all_rule_falls_back_to_line_settings(make_line):
    await make_line(
        "TRM-TAB-0001", category="Tables", quantity=4, reorder_point=6, reorder_qty=12, unit_cost=Decimal("50.00")
    )
    await create_rule({"name": "Sofas", "category": "Sofas", "min_stock_level": 2, "reorder_quantity": 1})
    await create_rule({"name": "Default"})

    result = await run_reorder_check()

    [suggestion] = result["suggestions"]
    assert suggestion["rule"] == "Default"
    assert suggestion["reorder_point"] == 6
    assert suggestion["suggested_qty"] == 12
    assert suggestion["estimated_cost"] == Decimal("600.00")


async def test_zero_rule_values_are_not_replaced(make_line):
    await make_line("TRM-SOF-0001", quantity=0, reorder_point=5, reorder_qty=12, unit_cost=Decimal("10.00"))
    await create_rule({"name": "Sofas", "category": "Sofas", "min_stock_level": 0, "reorder_quantity": 0})

    [suggestion] = (await run_reorder_check())["suggestions"]

    assert suggestion["reorder_point"] == 0
    assert suggestion["suggested_qty"] == 0
    assert suggestion["estimated_cost"] == Decimal("0")


async def test_line_without_matching_rule_is_skipped(make_line):
    line = await make_line("TRM-CHA-0001", category="Chairs", quantity=8, reorder_point=5)
    await create_rule({"name": "Sofas", "category": "Sofas", "min_stock_level": 50})

    result = await run_reorder_check()

    assert result["suggestions"] == []
    assert result["total_estimated_cost"] == Decimal("0")
    assert await StockAlert.filter(inventory_line_id=line.id).count() == 0


async def test_reorder_check_raises_deduplicated_alerts(make_line):
    """A rule threshold above the line's reorder point still alerts, once."""
    line = await make_line("TRM-SOF-0001", name="Velvet Sofa", quantity=8, reorder_point=5)
    await create_rule({"name": "Sofas", "category": "Sofas", "min_stock_level": 10})
    assert await StockAlert.filter(inventory_line_id=line.id).count() == 0

    await run_reorder_check()
    await run_reorder_check()

    [alert] = await StockAlert.filter(inventory_line_id=line.id)
    assert alert.kind == AlertKind.LOW_STOCK
    assert alert.message == "Reorder needed: Velvet Sofa (TRM-SOF-0001) - Stock: 8/10"


async def test_update_rule(db):
    rule = await create_rule({"name": "Sofas", "category": "Sofas"})

    updated = await update_rule(rule.id, {"min_stock_level": 8, "is_active": False})

    assert updated.min_stock_level == 8
    stored = await ReorderRule.get(id=rule.id)
    assert stored.is_active is False


async def test_update_rule_errors(db):
    with pytest.raises(NotFoundError):
        await update_rule(uuid4(), {"is_active": False})

    rule = await create_rule({"name": "Sofas"})
    with pytest.raises(ValidationError):
        await update_rule(rule.id, {"colour": "red"})
    with pytest.raises(ValidationError):
        await update_rule(rule.id, {"auto_reorder": None})

    cleared = await update_rule(rule.id, {"min_stock_level": None})
    assert cleared.min_stock_level is None
