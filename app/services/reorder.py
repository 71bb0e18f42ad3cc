import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence
from uuid import UUID
from app.core.exceptions import NotFoundError, ValidationError
from app.models.inventory import InventoryLine
from app.models.reorder import ReorderRule
from app.services.alerts import classify, raise_alert

log = logging.getLogger(__name__)

RULE_FIELDS = {
    "name", "category", "min_stock_level", "reorder_quantity",
    "max_stock_level", "auto_reorder", "is_active",
}
NULLABLE_RULE_FIELDS = {"category", "min_stock_level", "reorder_quantity", "max_stock_level"}


def match_rule(category: Optional[str], rules: Sequence[ReorderRule]) -> Optional[ReorderRule]:
    """First active rule for the category, else the first active catch-all rule."""
    active = [r for r in rules if r.is_active]
    for rule in active:
        if rule.category is not None and rule.category == category:
            return rule
    for rule in active:
        if rule.category is None:
            return rule
    return None


async def compute_suggestions(
    lines: Iterable[InventoryLine], rules: Sequence[ReorderRule]
) -> Dict[str, Any]:
    """
    Builds purchasing suggestions for lines at or below their rule threshold.

    Lines must have ``product`` fetched. Every line that crosses the threshold
    also goes through the alert dedup, so this is not a pure read.
    """
    suggestions = []
    total = Decimal("0")

    for line in lines:
        product = line.product
        rule = match_rule(product.category, rules)
        if rule is None:
            continue

        threshold = rule.min_stock_level if rule.min_stock_level is not None else line.reorder_point
        if line.quantity > threshold:
            continue

        suggested_qty = rule.reorder_quantity if rule.reorder_quantity is not None else line.reorder_qty
        estimated_cost = suggested_qty * Decimal(str(line.unit_cost))
        kind, severity = classify(line.quantity)

        suggestions.append({
            "inventory_line_id": line.id,
            "product": product.name,
            "sku": line.sku,
            "rule": rule.name,
            "current_stock": line.quantity,
            "reorder_point": threshold,
            "suggested_qty": suggested_qty,
            "estimated_cost": estimated_cost,
            "urgency": severity.value,
        })
        total += estimated_cost

        await raise_alert(
            line,
            kind,
            f"Reorder needed: {product.name} ({line.sku}) - Stock: {line.quantity}/{threshold}",
        )

    log.info(f"Reorder check produced {len(suggestions)} suggestion(s), estimated cost {total}.")
    return {
        "suggestions": suggestions,
        "total_items": len(suggestions),
        "total_estimated_cost": total,
    }


async def run_reorder_check() -> Dict[str, Any]:
    """Sweeps every inventory line against the active rules."""
    lines = await InventoryLine.all().prefetch_related("product")
    rules = await ReorderRule.filter(is_active=True).order_by("created_at")
    return await compute_suggestions(lines, rules)


# ----------- Rule management -----------

async def list_rules(active_only: bool = False) -> List[ReorderRule]:
    query = ReorderRule.all()
    if active_only:
        query = query.filter(is_active=True)
    return await query.order_by("created_at")


async def create_rule(data: Dict[str, Any]) -> ReorderRule:
    if not data.get("name"):
        raise ValidationError("Reorder rule name is required.")
    rule = await ReorderRule.create(**{k: v for k, v in data.items() if k in RULE_FIELDS})
    log.info(f"Reorder rule '{rule.name}' created for category {rule.category or '*'}.")
    return rule


async def update_rule(rule_id: UUID, changes: Dict[str, Any]) -> ReorderRule:
    rule = await ReorderRule.get_or_none(id=rule_id)
    if not rule:
        raise NotFoundError(f"Reorder rule {rule_id} not found.")

    unknown = set(changes) - RULE_FIELDS
    if unknown:
        raise ValidationError("Unknown reorder rule fields.", details={"fields": sorted(unknown)})
    nulls = sorted(f for f, v in changes.items() if v is None and f not in NULLABLE_RULE_FIELDS)
    if nulls:
        raise ValidationError("These reorder rule fields cannot be null.", details={"fields": nulls})

    for field, value in changes.items():
        setattr(rule, field, value)
    if changes:
        await rule.save(update_fields=list(changes))
    return rule
