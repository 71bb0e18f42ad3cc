# scripts/seed_data.py
import asyncio
import logging
from decimal import Decimal
from app.core.db import init_db, close_db
from app.models.catalog import Product
from app.models.inventory import InventoryLine
from app.models.reorder import ReorderRule
from app.services.inventory_service import create_inventory_line

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
log = logging.getLogger("seed_data")

PRODUCTS = [
    ("Velvet Three-Seater Sofa", "Sofas", "54999.00", 20),
    ("Oak Dining Table", "Tables", "32999.00", 12),
    ("Walnut Bookshelf", "Storage", "18999.00", 8),
    ("Linen Armchair", "Chairs", "14999.00", 4),
]
LOCATIONS = ["Warehouse A", "Warehouse B", "Showroom Floor"]


def sku_for(category: str, index: int) -> str:
    return f"TRM-{category[:3].upper()}-{index:04d}"


async def seed():
    # Create products and their inventory lines (idempotent on product name)
    for index, (name, category, price, qty) in enumerate(PRODUCTS, start=1):
        product, _ = await Product.get_or_create(name=name, defaults={"category": category, "price": price})
        if await InventoryLine.filter(product_id=product.id).exists():
            continue
        await create_inventory_line({
            "product_id": product.id,
            "sku": sku_for(category, index),
            "quantity": qty,
            "reorder_point": 5,
            "reorder_qty": 15,
            "unit_cost": (Decimal(price) * Decimal("0.6")).quantize(Decimal("0.01")),
            "location": LOCATIONS[index % len(LOCATIONS)],
        })

    await ReorderRule.get_or_create(
        name="Sofas - keep showroom stocked",
        defaults={"category": "Sofas", "min_stock_level": 5, "reorder_quantity": 10, "max_stock_level": 40},
    )
    await ReorderRule.get_or_create(
        name="Default reorder policy",
        defaults={"category": None, "min_stock_level": None, "reorder_quantity": None},
    )
    log.info("Inventory seeded.")

async def main():
    await init_db()
    await seed()
    await close_db()

if __name__ == "__main__":
    asyncio.run(main())
