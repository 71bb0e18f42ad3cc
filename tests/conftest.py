import pytest
from decimal import Decimal
from httpx import ASGITransport, AsyncClient
from app.core.db import init_db, close_db
from app.main import app
from app.models.catalog import Order, OrderItem, Product
from app.services.inventory_service import create_inventory_line


@pytest.fixture
async def db():
    """Fresh in-memory SQLite database per test."""
    await init_db(db_url="sqlite://:memory:")
    yield
    await close_db()


@pytest.fixture
def make_line(db):
    """Factory: creates a product and its inventory line through the catalogue service."""
    async def _make(sku, category="Sofas", quantity=20, name=None, **kwargs):
        product = await Product.create(
            name=name or f"Product {sku}", category=category, price=Decimal("100.00")
        )
        return await create_inventory_line({
            "product_id": product.id,
            "sku": sku,
            "quantity": quantity,
            **kwargs,
        })
    return _make


@pytest.fixture
def make_order(db):
    """Factory: creates an order from (product_id, quantity) pairs."""
    async def _make(*items):
        order = await Order.create(total_amount=Decimal("0"))
        for product_id, quantity in items:
            await OrderItem.create(
                order=order, product_id=product_id, quantity=quantity, unit_price=Decimal("100.00")
            )
        return order
    return _make


@pytest.fixture
async def client(db):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
