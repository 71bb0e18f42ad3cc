import pytest
from decimal import Decimal
from uuid import uuid4
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.models.catalog import OrderStatus, Product
from app.models.inventory import InventoryLine, MovementKind, StockMovement
from app.services.fulfillment import record_order_fulfillment, record_order_return


async def test_fulfilment_books_out_movements_referencing_order(make_line, make_order):
    sofa = await make_line("TRM-SOF-0001", quantity=20)
    table = await make_line("TRM-TAB-0002", category="Tables", quantity=10)
    order = await make_order((sofa.product_id, 2), (table.product_id, 4))

    movements = await record_order_fulfillment(order.id)

    assert len(movements) == 2
    assert all(m.kind == MovementKind.OUT for m in movements)
    assert all(m.reference == str(order.id) for m in movements)
    assert all(m.reason == "Order fulfilment" for m in movements)
    assert (await InventoryLine.get(id=sofa.id)).quantity == 18
    assert (await InventoryLine.get(id=table.id)).quantity == 6


async def test_return_books_return_movements(make_line, make_order):
    sofa = await make_line("TRM-SOF-0001", quantity=20)
    order = await make_order((sofa.product_id, 2))
    await record_order_fulfillment(order.id)

    [movement] = await record_order_return(order.id)

    assert movement.kind == MovementKind.RETURN
    assert movement.amount == 2
    assert (await InventoryLine.get(id=sofa.id)).quantity == 20
    assert await StockMovement.filter(reference=str(order.id)).count() == 2


async def test_items_without_inventory_line_are_skipped(make_line, make_order):
    sofa = await make_line("TRM-SOF-0001", quantity=20)
    untracked = await Product.create(name="Gift Card", category="Vouchers", price=Decimal("50.00"))
    order = await make_order((sofa.product_id, 1), (untracked.id, 1))

    movements = await record_order_fulfillment(order.id)

    assert len(movements) == 1
    assert movements[0].inventory_line_id == sofa.id


async def test_order_with_non_positive_item_books_nothing(make_line, make_order):
    sofa = await make_line("TRM-SOF-0001", quantity=20)
    order = await make_order((sofa.product_id, 2), (sofa.product_id, 0))

    with pytest.raises(ValidationError):
        await record_order_fulfillment(order.id)

    assert await StockMovement.filter(reference=str(order.id)).count() == 0


async def test_unknown_order(db):
    with pytest.raises(NotFoundError):
        await record_order_return(uuid4())


async def test_fulfilling_twice_deducts_once(make_line, make_order):
    sofa = await make_line("TRM-SOF-0001", quantity=20)
    order = await make_order((sofa.product_id, 2))

    first = await record_order_fulfillment(order.id)
    second = await record_order_fulfillment(order.id)

    assert [m.id for m in second] == [m.id for m in first]
    assert (await InventoryLine.get(id=sofa.id)).quantity == 18
    assert await StockMovement.filter(reference=str(order.id), kind=MovementKind.OUT).count() == 1


async def test_returning_twice_restores_once(make_line, make_order):
    sofa = await make_line("TRM-SOF-0001", quantity=20)
    order = await make_order((sofa.product_id, 2))
    await record_order_fulfillment(order.id)

    await record_order_return(order.id)
    await record_order_return(order.id)

    assert (await InventoryLine.get(id=sofa.id)).quantity == 20


async def test_cancelled_order_cannot_be_fulfilled(make_line, make_order):
    sofa = await make_line("TRM-SOF-0001", quantity=20)
    order = await make_order((sofa.product_id, 2))
    order.status = OrderStatus.CANCELLED
    await order.save(update_fields=["status"])

    with pytest.raises(ConflictError):
        await record_order_fulfillment(order.id)

    assert (await InventoryLine.get(id=sofa.id)).quantity == 20


async def test_return_without_fulfilment_is_refused(make_line, make_order):
    sofa = await make_line("TRM-SOF-0001", quantity=20)
    order = await make_order((sofa.product_id, 2))

    with pytest.raises(ConflictError):
        await record_order_return(order.id)

    assert (await InventoryLine.get(id=sofa.id)).quantity == 20
