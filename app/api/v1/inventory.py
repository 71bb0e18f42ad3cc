import logging
from typing import Optional
from uuid import UUID
from fastapi import APIRouter, Query, status
from app.schemas.inventory import (
    InventoryLineCreate,
    InventoryLineOut,
    InventoryLineUpdate,
    InventoryListResponse,
    InventoryStats,
)
from app.schemas.response import SuccessResponse
from app.services.inventory_service import (
    create_inventory_line,
    get_inventory_line,
    list_inventory,
    stock_status,
    update_inventory_line,
)

log = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=SuccessResponse)
async def list_inventory_endpoint(
    search: Optional[str] = None,
    category: Optional[str] = None,
    stock_status_filter: Optional[str] = Query(None, alias="stock_status", description="low, out or ok"),
    sort_by: str = "updated_at",
    sort_order: str = "desc",
):
    """Lists inventory lines with filters, plus stats over the whole inventory."""
    result = await list_inventory(
        search=search,
        category=category,
        status=stock_status_filter,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    data = InventoryListResponse(
        inventory=[InventoryLineOut.from_line(line, stock_status(line)) for line in result["inventory"]],
        stats=InventoryStats(**result["stats"]),
    ).model_dump()
    return SuccessResponse(data=data)


@router.post("", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def create_inventory_endpoint(payload: InventoryLineCreate):
    """Creates the inventory line of a product; opening stock is booked as an 'in' movement."""
    line = await create_inventory_line(payload.model_dump())
    return SuccessResponse(data=InventoryLineOut.from_line(line, stock_status(line)).model_dump())


@router.get("/{line_id}", response_model=SuccessResponse)
async def get_inventory_endpoint(line_id: UUID):
    line = await get_inventory_line(line_id)
    return SuccessResponse(data=InventoryLineOut.from_line(line, stock_status(line)).model_dump())


@router.patch("/{line_id}", response_model=SuccessResponse)
async def update_inventory_endpoint(line_id: UUID, payload: InventoryLineUpdate):
    """
    Updates line settings. A quantity different from the stored one is booked
    as an 'in' or 'out' movement of the difference.
    """
    line = await update_inventory_line(line_id, payload.model_dump(exclude_unset=True))
    log.info(f"Inventory line {line.sku} updated.")
    return SuccessResponse(data=InventoryLineOut.from_line(line, stock_status(line)).model_dump())
