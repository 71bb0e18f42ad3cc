import logging
from typing import Optional
from uuid import UUID
from fastapi import APIRouter, Query, status
from app.core.config import MOVEMENT_LIST_LIMIT
from app.models.inventory import MovementKind
from app.schemas.inventory import MovementOut, MovementRequest
from app.schemas.response import SuccessResponse
from app.services.fulfillment import record_order_fulfillment, record_order_return
from app.services.ledger import list_movements, record_movement

log = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=SuccessResponse)
async def list_movements_endpoint(
    inventory_line_id: Optional[UUID] = None,
    kind: Optional[MovementKind] = None,
    limit: int = Query(MOVEMENT_LIST_LIMIT, ge=1, le=500),
):
    """Lists stock movements, newest first."""
    movements = await list_movements(inventory_line_id=inventory_line_id, kind=kind, limit=limit)
    return SuccessResponse(data=[MovementOut.from_movement(m).model_dump() for m in movements])


@router.post("", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def record_movement_endpoint(payload: MovementRequest):
    """
    Records a movement and updates the cached quantity atomically.
    'adjustment' sets the quantity to ``amount``; the other kinds apply it as a delta.
    """
    movement = await record_movement(
        payload.inventory_line_id,
        payload.kind,
        payload.amount,
        reason=payload.reason,
        reference=payload.reference,
    )
    await movement.fetch_related("inventory_line__product")
    return SuccessResponse(data=MovementOut.from_movement(movement).model_dump())


@router.post("/orders/{order_id}/fulfil", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def fulfil_order_endpoint(order_id: UUID):
    """Books 'out' movements for the items of a fulfilled order."""
    movements = await record_order_fulfillment(order_id)
    return SuccessResponse(data=[MovementOut.from_movement(m).model_dump() for m in movements])


@router.post("/orders/{order_id}/return", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def return_order_endpoint(order_id: UUID):
    """Books 'return' movements for the items of a returned order."""
    movements = await record_order_return(order_id)
    return SuccessResponse(data=[MovementOut.from_movement(m).model_dump() for m in movements])
