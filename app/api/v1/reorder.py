import logging
from uuid import UUID
from fastapi import APIRouter, status
from app.schemas.reorder import (
    ReorderCheckResponse,
    ReorderRuleCreate,
    ReorderRuleOut,
    ReorderRuleUpdate,
)
from app.schemas.response import SuccessResponse
from app.services.reorder import create_rule, list_rules, run_reorder_check, update_rule

log = logging.getLogger(__name__)

router = APIRouter()


@router.post("/check", response_model=SuccessResponse)
async def reorder_check_endpoint():
    """
    Sweeps all inventory lines against the active reorder rules and returns
    purchasing suggestions. Lines that need a reorder also get an alert.
    """
    result = await run_reorder_check()
    return SuccessResponse(data=ReorderCheckResponse(**result).model_dump())


@router.get("/rules", response_model=SuccessResponse)
async def list_rules_endpoint(active_only: bool = False):
    rules = await list_rules(active_only=active_only)
    return SuccessResponse(data=[ReorderRuleOut.model_validate(r).model_dump() for r in rules])


@router.post("/rules", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def create_rule_endpoint(payload: ReorderRuleCreate):
    rule = await create_rule(payload.model_dump())
    return SuccessResponse(data=ReorderRuleOut.model_validate(rule).model_dump())


@router.patch("/rules/{rule_id}", response_model=SuccessResponse)
async def update_rule_endpoint(rule_id: UUID, payload: ReorderRuleUpdate):
    rule = await update_rule(rule_id, payload.model_dump(exclude_unset=True))
    log.info(f"Reorder rule {rule.id} updated.")
    return SuccessResponse(data=ReorderRuleOut.model_validate(rule).model_dump())
