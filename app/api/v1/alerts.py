from fastapi import APIRouter
from app.schemas.alert import AlertOut, MarkReadRequest
from app.schemas.response import SuccessResponse
from app.services.alerts import list_alerts, mark_read

router = APIRouter()


@router.get("", response_model=SuccessResponse)
async def list_alerts_endpoint(unread: bool = False):
    alerts = await list_alerts(unread_only=unread)
    return SuccessResponse(data=[AlertOut.from_alert(a).model_dump() for a in alerts])


@router.put("/read", response_model=SuccessResponse)
async def mark_read_endpoint(payload: MarkReadRequest):
    """Marks the given alerts (or every unread alert with "all") as read."""
    updated = await mark_read(payload.ids)
    return SuccessResponse(data={"updated": updated})
