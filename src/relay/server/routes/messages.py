"""Message routes: channels, immediate send and scheduled deliveries."""

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from relay.runtime import Runtime
from relay.server.deps import get_runtime

router = APIRouter()


class SendRequest(BaseModel):
    team_id: str
    user_id: str
    channel_id: str
    message: str = Field(min_length=1)


class ScheduleRequest(SendRequest):
    channel_name: str | None = None
    scheduled_time: datetime


@router.get("/channels")
async def list_channels(
    team_id: str = Query(...),
    user_id: str = Query(...),
    runtime: Runtime = Depends(get_runtime),
) -> dict[str, Any]:
    channels = await runtime.service.list_channels(team_id, user_id)
    return {
        "success": True,
        "channels": [
            {
                "id": c.id,
                "name": c.name,
                "is_private": c.is_private,
                "is_im": c.is_im,
                "is_mpim": c.is_mpim,
            }
            for c in channels
        ],
    }


@router.post("/send")
async def send_message(
    body: SendRequest, runtime: Runtime = Depends(get_runtime)
) -> dict[str, Any]:
    result = await runtime.service.send_now(
        body.team_id, body.user_id, body.channel_id, body.message
    )
    return {"success": True, "message_id": result.message_id}


@router.post("/schedule")
async def schedule_message(
    body: ScheduleRequest, runtime: Runtime = Depends(get_runtime)
) -> dict[str, Any]:
    delivery_id = await runtime.service.schedule_delivery(
        body.team_id,
        body.user_id,
        body.channel_id,
        body.channel_name,
        body.message,
        body.scheduled_time,
    )
    return {"success": True, "id": delivery_id}


@router.get("/scheduled")
async def list_scheduled(
    team_id: str = Query(...),
    user_id: str = Query(...),
    runtime: Runtime = Depends(get_runtime),
) -> dict[str, Any]:
    deliveries = await runtime.service.list_deliveries(team_id, user_id)
    return {"success": True, "messages": [d.to_dict() for d in deliveries]}


@router.delete("/scheduled/{delivery_id}", response_model=None)
async def cancel_scheduled(
    delivery_id: int,
    team_id: str = Query(...),
    user_id: str = Query(...),
    runtime: Runtime = Depends(get_runtime),
) -> dict[str, Any] | JSONResponse:
    if not await runtime.service.cancel_delivery(delivery_id, team_id, user_id):
        return JSONResponse(
            status_code=404,
            content={
                "success": False,
                "error": "Scheduled message not found or already processed",
            },
        )
    return {"success": True}
