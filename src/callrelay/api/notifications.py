"""Push notification API endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from callrelay.api.deps import require_access_token
from callrelay.errors import TransportFailure

router = APIRouter()


class SendNotificationRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel)

    receiver_id: str = Field(min_length=1)
    session_id: str = Field(min_length=1)
    sender_id: str | None = None
    title: str | None = None
    body: str | None = None


@router.get("/vapid-public-key")
async def vapid_public_key(request: Request) -> dict:
    """Return the VAPID application server key."""
    return {"publicKey": request.app.state.vapid_public_key}


@router.post(
    "/send-notification",
    dependencies=[Depends(require_access_token)],
)
async def send_notification(
    body: SendNotificationRequest,
    request: Request,
) -> dict:
    """Push a call notification to a registered receiver."""
    dispatcher = request.app.state.dispatcher
    try:
        result = await dispatcher.dispatch(
            receiver_id=body.receiver_id,
            session_id=body.session_id,
            sender_id=body.sender_id,
            title=body.title,
            body=body.body,
        )
    except TransportFailure as exc:
        raise HTTPException(status_code=500, detail=exc.message) from exc
    return {
        "success": True,
        "message": "Notification sent",
        "sessionId": result.session_id,
    }
