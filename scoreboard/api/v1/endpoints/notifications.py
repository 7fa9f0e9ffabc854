"""Push notification endpoints."""

from fastapi import APIRouter

from scoreboard.core.config import settings
from scoreboard.schemas.notification import (
    PushSendRequest,
    PushSendResponse,
    VapidPublicKeyResponse,
)
from scoreboard.services.push import PushService

router = APIRouter()


@router.post("/send", response_model=PushSendResponse)
def send_notification(request: PushSendRequest):
    """
    Send one push message to a browser subscription.
    Failures are logged and reported as PUSH_FAILED; nothing is retried.
    """
    PushService().send(request.subscription, request.payload)
    return PushSendResponse(success=True)


@router.get("/vapid-public-key", response_model=VapidPublicKeyResponse)
def get_vapid_public_key():
    """Public VAPID key browsers need to create a subscription."""
    return VapidPublicKeyResponse(public_key=settings.VAPID_PUBLIC_KEY)
