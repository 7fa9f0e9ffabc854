"""Push notification schemas."""

from typing import Any

from pydantic import Field

from scoreboard.schemas.common import BaseSchema


class PushSubscriptionKeys(BaseSchema):
    """Keys of a browser PushSubscription."""

    p256dh: str
    auth: str


class PushSubscription(BaseSchema):
    """Browser PushSubscription as serialized by toJSON()."""

    endpoint: str
    expiration_time: int | None = Field(None, alias="expirationTime")
    keys: PushSubscriptionKeys


class PushSendRequest(BaseSchema):
    """Request to deliver one push message."""

    subscription: PushSubscription
    payload: Any = None


class PushSendResponse(BaseSchema):
    """Push delivery result."""

    success: bool = True


class VapidPublicKeyResponse(BaseSchema):
    """Public key browsers use to subscribe."""

    public_key: str | None
