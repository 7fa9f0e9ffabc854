"""Browser push notifications signed with the VAPID keypair."""

import json
import logging
from typing import Any

from pywebpush import WebPushException, webpush

from scoreboard.core.config import settings
from scoreboard.core.exceptions import PushDeliveryError
from scoreboard.schemas.notification import PushSubscription

logger = logging.getLogger(__name__)


class PushService:
    """Sends one push message per call; no retry."""

    def __init__(
        self,
        private_key: str | None = None,
        claims_subject: str | None = None,
    ):
        self.private_key = private_key if private_key is not None else settings.VAPID_PRIVATE_KEY
        self.claims_subject = claims_subject or settings.VAPID_CLAIMS_SUBJECT

    def send(self, subscription: PushSubscription, payload: Any) -> None:
        """Deliver ``payload`` (JSON encoded) to ``subscription``."""
        if not self.private_key:
            logger.error("Push notification requested but VAPID_PRIVATE_KEY is not configured")
            raise PushDeliveryError()

        subscription_info = {
            "endpoint": subscription.endpoint,
            "keys": {
                "p256dh": subscription.keys.p256dh,
                "auth": subscription.keys.auth,
            },
        }
        try:
            webpush(
                subscription_info=subscription_info,
                data=json.dumps(payload),
                vapid_private_key=self.private_key,
                vapid_claims={"sub": self.claims_subject},
            )
        except WebPushException as e:
            status_code = e.response.status_code if e.response is not None else None
            logger.error(f"Error sending notification to {subscription.endpoint}: {e} (status={status_code})")
            raise PushDeliveryError()
        except Exception:
            logger.exception(f"Error sending notification to {subscription.endpoint}")
            raise PushDeliveryError()

        logger.info(f"Push notification sent to {subscription.endpoint}")
