"""
Push notification tests.
"""
import json

import pytest
from pywebpush import WebPushException

from scoreboard.core.exceptions import PushDeliveryError
from scoreboard.schemas.notification import PushSubscription
from scoreboard.services import push as push_module
from scoreboard.services.push import PushService

SUBSCRIPTION = {
    "endpoint": "https://push.example.com/send/abc",
    "expirationTime": None,
    "keys": {"p256dh": "client-public-key", "auth": "client-auth"},
}


@pytest.fixture
def sent(monkeypatch):
    """Capture webpush calls instead of sending them."""
    calls = []

    def fake_webpush(**kwargs):
        calls.append(kwargs)

    monkeypatch.setattr(push_module, "webpush", fake_webpush)
    return calls


def test_send_signs_with_vapid_key(sent):
    service = PushService(private_key="private-key", claims_subject="mailto:admin@example.com")
    service.send(PushSubscription.model_validate(SUBSCRIPTION), {"title": "Mock 3", "body": "Results are up"})

    [call] = sent
    assert call["subscription_info"] == {
        "endpoint": SUBSCRIPTION["endpoint"],
        "keys": SUBSCRIPTION["keys"],
    }
    assert json.loads(call["data"]) == {"title": "Mock 3", "body": "Results are up"}
    assert call["vapid_private_key"] == "private-key"
    assert call["vapid_claims"] == {"sub": "mailto:admin@example.com"}


def test_missing_private_key(sent):
    with pytest.raises(PushDeliveryError):
        PushService(private_key="").send(PushSubscription.model_validate(SUBSCRIPTION), "hi")
    assert sent == []


def test_push_service_failure_not_retried(monkeypatch):
    calls = []

    def rejecting_webpush(**kwargs):
        calls.append(kwargs)
        raise WebPushException("Push failed: 410 Gone")

    monkeypatch.setattr(push_module, "webpush", rejecting_webpush)

    with pytest.raises(PushDeliveryError):
        PushService(private_key="private-key").send(PushSubscription.model_validate(SUBSCRIPTION), "hi")
    assert len(calls) == 1


def test_send_endpoint(client, sent, monkeypatch):
    monkeypatch.setattr(push_module.settings, "VAPID_PRIVATE_KEY", "private-key")

    response = client.post(
        "/api/v1/notifications/send",
        json={"subscription": SUBSCRIPTION, "payload": {"title": "New schedule"}},
    )

    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert len(sent) == 1


def test_send_endpoint_failure(client, monkeypatch):
    def rejecting_webpush(**kwargs):
        raise WebPushException("Push failed")

    monkeypatch.setattr(push_module, "webpush", rejecting_webpush)
    monkeypatch.setattr(push_module.settings, "VAPID_PRIVATE_KEY", "private-key")

    response = client.post(
        "/api/v1/notifications/send",
        json={"subscription": SUBSCRIPTION, "payload": "hello"},
    )

    assert response.status_code == 500
    assert response.json()["error"]["code"] == "PUSH_FAILED"


def test_vapid_public_key(client, monkeypatch):
    monkeypatch.setattr(push_module.settings, "VAPID_PUBLIC_KEY", "public-key")
    response = client.get("/api/v1/notifications/vapid-public-key")
    assert response.json() == {"public_key": "public-key"}
