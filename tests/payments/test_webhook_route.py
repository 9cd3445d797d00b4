"""
HTTP contract of POST/OPTIONS /payments/webhook.
"""
import time
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from app.api.routes.payment_webhook import get_webhook_service
from app.core.config import settings
from app.main import app
from app.models.payment import Payment
from app.models.subscription import Subscription
from app.services.payments.service import PaymentWebhookService

URL = "/payments/webhook"


@pytest.fixture
def client(session_factory):
    service = PaymentWebhookService(session_factory=session_factory, settings=settings, dispatch=MagicMock())
    app.dependency_overrides[get_webhook_service] = lambda: service
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _post(client, raw: bytes, signature: str | None):
    headers = {"Content-Type": "application/json"}
    if signature is not None:
        headers["X-Lenco-Signature"] = signature
    return client.post(URL, content=raw, headers=headers)


def test_preflight_is_answered_with_cors_headers(client):
    resp = client.options(URL)

    assert resp.status_code == 200
    assert resp.headers["access-control-allow-origin"] == "*"
    assert "content-type" in resp.headers["access-control-allow-headers"]


def test_success_returns_ack(client, seed, sign, db):
    seed(Payment(id="pay_123", user_id="u1", amount=Decimal("150"), product_type="subscription", status="pending"))
    raw, signature = sign({"event": "charge.success", "data": {"reference": "pay_123", "status": "success"}})

    resp = _post(client, raw, signature)

    assert resp.status_code == 200
    assert resp.json() == {"success": True, "status": "completed", "paymentId": "pay_123"}
    assert db.query(Subscription).filter_by(user_id="u1", plan="pro", status="active").count() == 1


def test_tampered_signature_is_401(client, seed, sign, db):
    seed(Payment(id="pay_123", user_id="u1", amount=Decimal("150"), product_type="subscription", status="pending"))
    raw, signature = sign({"event": "charge.success", "data": {"reference": "pay_123", "status": "success"}})

    resp = _post(client, raw, signature[::-1])

    assert resp.status_code == 401
    assert resp.json() == {"error": "Invalid signature"}
    assert resp.headers["access-control-allow-origin"] == "*"
    assert db.get(Payment, "pay_123").status == "pending"
    assert db.query(Subscription).count() == 0


def test_unsigned_request_is_401(client, sign):
    raw, _ = sign({"reference": "pay_123", "status": "success"})
    assert _post(client, raw, None).status_code == 401


def test_unknown_payment_is_404(client, sign):
    raw, signature = sign({"reference": "nope", "status": "success"})
    resp = _post(client, raw, signature)
    assert resp.status_code == 404
    assert "error" in resp.json()


def test_non_json_body_is_400(client, sign):
    raw, signature = sign(b"not json")
    assert _post(client, raw, signature).status_code == 400


def test_deadline_overrun_is_503(client, sign):
    slow = MagicMock()
    slow.handle.side_effect = lambda *_: time.sleep(0.5)
    app.dependency_overrides[get_webhook_service] = lambda: slow
    raw, signature = sign({"reference": "pay_123", "status": "success"})

    with patch.object(settings, "webhook_deadline_seconds", 0.05):
        resp = _post(client, raw, signature)

    assert resp.status_code == 503


def test_health():
    assert TestClient(app).get("/health").json() == {"status": "ok"}
