import base64
import hashlib
import hmac
import json

import pytest
import requests

from app.core.config import Settings
from app.core.errors import GatewayError
from app.gateways.base import PAYMENT_FAILED, PAYMENT_SUCCESS, REFUND, Customer, hmac_sha256_hex
from app.gateways.cashfree_gateway import CashfreeGateway
from app.gateways.factory import build_gateway
from app.gateways.razorpay_gateway import RazorpayGateway

CUSTOMER = Customer(customer_id="guest_9876543210", name="Asha", email="asha@example.com", phone="9876543210")


# ---------------------------------------------------------------------
# RAZORPAY
# ---------------------------------------------------------------------
@pytest.fixture
def razorpay_gateway():
    return RazorpayGateway("rzp_test_key", "key_secret", webhook_secret="hook_secret")


def test_razorpay_payment_signature(razorpay_gateway):
    good = hmac_sha256_hex("key_secret", b"order_1|pay_1")
    assert razorpay_gateway.verify_payment_signature("order_1", "pay_1", good)
    assert not razorpay_gateway.verify_payment_signature("order_1", "pay_2", good)
    assert not razorpay_gateway.verify_payment_signature("order_1", "pay_1", None)


def test_razorpay_webhook_signature_uses_webhook_secret(razorpay_gateway):
    body = b'{"event":"payment.captured"}'
    assert razorpay_gateway.verify_webhook_signature(
        body, {"x-razorpay-signature": hmac_sha256_hex("hook_secret", body)}
    )
    assert not razorpay_gateway.verify_webhook_signature(
        body, {"x-razorpay-signature": hmac_sha256_hex("key_secret", body)}
    )
    assert not RazorpayGateway("k", "s").verify_webhook_signature(body, {"x-razorpay-signature": "x"})


@pytest.mark.parametrize("event, kind", [
    ("payment.captured", PAYMENT_SUCCESS),
    ("order.paid", PAYMENT_SUCCESS),
    ("payment.failed", PAYMENT_FAILED),
    ("refund.processed", REFUND),
    ("payment.authorized", None),
])
def test_razorpay_event_classification(razorpay_gateway, event, kind):
    assert razorpay_gateway.parse_webhook({"event": event, "payload": {}}).kind == kind


def test_razorpay_parses_card_payment(razorpay_gateway):
    event = razorpay_gateway.parse_webhook({
        "event": "payment.captured",
        "payload": {"payment": {"entity": {
            "id": "pay_1",
            "order_id": "order_1",
            "status": "captured",
            "amount": 1999,
            "currency": "INR",
            "method": "card",
            "card": {"last4": "1111", "network": "Visa", "type": "credit", "issuer": "HDFC"},
        }}},
    })
    assert event.order_id == "order_1"
    assert event.payment.captured is True
    assert event.payment.amount == 1999
    assert event.payment.details["card_last4"] == "1111"
    assert event.payment.details["card_network"] == "Visa"


def test_razorpay_refund_status_mapping(razorpay_gateway):
    event = razorpay_gateway.parse_webhook({
        "event": "refund.created",
        "payload": {"refund": {"entity": {"id": "rfnd_1", "payment_id": "pay_1", "amount": 500, "status": "pending"}}},
    })
    assert event.refund.status == "initiated"
    assert event.refund.payment_id == "pay_1"


def test_razorpay_errors_become_gateway_errors(razorpay_gateway, monkeypatch):
    from razorpay.errors import BadRequestError

    def reject(*args, **kwargs):
        raise BadRequestError("The refund amount provided is greater than amount captured")

    monkeypatch.setattr(razorpay_gateway.client.payment, "refund", reject)
    with pytest.raises(GatewayError) as exc:
        razorpay_gateway.create_refund("order_1", "pay_1", 5000, "KH-RF-1", "test")
    assert "greater than" in exc.value.message


# ---------------------------------------------------------------------
# CASHFREE
# ---------------------------------------------------------------------
class FakeResponse:
    def __init__(self, status_code, data):
        self.status_code = status_code
        self._data = data

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        return self._data


@pytest.fixture
def cashfree_gateway():
    return CashfreeGateway("cf_app", "cf_secret", environment="sandbox")


def test_cashfree_create_order(cashfree_gateway, monkeypatch):
    sent = {}

    def fake_request(method, url, json=None, timeout=None):
        sent.update(method=method, url=url, json=json, timeout=timeout)
        return FakeResponse(200, {"order_id": "KH-1", "payment_session_id": "session_abc"})

    monkeypatch.setattr(cashfree_gateway.session, "request", fake_request)

    order = cashfree_gateway.create_order("KH-1", 1999, "INR", CUSTOMER, "https://api.example.com/api/webhook")

    assert order.order_id == "KH-1"
    assert order.session_handle == "session_abc"
    assert sent["url"] == "https://sandbox.cashfree.com/pg/orders"
    assert sent["json"]["order_amount"] == 19.99
    assert sent["json"]["order_meta"]["notify_url"] == "https://api.example.com/api/webhook"
    assert sent["json"]["order_meta"]["payment_methods"] == "cc,dc,upi,nb,app"
    assert sent["timeout"] == 15


def test_cashfree_error_message_is_forwarded(cashfree_gateway, monkeypatch):
    monkeypatch.setattr(
        cashfree_gateway.session,
        "request",
        lambda *a, **kw: FakeResponse(400, {"message": "order_meta.notify_url : url should be https"}),
    )
    with pytest.raises(GatewayError) as exc:
        cashfree_gateway.create_order("KH-1", 1999, "INR", CUSTOMER, "http://localhost/api/webhook")
    assert exc.value.message == "order_meta.notify_url : url should be https"


def test_cashfree_timeout(cashfree_gateway, monkeypatch):
    def timeout(*args, **kwargs):
        raise requests.Timeout()

    monkeypatch.setattr(cashfree_gateway.session, "request", timeout)
    with pytest.raises(GatewayError):
        cashfree_gateway.fetch_payment("KH-1", "123")


def test_cashfree_webhook_signature(cashfree_gateway):
    body = json.dumps({"type": "PAYMENT_SUCCESS_WEBHOOK"}).encode()
    digest = hmac.new(b"cf_secret", b"1700000000" + body, hashlib.sha256).digest()
    headers = {
        "x-webhook-timestamp": "1700000000",
        "x-webhook-signature": base64.b64encode(digest).decode(),
    }
    assert cashfree_gateway.verify_webhook_signature(body, headers)
    assert not cashfree_gateway.verify_webhook_signature(body + b" ", headers)


def test_cashfree_payment_webhook(cashfree_gateway):
    event = cashfree_gateway.parse_webhook({
        "type": "PAYMENT_SUCCESS_WEBHOOK",
        "data": {
            "order": {"order_id": "KH-1"},
            "payment": {
                "cf_payment_id": 555,
                "payment_status": "SUCCESS",
                "payment_amount": 19.99,
                "payment_currency": "INR",
                "payment_group": "upi",
                "payment_method": {"upi": {"upi_id": "asha@okbank"}},
            },
            "customer_details": {"customer_email": "asha@example.com", "customer_phone": "9876543210"},
        },
    })
    assert event.kind == PAYMENT_SUCCESS
    assert event.order_id == "KH-1"
    assert event.payment.payment_id == "555"
    assert event.payment.amount == 1999
    assert event.payment.captured is True
    assert event.payment.details["upi_vpa"] == "asha@okbank"
    assert event.payment.email == "asha@example.com"


def test_cashfree_refund_webhook(cashfree_gateway):
    event = cashfree_gateway.parse_webhook({
        "type": "REFUND_STATUS_WEBHOOK",
        "data": {"refund": {
            "refund_id": "KH-RF-1",
            "order_id": "KH-1",
            "cf_payment_id": 555,
            "refund_amount": 19.99,
            "refund_status": "SUCCESS",
        }},
    })
    assert event.kind == REFUND
    assert event.order_id == "KH-1"
    assert event.refund.status == "processed"
    assert event.refund.amount == 1999


def test_cashfree_has_no_client_signature(cashfree_gateway):
    assert cashfree_gateway.requires_payment_signature is False
    assert cashfree_gateway.verify_payment_signature("KH-1", "555", None)


# ---------------------------------------------------------------------
# FACTORY
# ---------------------------------------------------------------------
def _settings(**values):
    settings = Settings()
    for key, value in values.items():
        setattr(settings, key, value)
    return settings


def test_factory_builds_configured_provider():
    gateway = build_gateway(_settings(PAYMENT_PROVIDER="razorpay", RAZORPAY_KEY_ID="k", RAZORPAY_KEY_SECRET="s"))
    assert isinstance(gateway, RazorpayGateway)

    gateway = build_gateway(_settings(PAYMENT_PROVIDER="cashfree", CASHFREE_APP_ID="a", CASHFREE_SECRET_KEY="s"))
    assert isinstance(gateway, CashfreeGateway)


def test_factory_without_credentials():
    assert build_gateway(_settings(PAYMENT_PROVIDER="razorpay", RAZORPAY_KEY_ID=None, RAZORPAY_KEY_SECRET=None)) is None
    assert build_gateway(_settings(PAYMENT_PROVIDER="stripe")) is None
