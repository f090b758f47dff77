"""
Test setup: in-memory SQLite, no Redis, and a fake gateway that keeps orders,
payments and refunds in memory while signing exactly like Razorpay does.
"""
import os

# Set before any app import; settings are read once
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ADMIN_EMAILS"] = "admin@example.com"
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ.pop("REDIS_URL", None)
os.environ.pop("PUBLIC_BASE_URL", None)

import itertools
import json
from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.dependencies import get_db, get_gateway
from app.core.errors import GatewayError
from app.db.session import Base, enable_sqlite_savepoints
from app.gateways.base import GatewayOrder, GatewayPayment, GatewayRefund, hmac_sha256_hex
from app.gateways.razorpay_gateway import RazorpayGateway
from app.main import app
from app.models import booking, cart, catalogue, order, payment, user  # noqa: F401

KEY_SECRET = "test_key_secret"
WEBHOOK_SECRET = "test_webhook_secret"


class FakeGateway(RazorpayGateway):
    """Razorpay signature checks and webhook parsing, in-memory API calls."""

    def __init__(self):
        super().__init__("rzp_test_key", KEY_SECRET, webhook_secret=WEBHOOK_SECRET, timeout=1)
        self._ids = itertools.count(1)
        self.orders = {}
        self.payments = {}
        self.refunds = {}
        self.create_error = None
        self.refund_error = None
        self.history_error = None

    def _next(self, prefix: str) -> str:
        return f"{prefix}_{next(self._ids):04d}"

    # ----- API -----
    def create_order(self, bill_id, amount, currency, customer, notify_url,
                     return_url=None, notes=None):
        if self.create_error:
            raise GatewayError(self.create_error)
        order_id = self._next("order")
        self.orders[order_id] = {
            "id": order_id,
            "receipt": bill_id,
            "amount": amount,
            "currency": currency,
            "customer": customer,
            "notify_url": notify_url,
            "notes": notes or {},
        }
        return GatewayOrder(order_id=order_id, session_handle=f"session_{order_id}", raw=self.orders[order_id])

    def fetch_payment(self, order_id, payment_id):
        if payment_id not in self.payments:
            raise GatewayError("The id provided does not exist")
        return self.payments[payment_id]

    def create_refund(self, order_id, payment_id, amount, refund_id, note):
        if self.refund_error:
            raise GatewayError(self.refund_error)
        refund = GatewayRefund(
            refund_id=self._next("rfnd"),
            amount=amount,
            status="initiated",
            payment_id=payment_id,
            order_id=order_id,
            raw={"receipt": refund_id, "note": note},
        )
        self.refunds.setdefault(order_id, []).append(refund)
        return refund

    def list_refunds(self, order_id, payment_id=None):
        if self.history_error:
            raise GatewayError(self.history_error)
        return list(self.refunds.get(order_id, []))

    # ----- helpers for tests -----
    def pay(self, order_id, captured=True, method="upi", amount=None, payment_id=None):
        """Simulate the customer paying on the checkout page."""
        payment_id = payment_id or self._next("pay")
        entity = {
            "id": payment_id,
            "order_id": order_id,
            "status": "captured" if captured else "failed",
            "amount": amount if amount is not None else self.orders[order_id]["amount"],
            "currency": "INR",
            "method": method,
            "email": "asha@example.com",
            "contact": "+919876543210",
            "vpa": "asha@okbank" if method == "upi" else None,
        }
        self.payments[payment_id] = GatewayPayment(
            payment_id=payment_id,
            order_id=order_id,
            status=entity["status"],
            captured=captured,
            amount=entity["amount"],
            currency="INR",
            method=method,
            email=entity["email"],
            contact=entity["contact"],
            details={"upi_vpa": entity["vpa"]},
            raw=entity,
        )
        return payment_id, entity


def sign_payment(order_id: str, payment_id: str) -> str:
    return hmac_sha256_hex(KEY_SECRET, f"{order_id}|{payment_id}".encode("utf-8"))


def signed_webhook(payload: dict, secret: str = WEBHOOK_SECRET):
    body = json.dumps(payload).encode("utf-8")
    return body, {
        "x-razorpay-signature": hmac_sha256_hex(secret, body),
        "content-type": "application/json",
    }


def payment_event(event: str, entity: dict) -> dict:
    return {"event": event, "payload": {"payment": {"entity": entity}}}


def refund_event(event: str, refund_id: str, payment_id: str, amount: int, status: str) -> dict:
    return {
        "event": event,
        "payload": {
            "refund": {
                "entity": {
                    "id": refund_id,
                    "payment_id": payment_id,
                    "amount": amount,
                    "status": status,
                }
            }
        },
    }


# ---------------------------------------------------------------------
# FIXTURES
# ---------------------------------------------------------------------
@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSession = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = TestingSession()
    yield session
    session.close()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def client(db, gateway):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_gateway] = lambda: gateway
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def booking_day():
    return date.today() + timedelta(days=7)


@pytest.fixture
def slot_details(booking_day):
    return {
        "customer_name": "Asha Rao",
        "customer_email": "asha@example.com",
        "customer_phone": "+91 98765 43210",
        "booking_date": booking_day.isoformat(),
        "booking_time_slot": "11am-1pm",
        "selected_activities": ["Jewelry Making"],
        "participants": 2,
    }


# ---------------------------------------------------------------------
# ROW / FLOW HELPERS
# ---------------------------------------------------------------------
_bill_numbers = itertools.count(1)


def add_booking(db, **overrides):
    """Insert a booking row directly, bypassing the gateway."""
    from app.models.booking import Booking

    n = next(_bill_numbers)
    values = {
        "internal_bill_id": f"KH-TEST-{n:04d}",
        "gateway_provider": "razorpay",
        "gateway_order_id": f"order_row_{n:04d}",
        "amount": 1999,
        "currency": "INR",
        "payment_status": "pending_payment",
        "status": "pending",
        "user_email": "asha@example.com",
        "user_name": "Asha Rao",
        "user_phone": "9876543210",
        "activity_name": "Jewelry Making",
        "selected_activities": ["Jewelry Making"],
        "booking_date": date.today() + timedelta(days=7),
        "booking_time_slot": "11am-1pm",
        "participants": 1,
    }
    values.update(overrides)
    row = Booking(**values)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def create_booking(client, slot_details, amount="19.99", headers=None):
    response = client.post(
        "/api/create-order",
        json={"amount": amount, "slot_details": slot_details},
        headers=headers or {},
    )
    assert response.status_code == 200, response.text
    return response.json()


def verify(client, order_id, payment_id, signature=None, path="/api/verify-payment"):
    return client.post(path, json={
        "razorpay_order_id": order_id,
        "razorpay_payment_id": payment_id,
        "razorpay_signature": signature or sign_payment(order_id, payment_id),
    })


def create_paid_booking(client, gateway, slot_details, amount="19.99"):
    created = create_booking(client, slot_details, amount=amount)
    payment_id, entity = gateway.pay(created["order_id"])
    response = verify(client, created["order_id"], payment_id)
    assert response.status_code == 200, response.text
    return created, payment_id, entity
