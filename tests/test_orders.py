import pytest

from app.models.order import Order
from app.models.payment import Payment

from conftest import sign_payment, verify


@pytest.fixture
def order_data():
    return {
        "customer_name": "Ravi Kumar",
        "customer_email": "Ravi@Example.com",
        "customer_phone": "91 91234 56780",
        "customer_address": "12 MG Road, Bengaluru",
        "items": [
            {"name": "Resin Art Kit", "quantity": 2, "unit_price": "249.50"},
            {"name": "Tufting Frame", "quantity": 1, "unit_price": 800, "total": 800},
        ],
        "subtotal": "1299",
    }


def _create(client, order_data, amount="1299"):
    return client.post("/api/create-diy-order", json={"amount": amount, "order_data": order_data})


def test_create_diy_order(client, db, gateway, order_data):
    response = _create(client, order_data)

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["amount"] == 129900
    assert body["session_id"]

    order = db.get(Order, body["db_order_id"])
    assert order.payment_status == "pending_payment"
    assert order.delivery_status == "order_confirmed"
    assert order.customer_email == "ravi@example.com"
    assert order.customer_phone == "9123456780"
    assert order.items[0] == {"name": "Resin Art Kit", "quantity": 2, "unit_price": 24950, "total": 49900}
    assert order.subtotal == 129900
    assert gateway.orders[body["order_id"]]["notes"] == {"order_type": "diy_kit"}


@pytest.mark.parametrize("field, value", [
    ("items", []),
    ("customer_address", "   "),
    ("customer_name", None),
])
def test_missing_order_details(client, db, gateway, order_data, field, value):
    order_data[field] = value
    response = _create(client, order_data)

    assert response.status_code == 400
    assert response.json()["message"] == "Missing required order details"
    assert gateway.orders == {}
    assert db.query(Order).count() == 0


def test_gateway_failure_persists_nothing(client, db, gateway, order_data):
    gateway.create_error = "Authentication key was missing during initialization"

    response = _create(client, order_data)

    assert response.status_code == 500
    assert response.json()["message"] == "Authentication key was missing during initialization"
    assert db.query(Order).count() == 0


def test_verify_and_list_diy_orders(client, db, gateway, order_data):
    paid = _create(client, order_data).json()
    unpaid = _create(client, order_data).json()

    payment_id, _ = gateway.pay(paid["order_id"], method="card")
    response = verify(client, paid["order_id"], payment_id, path="/api/verify-diy-payment")
    assert response.status_code == 200
    assert response.json()["order"]["payment_status"] == "paid"

    record = db.query(Payment).one()
    assert record.order_type == "diy"
    assert record.items[1]["name"] == "Tufting Frame"

    status = client.get(f"/api/check-diy-payment-status/{unpaid['order_id']}").json()
    assert status["payment_status"] == "pending_payment"

    mine = client.get("/api/my-diy-orders", params={"email": "ravi@example.com"}).json()
    assert [o["id"] for o in mine["orders"]] == [paid["db_order_id"]]


def test_diy_verify_does_not_match_bookings(client, gateway, slot_details):
    created = client.post("/api/create-order", json={"amount": "10", "slot_details": slot_details}).json()
    payment_id, _ = gateway.pay(created["order_id"])

    response = client.post("/api/verify-diy-payment", json={
        "order_id": created["order_id"],
        "payment_id": payment_id,
        "signature": sign_payment(created["order_id"], payment_id),
    })
    assert response.status_code == 404
    assert response.json()["message"] == "Order not found"


def test_my_diy_orders_needs_identity(client):
    assert client.get("/api/my-diy-orders").status_code == 401
