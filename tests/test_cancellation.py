import pytest

from app.core.config import get_settings
from app.core.errors import (
    AlreadyCancelled,
    GatewayError,
    NothingToRefund,
    NotFound,
    NotRefundable,
    RefundExceedsBalance,
)
from app.gateways.base import GatewayRefund
from app.models.booking import Booking
from app.models.payment import Payment
from app.models.user import User
from app.services.cancellation import cancel_booking, refundable_remainder

from conftest import add_booking, create_paid_booking


def _paid_row(db, **overrides):
    values = dict(payment_status="paid", status="confirmed", gateway_payment_id="pay_row_1")
    values.update(overrides)
    return add_booking(db, **values)


# ----- preconditions, in order -----
def test_unknown_booking(db, gateway):
    with pytest.raises(NotFound):
        cancel_booking(db, gateway, get_settings(), 424242)


@pytest.mark.parametrize("payment_status", ["pending_payment", "failed", "refunded"])
def test_only_paid_bookings_are_refundable(db, gateway, payment_status):
    # also cancelled: NotRefundable is checked before AlreadyCancelled
    row = add_booking(db, payment_status=payment_status, status="cancelled")
    with pytest.raises(NotRefundable):
        cancel_booking(db, gateway, get_settings(), row.id)
    assert gateway.refunds == {}


def test_already_cancelled(db, gateway):
    row = _paid_row(db, status="cancelled")
    with pytest.raises(AlreadyCancelled):
        cancel_booking(db, gateway, get_settings(), row.id)
    assert gateway.refunds == {}


# ----- refundable remainder -----
def test_remainder_prefers_gateway_history(db, gateway):
    row = _paid_row(db)
    gateway.refunds[row.gateway_order_id] = [
        GatewayRefund(refund_id="rfnd_1", amount=500, status="processed"),
        GatewayRefund(refund_id="rfnd_2", amount=300, status="failed"),
    ]
    assert refundable_remainder(db, gateway, row) == 1499


def test_remainder_falls_back_to_ledger(db, gateway):
    row = _paid_row(db)
    db.add(Payment(
        gateway_provider="razorpay",
        gateway_payment_id="pay_row_1",
        gateway_order_id=row.gateway_order_id,
        internal_bill_id=row.internal_bill_id,
        order_type="booking",
        amount=1999,
        refund_amount=999,
        refund_ids=["rfnd_old"],
        items=[],
    ))
    db.commit()
    gateway.history_error = "history unavailable"

    assert refundable_remainder(db, gateway, row) == 1000


def test_remainder_falls_back_to_booking(db, gateway):
    row = _paid_row(db, refund_amount=199)
    assert refundable_remainder(db, gateway, row) == 1800


def test_nothing_to_refund(db, gateway):
    row = _paid_row(db)
    gateway.refunds[row.gateway_order_id] = [GatewayRefund(refund_id="rfnd_all", amount=1999, status="processed")]

    with pytest.raises(NothingToRefund):
        cancel_booking(db, gateway, get_settings(), row.id)

    db.expire_all()
    assert db.get(Booking, row.id).status == "confirmed"


# ----- gateway failures -----
def test_exceeds_message_maps_to_refund_exceeds_balance(db, gateway):
    row = _paid_row(db)
    gateway.refund_error = "The refund amount provided is greater than amount captured"

    with pytest.raises(RefundExceedsBalance):
        cancel_booking(db, gateway, get_settings(), row.id)

    db.expire_all()
    fresh = db.get(Booking, row.id)
    assert fresh.status == "confirmed"
    assert fresh.refund_status == "none"
    assert fresh.refund_amount == 0


def test_other_gateway_errors_surface_unchanged(db, gateway):
    row = _paid_row(db)
    gateway.refund_error = "Authentication failed"

    with pytest.raises(GatewayError) as exc:
        cancel_booking(db, gateway, get_settings(), row.id)

    assert exc.value.message == "Authentication failed"
    db.expire_all()
    assert db.get(Booking, row.id).status == "confirmed"


# ----- success -----
def test_cancel_refunds_remainder_and_updates_ledger(client, db, gateway, slot_details):
    created, payment_id, _ = create_paid_booking(client, gateway, slot_details)

    booking, refunds = cancel_booking(db, gateway, get_settings(), created["booking_id"], reason="  ")
    refund, = refunds

    assert refund.amount == 1999
    assert booking.status == "cancelled"
    assert booking.refund_status == "initiated"
    assert booking.refund_amount == 1999
    assert booking.refund_reason == "Customer requested cancellation"
    assert booking.refund_initiated_at is not None
    assert booking.payment_status == "paid"

    record = db.query(Payment).filter(Payment.gateway_payment_id == payment_id).one()
    assert record.refund_ids == [refund.refund_id]
    assert record.refund_status == "full"
    assert record.status == "refunded"

    sent = gateway.refunds[created["order_id"]][0]
    assert sent.raw["note"] == "Customer requested cancellation"
    assert sent.raw["receipt"].startswith("KH-RF-")


def test_cancel_endpoint_requires_owner_for_account_bookings(client, db, gateway):
    owner = User(name="Owner", email="owner@example.com", password_hash="x")
    db.add(owner)
    db.commit()
    row = _paid_row(db, user_id=owner.id)

    response = client.post(f"/api/cancel-booking/{row.id}", json={"reason": "nope"})
    assert response.status_code == 401
    assert gateway.refunds == {}


# ----- guest bookings belong to the e-mail they were made with -----
@pytest.mark.parametrize("payload", [{}, {"email": "mallory@example.com"}])
def test_guest_booking_cannot_be_cancelled_by_another_caller(client, db, gateway, payload):
    row = _paid_row(db)

    response = client.post(f"/api/cancel-booking/{row.id}", json={"reason": "mine now", **payload})

    assert response.status_code == 403
    assert response.json()["success"] is False
    assert gateway.refunds == {}
    db.expire_all()
    assert db.get(Booking, row.id).status == "confirmed"


def test_guest_booking_cannot_be_moved_by_another_caller(client, db, gateway, booking_day):
    row = _paid_row(db)

    response = client.post(
        f"/api/update-booking/{row.id}",
        json={"booking_date": booking_day.isoformat(), "booking_time_slot": "3-5pm"},
        params={"email": "mallory@example.com"},
    )

    assert response.status_code == 403
    db.expire_all()
    assert db.get(Booking, row.id).booking_time_slot == "11am-1pm"


def test_guest_cancel_with_booking_email_in_query(client, db, gateway):
    row = _paid_row(db)

    response = client.post(f"/api/cancel-booking/{row.id}", params={"email": "ASHA@example.com"})

    assert response.status_code == 200, response.text
    assert response.json()["refund_amount"] == 1999
    assert len(gateway.refunds[row.gateway_order_id]) == 1
