"""
Client-triggered payment verification.

The checkout page hands back (order id, payment id, signature). The signature
is checked first, then the payment status is always taken from the gateway,
never from the client.
"""
from sqlalchemy.orm import Session

from app.core.errors import InvalidSignature, NotFound, ValidationError
from app.core.logging_config import get_logger
from app.gateways.base import PaymentGateway
from app.models.booking import Booking
from app.services.ledger import record_captured_payment
from app.services.slots import invalidate_slot_cache
from app.services.store import (
    find_booking_by_balance_order_id,
    find_booking_by_order_id,
    find_order_by_order_id,
    run_in_transaction,
)
from app.services.transitions import apply_balance_outcome, apply_payment_outcome

logger = get_logger()


def locate_owner(db: Session, order_id: str, kind: str | None = None):
    """Find what a gateway order id pays for.

    Returns (row, is_balance). ``kind`` restricts the lookup to "booking"
    or "diy"; None tries bookings, then DIY orders, then balance orders.
    """
    if kind in (None, "booking"):
        booking = find_booking_by_order_id(db, order_id)
        if booking is not None:
            return booking, False
    if kind in (None, "diy"):
        order = find_order_by_order_id(db, order_id)
        if order is not None:
            return order, False
    if kind in (None, "booking"):
        booking = find_booking_by_balance_order_id(db, order_id)
        if booking is not None:
            return booking, True
    return None, False


def settle_payment(db: Session, gateway: PaymentGateway, row, payment,
                   is_balance: bool = False, signature: str | None = None) -> bool:
    """Apply a gateway payment to ``row`` and write the ledger row on capture.

    Does not commit; callers run it inside ``run_in_transaction``.
    """
    if is_balance:
        changed = apply_balance_outcome(row, payment)
    else:
        changed = apply_payment_outcome(row, payment, signature=signature)

    if payment.captured and row.payment_status != "refunded":
        order_id = row.balance_payment_order_id if is_balance else payment.order_id
        record_captured_payment(db, row, payment, provider=gateway.name, order_id=order_id)
    return changed


def verify_payment(db: Session, gateway: PaymentGateway, order_id: str | None,
                   payment_id: str | None, signature: str | None, kind: str | None = None):
    """Returns (row, is_balance)."""
    if not order_id or not payment_id:
        raise ValidationError("Missing payment details")
    if gateway.requires_payment_signature and not signature:
        raise ValidationError("Missing payment details")

    log = logger.bind(log_type="payment")

    if not gateway.verify_payment_signature(order_id, payment_id, signature):
        log.warning(f"Signature mismatch | order={order_id} | payment={payment_id}")
        raise InvalidSignature()

    row, is_balance = locate_owner(db, order_id, kind)
    if row is None:
        log.warning(f"Verify for unknown order {order_id}")
        raise NotFound("Booking not found" if kind != "diy" else "Order not found")

    payment = gateway.fetch_payment(order_id, payment_id)
    if payment.order_id and payment.order_id != order_id:
        log.warning(
            f"Payment {payment_id} belongs to order {payment.order_id}, not {order_id}"
        )
        raise ValidationError("Payment does not belong to this order")

    model = type(row)
    row_id = row.id

    def work():
        current = db.query(model).filter(model.id == row_id).populate_existing().one()
        settle_payment(db, gateway, current, payment, is_balance=is_balance, signature=signature)
        return current

    row = run_in_transaction(db, work)
    db.refresh(row)

    if isinstance(row, Booking):
        invalidate_slot_cache(row.booking_date)

    log.info(
        f"Verified {model.__name__} {row.internal_bill_id} | order={order_id} | "
        f"payment={payment_id} | status={row.payment_status}"
    )
    return row, is_balance


def payment_status(db: Session, order_id: str, kind: str | None = None):
    row, is_balance = locate_owner(db, order_id, kind)
    if row is None:
        raise NotFound("Booking not found" if kind != "diy" else "Order not found")
    return row, is_balance
