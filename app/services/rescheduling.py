"""
Reschedule / activity change of an existing booking.

A price increase opens a separate balance order with the gateway; the
booking amount only grows once that balance is captured. A decrease is
refunded through the gateway before the row is touched.
"""
from datetime import date

from sqlalchemy.orm import Session

from app.core.config import Settings
from app.core.errors import GatewayError, NotFound, ValidationError
from app.core.logging_config import get_logger
from app.gateways.base import Customer, PaymentGateway
from app.models.booking import Booking
from app.models.enums import BookingStatus, PaymentStatus
from app.services.checkout import unique_bill_id, notify_url_for
from app.services.ledger import apply_refund, find_payment_for
from app.services.slots import ensure_slot_available, invalidate_slot_cache
from app.services.store import run_in_transaction
from app.utils.identifiers import generate_refund_id
from app.utils.validators import parse_positive_amount

logger = get_logger()

EXCESS_REFUND_NOTE = "Activity change - excess amount refund"


def update_booking(db: Session, gateway: PaymentGateway, settings: Settings, booking_id: int,
                   booking_date: date | None, booking_time_slot: str | None,
                   new_activity_name: str | None = None, new_activity_price=None,
                   request_base_url: str | None = None) -> dict:
    log = logger.bind(log_type="booking")

    if not booking_date or not (booking_time_slot or "").strip():
        raise ValidationError("Booking date and time slot are required")
    slot = booking_time_slot.strip()

    booking = db.query(Booking).filter(Booking.id == booking_id).first()
    if not booking:
        raise NotFound("Booking not found")
    if booking.status == BookingStatus.CANCELLED.value:
        raise ValidationError("Cannot update cancelled booking")

    activity_name = (new_activity_name or "").strip() or booking.activity_name
    ensure_slot_available(db, activity_name, booking_date, slot, exclude_booking_id=booking.id)

    difference = 0
    new_amount = None
    if new_activity_name and new_activity_price is not None:
        if booking.payment_status != PaymentStatus.PAID.value:
            raise ValidationError("Only paid bookings can change activity price")
        new_amount = parse_positive_amount(new_activity_price)
        difference = new_amount - booking.amount

    balance_order = None
    excess_refund = None

    if difference > 0:
        bill_id = unique_bill_id(db, Booking, f"{settings.BILL_ID_PREFIX}-BAL")
        balance_order = gateway.create_order(
            bill_id=bill_id,
            amount=difference,
            currency=booking.currency,
            customer=Customer(
                customer_id=f"user_{booking.user_id}" if booking.user_id else f"guest_{booking.user_phone}",
                name=booking.user_name,
                email=booking.user_email,
                phone=booking.user_phone,
            ),
            notify_url=notify_url_for(settings, request_base_url),
            notes={
                "booking_id": booking.id,
                "type": "balance_payment",
                "original_amount": booking.amount,
                "new_amount": new_amount,
            },
        )
        log.info(
            f"Balance order {balance_order.order_id} for {booking.internal_bill_id} | amount={difference}"
        )
    elif difference < 0:
        try:
            excess_refund = gateway.create_refund(
                order_id=booking.gateway_order_id,
                payment_id=booking.gateway_payment_id,
                amount=-difference,
                refund_id=generate_refund_id(settings.BILL_ID_PREFIX),
                note=EXCESS_REFUND_NOTE,
            )
        except GatewayError as e:
            logger.bind(log_type="refund").error(
                f"Excess refund for {booking.internal_bill_id} failed, booking left unchanged: {e.message}"
            )
            raise
        logger.bind(log_type="refund").info(
            f"Excess refund {excess_refund.refund_id} for {booking.internal_bill_id} | amount={-difference}"
        )

    previous_date = booking.booking_date

    def work():
        current = db.query(Booking).filter(Booking.id == booking_id).populate_existing().one()
        if not current.is_updated:
            current.original_booking_date = current.booking_date
            current.original_booking_time_slot = current.booking_time_slot
        current.is_updated = True
        current.updated_booking_date = booking_date
        current.updated_booking_time_slot = slot
        current.booking_date = booking_date
        current.booking_time_slot = slot

        if new_activity_name:
            current.activity_name = activity_name
            current.selected_activities = [activity_name]

        if balance_order is not None:
            current.balance_payment_order_id = balance_order.order_id
            current.balance_amount = difference
            current.balance_payment_id = None
            current.balance_payment_status = PaymentStatus.PENDING_PAYMENT.value
        elif excess_refund is not None:
            current.amount = new_amount
            current.adjustment_refund_ids = [
                *(current.adjustment_refund_ids or []), excess_refund.refund_id
            ]
            record = find_payment_for(db, current)
            if record is not None:
                apply_refund(record, excess_refund.refund_id, excess_refund.amount or -difference)
        return current

    booking = run_in_transaction(db, work, attempts=settings.STORE_RETRY_ATTEMPTS)
    db.refresh(booking)
    invalidate_slot_cache(previous_date, booking.booking_date)

    log.info(
        f"Updated {booking.internal_bill_id} -> {activity_name} {booking.booking_date} {slot}"
    )
    return {
        "booking": booking,
        "needs_payment": balance_order is not None,
        "balance_amount": difference,
        "balance_order_id": balance_order.order_id if balance_order else None,
        "balance_session_handle": balance_order.session_handle if balance_order else None,
    }
