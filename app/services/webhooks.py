"""
Webhook reconciliation.

Authenticates over the raw body, classifies the event and applies the same
transitions as the verifier. Every mutation is keyed by gateway ids so a
redelivered event is a no-op.
"""
import json

from sqlalchemy.orm import Session

from app.core.errors import InvalidSignature, ValidationError
from app.core.logging_config import get_logger
from app.gateways.base import PAYMENT_FAILED, PAYMENT_SUCCESS, REFUND, PaymentGateway, WebhookEvent
from app.models.booking import Booking
from app.models.enums import RefundStatus
from app.services.ledger import (
    apply_refund,
    find_by_payment_id,
    find_payment_for,
    ledger_totals,
    payments_for,
)
from app.services.slots import invalidate_slot_cache
from app.services.store import find_booking_by_order_id, run_in_transaction
from app.services.transitions import apply_refund_outcome
from app.services.verification import locate_owner, settle_payment

logger = get_logger()


def handle_webhook(db: Session, gateway: PaymentGateway, raw_body: bytes, headers,
                   attempts: int = 1) -> dict:
    """Returns a small summary dict for the response body."""
    log = logger.bind(log_type="webhook")

    if not gateway.verify_webhook_signature(raw_body, headers):
        log.warning(f"Rejected {gateway.name} webhook: bad signature")
        raise InvalidSignature("Invalid webhook signature")

    try:
        payload = json.loads(raw_body)
    except ValueError:
        raise ValidationError("Malformed webhook body")

    event = gateway.parse_webhook(payload)
    log.info(f"Webhook {event.name} | kind={event.kind} | order={event.order_id}")

    if event.kind is None:
        return {"status": "ignored", "event": event.name}

    if event.kind in (PAYMENT_SUCCESS, PAYMENT_FAILED):
        if event.payment is None or not event.order_id:
            log.warning(f"Webhook {event.name} without payment entity, ignored")
            return {"status": "ignored", "event": event.name}
        outcome = run_in_transaction(db, lambda: _payment_event(db, gateway, event), attempts)
    elif event.kind == REFUND:
        if event.refund is None:
            log.warning(f"Webhook {event.name} without refund entity, ignored")
            return {"status": "ignored", "event": event.name}
        outcome = run_in_transaction(db, lambda: _refund_event(db, event), attempts)
    else:
        return {"status": "ignored", "event": event.name}

    if outcome.get("booking_date"):
        invalidate_slot_cache(outcome.pop("booking_date"))
    return outcome


# ---------------------------------------------------------------------
# PAYMENT EVENTS
# ---------------------------------------------------------------------
def _payment_event(db: Session, gateway: PaymentGateway, event: WebhookEvent) -> dict:
    log = logger.bind(log_type="webhook")

    row, is_balance = locate_owner(db, event.order_id)
    if row is None:
        # orders opened elsewhere on the same merchant account
        log.warning(f"Webhook {event.name} for unknown order {event.order_id}")
        return {"status": "ignored", "event": event.name, "reason": "unknown order"}

    db.refresh(row)
    changed = settle_payment(db, gateway, row, event.payment, is_balance=is_balance)

    result = {
        "status": "processed" if changed else "unchanged",
        "event": event.name,
        "payment_status": row.payment_status,
    }
    if isinstance(row, Booking):
        result["booking_date"] = row.booking_date
    return result


# ---------------------------------------------------------------------
# REFUND EVENTS
# ---------------------------------------------------------------------
def _booking_for_refund(db: Session, event: WebhookEvent):
    refund = event.refund
    if event.order_id:
        booking = find_booking_by_order_id(db, event.order_id)
        if booking is not None:
            return booking
    if refund.payment_id:
        booking = (
            db.query(Booking)
            .filter(Booking.gateway_payment_id == refund.payment_id)
            .first()
        )
        if booking is not None:
            return booking
        record = find_by_payment_id(db, refund.payment_id)
        if record is not None and record.internal_bill_id:
            return (
                db.query(Booking)
                .filter(Booking.internal_bill_id == record.internal_bill_id)
                .first()
            )
    return None


def _refund_event(db: Session, event: WebhookEvent) -> dict:
    log = logger.bind(log_type="refund")
    refund = event.refund

    booking = _booking_for_refund(db, event)
    if booking is None:
        # DIY orders have no refund path
        log.warning(f"Refund {refund.refund_id} for unknown booking (order={event.order_id})")
        return {"status": "ignored", "event": event.name, "reason": "unknown booking"}

    db.refresh(booking)

    if refund.refund_id in (booking.adjustment_refund_ids or []):
        # excess refund from an activity downgrade; amount already reflects it
        if refund.status == RefundStatus.FAILED.value:
            log.error(
                f"Adjustment refund {refund.refund_id} on {booking.internal_bill_id} failed, "
                f"needs manual follow-up"
            )
        else:
            log.info(
                f"Adjustment refund {refund.refund_id} on {booking.internal_bill_id} "
                f"-> {refund.status}, booking unchanged"
            )
        return {"status": "unchanged", "event": event.name, "refund_status": booking.refund_status}

    record = find_by_payment_id(db, refund.payment_id) if refund.payment_id else None
    if record is None:
        record = find_payment_for(db, booking)
    if record is not None and refund.status != RefundStatus.FAILED.value:
        db.refresh(record)
        apply_refund(record, refund.refund_id, refund.amount)

    records = payments_for(db, booking)
    if records:
        captured, refunded = ledger_totals(records)
        changed = apply_refund_outcome(
            booking, refund, ledger_refunded=refunded, ledger_captured=captured
        )
    else:
        changed = apply_refund_outcome(booking, refund)
    return {
        "status": "processed" if changed else "unchanged",
        "event": event.name,
        "refund_status": booking.refund_status,
        "booking_date": booking.booking_date,
    }
