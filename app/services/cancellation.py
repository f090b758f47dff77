"""
Cancellation and refund.

The gateway refund is requested before anything is written locally; the row
only changes once the gateway has accepted the refund. A booking that was
upgraded holds two captures (primary and balance payment); each one is
refunded separately against its own gateway order.
"""
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import Session

from app.core.config import Settings
from app.core.errors import (
    AlreadyCancelled,
    GatewayError,
    NothingToRefund,
    NotFound,
    NotRefundable,
    RefundExceedsBalance,
)
from app.core.logging_config import get_logger
from app.gateways.base import PaymentGateway
from app.models.booking import Booking
from app.models.enums import BookingStatus, PaymentStatus, RefundStatus
from app.models.payment import Payment
from app.services.ledger import apply_refund, find_by_payment_id, payments_for
from app.services.slots import invalidate_slot_cache
from app.services.store import run_in_transaction
from app.utils.identifiers import generate_refund_id

logger = get_logger()

DEFAULT_REASON = "Customer requested cancellation"

_EXCEEDS_MARKERS = ("exceeds transaction amount", "greater than", "exceeds the")


@dataclass(frozen=True)
class RefundTarget:
    order_id: str
    payment_id: str | None
    remainder: int


def _gateway_refunded(gateway: PaymentGateway, order_id: str, payment_id: str | None,
                      label: str) -> int | None:
    """Sum of non-failed refunds the gateway reports, or None without an answer."""
    try:
        refunds = gateway.list_refunds(order_id, payment_id)
    except GatewayError as e:
        logger.bind(log_type="refund").warning(f"Refund history unavailable for {label}: {e.message}")
        return None
    if not refunds:
        return None
    return sum(r.amount for r in refunds if r.status != RefundStatus.FAILED.value)


def refund_targets(db: Session, gateway: PaymentGateway, booking: Booking) -> list[RefundTarget]:
    """One entry per captured payment with what is still refundable on it.

    Gateway refund history wins; the ledger row and then the booking row are
    used only when the gateway has no answer.
    """
    records: list[Payment] = payments_for(db, booking)

    if not records:
        refunded = _gateway_refunded(
            gateway, booking.gateway_order_id, booking.gateway_payment_id, booking.internal_bill_id
        )
        if refunded is None:
            refunded = booking.refund_amount or 0
        return [RefundTarget(booking.gateway_order_id, booking.gateway_payment_id, booking.amount - refunded)]

    targets = []
    for record in records:
        refunded = _gateway_refunded(
            gateway, record.gateway_order_id, record.gateway_payment_id, record.gateway_payment_id
        )
        if refunded is None:
            refunded = record.refund_amount or 0
        targets.append(RefundTarget(record.gateway_order_id, record.gateway_payment_id, record.amount - refunded))
    return targets


def refundable_remainder(db: Session, gateway: PaymentGateway, booking: Booking) -> int:
    """Captured amount minus what has already been refunded, across all captures."""
    return sum(max(t.remainder, 0) for t in refund_targets(db, gateway, booking))


def cancel_booking(db: Session, gateway: PaymentGateway, settings: Settings,
                   booking_id: int, reason: str | None = None):
    """Returns (booking, refunds)."""
    log = logger.bind(log_type="refund")

    booking = db.query(Booking).filter(Booking.id == booking_id).first()
    if not booking:
        raise NotFound("Booking not found")
    if booking.payment_status != PaymentStatus.PAID.value:
        raise NotRefundable()
    if booking.status == BookingStatus.CANCELLED.value:
        raise AlreadyCancelled()

    targets = [t for t in refund_targets(db, gateway, booking) if t.remainder > 0]
    if not targets:
        log.info(f"Nothing left to refund on {booking.internal_bill_id}")
        raise NothingToRefund()

    reason = (reason or "").strip() or DEFAULT_REASON
    bill_id = booking.internal_bill_id
    booking_date = booking.booking_date

    issued = []
    failure = None
    for target in targets:
        try:
            refund = gateway.create_refund(
                order_id=target.order_id,
                payment_id=target.payment_id,
                amount=target.remainder,
                refund_id=generate_refund_id(settings.BILL_ID_PREFIX),
                note=reason,
            )
        except GatewayError as e:
            message = (e.message or "").lower()
            if not issued:
                if any(marker in message for marker in _EXCEEDS_MARKERS):
                    log.warning(f"Refund for {bill_id} exceeds balance: {e.message}")
                    raise RefundExceedsBalance()
                log.error(f"Refund for {bill_id} failed: {e.message}")
                raise
            log.error(
                f"Refund of payment {target.payment_id} on {bill_id} failed after "
                f"{len(issued)} refund(s) were issued; reconcile manually: {e.message}"
            )
            failure = e
            break
        issued.append((target, refund))

    refunded = sum(refund.amount or target.remainder for target, refund in issued)
    primary = issued[0][1]

    def work():
        current = db.query(Booking).filter(Booking.id == booking_id).populate_existing().one()
        current.status = BookingStatus.CANCELLED.value
        if not (
            current.refund_id == primary.refund_id
            and current.refund_status == RefundStatus.PROCESSED.value
        ):
            current.refund_status = RefundStatus.INITIATED.value
        current.refund_id = primary.refund_id
        current.refund_amount = min(current.amount, (current.refund_amount or 0) + refunded)
        current.refund_reason = reason
        current.refund_initiated_at = datetime.utcnow()
        current.gateway_refund_data = primary.raw

        for target, refund in issued:
            record = find_by_payment_id(db, target.payment_id) if target.payment_id else None
            if record is not None:
                apply_refund(record, refund.refund_id, refund.amount or target.remainder)
        return current

    try:
        booking = run_in_transaction(db, work, attempts=settings.STORE_RETRY_ATTEMPTS)
    except Exception:
        log.error(
            f"Refund(s) {[r.refund_id for _, r in issued]} issued for {bill_id} "
            f"but the booking could not be updated; reconcile manually"
        )
        raise
    db.refresh(booking)
    invalidate_slot_cache(booking_date)

    log.info(
        f"Cancelled {booking.internal_bill_id} | refunds={[r.refund_id for _, r in issued]} | "
        f"amount={refunded} | reason={reason}"
    )
    if failure is not None:
        raise failure
    return booking, [refund for _, refund in issued]
