"""
Payment / refund state transitions shared by the verifier and the webhook
reconciler.

Rules:
  pending_payment -> paid | failed
  failed          -> paid            (customer retried)
  paid, refunded  -> never failed    (late or out-of-order failure events)
  refunded        -> never paid again
Refund sub-state only moves none -> initiated -> processed; failed is
reachable from none / initiated.
"""
from datetime import datetime

from app.core.logging_config import get_logger
from app.gateways.base import GatewayPayment, GatewayRefund
from app.models.booking import Booking
from app.models.enums import (
    BookingStatus,
    PaymentStatus,
    RefundStatus,
    TERMINAL_PAYMENT_STATUSES,
)

logger = get_logger()


def _label(row) -> str:
    return f"{type(row).__name__}#{row.id} ({row.internal_bill_id})"


def apply_payment_outcome(row, payment: GatewayPayment, signature: str | None = None) -> bool:
    """Apply an authoritative gateway payment result to a booking / DIY order.

    Returns True when the row changed.
    """
    log = logger.bind(log_type="payment")

    if payment.captured:
        if row.payment_status == PaymentStatus.REFUNDED.value:
            log.info(f"{_label(row)} already refunded, ignoring capture of {payment.payment_id}")
            return False
        if (
            row.payment_status == PaymentStatus.PAID.value
            and row.gateway_payment_id == payment.payment_id
        ):
            return False

        if row.payment_status != PaymentStatus.PAID.value:
            row.gateway_payment_id = payment.payment_id
            row.payment_method = payment.method
            row.gateway_payment_data = payment.raw
            if signature:
                row.gateway_signature = signature
        row.payment_status = PaymentStatus.PAID.value

        if isinstance(row, Booking) and row.status == BookingStatus.PENDING.value:
            row.status = BookingStatus.CONFIRMED.value

        log.info(f"{_label(row)} -> paid | payment={payment.payment_id} | method={payment.method}")
        return True

    # not captured
    if row.payment_status in TERMINAL_PAYMENT_STATUSES:
        log.warning(
            f"{_label(row)} is {row.payment_status}, ignoring '{payment.status}' "
            f"for payment {payment.payment_id}"
        )
        return False
    if row.payment_status == PaymentStatus.FAILED.value and row.gateway_payment_id == payment.payment_id:
        return False

    row.payment_status = PaymentStatus.FAILED.value
    row.gateway_payment_id = payment.payment_id
    row.gateway_payment_data = payment.raw
    # failure is retryable, the booking stays pending
    if isinstance(row, Booking) and row.status != BookingStatus.CANCELLED.value:
        row.status = BookingStatus.PENDING.value

    log.info(f"{_label(row)} -> failed | payment={payment.payment_id} | status={payment.status}")
    return True


def apply_balance_outcome(booking: Booking, payment: GatewayPayment) -> bool:
    """Balance payment after an activity upgrade."""
    log = logger.bind(log_type="payment")

    if booking.balance_payment_status == PaymentStatus.PAID.value:
        return False

    if payment.captured:
        booking.balance_payment_id = payment.payment_id
        booking.balance_payment_status = PaymentStatus.PAID.value
        booking.balance_payment_method = payment.method
        booking.amount = booking.amount + (booking.balance_amount or 0)
        booking.balance_amount = 0
        log.info(f"{_label(booking)} balance paid | payment={payment.payment_id} | amount={booking.amount}")
        return True

    booking.balance_payment_id = payment.payment_id
    booking.balance_payment_status = PaymentStatus.FAILED.value
    log.info(f"{_label(booking)} balance payment failed | payment={payment.payment_id}")
    return True


_REFUND_RANK = {
    RefundStatus.NONE.value: 0,
    RefundStatus.FAILED.value: 0,
    RefundStatus.INITIATED.value: 1,
    RefundStatus.PROCESSED.value: 2,
}


def apply_refund_outcome(booking: Booking, refund: GatewayRefund,
                         ledger_refunded: int | None = None,
                         ledger_captured: int | None = None) -> bool:
    """Apply a gateway refund event to the booking's refund sub-state.

    ``ledger_refunded`` / ``ledger_captured`` are the ledger totals across all
    of the booking's captures after this refund, when known. A processed
    refund only ends the booking when everything captured has been returned;
    partial refunds leave a live booking paid and confirmed.
    """
    log = logger.bind(log_type="refund")
    current = booking.refund_status or RefundStatus.NONE.value

    if refund.status == RefundStatus.FAILED.value:
        if current == RefundStatus.PROCESSED.value:
            return False
        booking.refund_status = RefundStatus.FAILED.value
        booking.refund_id = refund.refund_id
        booking.gateway_refund_data = refund.raw
        log.warning(f"{_label(booking)} refund {refund.refund_id} failed, needs manual follow-up")
        return True

    if _REFUND_RANK[refund.status] < _REFUND_RANK.get(current, 0):
        return False
    if refund.status == current and booking.refund_id == refund.refund_id:
        return False

    own_cancellation = (
        booking.status == BookingStatus.CANCELLED.value and booking.refund_id == refund.refund_id
    )
    if ledger_refunded is not None and ledger_captured:
        # captures already returned by an activity downgrade are not part of amount
        adjusted = ledger_captured - booking.amount
        refunded = max(0, ledger_refunded - adjusted)
        fully_refunded = ledger_refunded >= ledger_captured
    else:
        refunded = max(booking.refund_amount or 0, refund.amount)
        fully_refunded = refunded >= booking.amount
    fully_refunded = fully_refunded or own_cancellation

    now = datetime.utcnow()
    booking.refund_id = refund.refund_id
    booking.refund_status = refund.status
    booking.gateway_refund_data = refund.raw
    booking.refund_initiated_at = booking.refund_initiated_at or now
    booking.refund_amount = min(booking.amount, max(booking.refund_amount or 0, refunded))

    if refund.status == RefundStatus.PROCESSED.value:
        booking.refund_processed_at = booking.refund_processed_at or now
        if fully_refunded:
            booking.payment_status = PaymentStatus.REFUNDED.value
            booking.status = BookingStatus.CANCELLED.value

    log.info(
        f"{_label(booking)} refund {refund.refund_id} -> {refund.status} | "
        f"amount={booking.refund_amount} | full={fully_refunded}"
    )
    return True
