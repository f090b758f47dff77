"""
Payment ledger (``payments`` table).

One row per captured gateway payment, keyed by the gateway payment id. Rows
are only inserted or updated, never deleted, and the refund aggregate on them
is the authoritative local figure for how much has been refunded.
"""
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.logging_config import get_logger
from app.gateways.base import GatewayPayment
from app.models.booking import Booking
from app.models.enums import LedgerRefundStatus, OrderType
from app.models.order import Order
from app.models.payment import Payment

logger = get_logger()


def find_by_payment_id(db: Session, payment_id: str) -> Payment | None:
    return db.query(Payment).filter(Payment.gateway_payment_id == payment_id).first()


def find_payment_for(db: Session, booking: Booking) -> Payment | None:
    """Primary capture of a booking (balance payments excluded)."""
    if booking.gateway_payment_id:
        record = find_by_payment_id(db, booking.gateway_payment_id)
        if record is not None:
            return record
    for order_id in (booking.gateway_order_id, booking.legacy_order_id):
        if not order_id:
            continue
        record = (
            db.query(Payment)
            .filter(Payment.gateway_order_id == order_id)
            .order_by(Payment.id)
            .first()
        )
        if record is not None:
            return record
    return None


def payments_for(db: Session, booking: Booking) -> list[Payment]:
    """Every capture recorded for a booking: the primary payment and any
    balance payments, oldest first."""
    records = (
        db.query(Payment)
        .filter(
            Payment.internal_bill_id == booking.internal_bill_id,
            Payment.order_type == OrderType.BOOKING.value,
        )
        .order_by(Payment.id)
        .all()
    )
    if records:
        return records
    primary = find_payment_for(db, booking)
    return [primary] if primary is not None else []


def ledger_totals(records: list[Payment]) -> tuple[int, int]:
    """(captured, refunded) across ledger rows."""
    captured = sum(r.amount for r in records)
    refunded = sum(r.refund_amount or 0 for r in records)
    return captured, refunded


def record_captured_payment(db: Session, owner, payment: GatewayPayment,
                            provider: str, order_id: str | None = None):
    """Insert the ledger row for a captured payment unless it already exists.

    Returns (record, created). A concurrent insert of the same gateway payment
    id loses on the unique constraint and is reported as not created.
    """
    existing = find_by_payment_id(db, payment.payment_id)
    if existing is not None:
        return existing, False

    order_type = OrderType.DIY.value if isinstance(owner, Order) else OrderType.BOOKING.value
    items = owner.items if isinstance(owner, Order) else [
        {"name": name} for name in (owner.selected_activities or [owner.activity_name])
    ]
    details = payment.details or {}

    record = Payment(
        gateway_provider=provider,
        gateway_payment_id=payment.payment_id,
        gateway_order_id=order_id or payment.order_id or owner.gateway_order_id,
        internal_bill_id=owner.internal_bill_id,
        order_type=order_type,
        amount=payment.amount or owner.amount,
        currency=payment.currency or owner.currency,
        status="paid",
        method=payment.method,
        email=payment.email,
        contact=payment.contact,
        card_last4=details.get("card_last4"),
        card_network=details.get("card_network"),
        card_type=details.get("card_type"),
        card_issuer=details.get("card_issuer"),
        upi_vpa=details.get("upi_vpa"),
        bank_transaction_id=details.get("bank_transaction_id"),
        bank=details.get("bank"),
        wallet_name=details.get("wallet_name"),
        refund_status=LedgerRefundStatus.NEVER.value,
        refund_amount=0,
        refund_ids=[],
        items=items or [],
        gateway_payload=payment.raw,
        paid_at=datetime.utcnow(),
    )

    try:
        with db.begin_nested():
            db.add(record)
    except IntegrityError:
        logger.bind(log_type="payment").info(
            f"Ledger row for payment {payment.payment_id} already written concurrently"
        )
        return find_by_payment_id(db, payment.payment_id), False

    logger.bind(log_type="payment").info(
        f"Ledger | payment={payment.payment_id} | bill={owner.internal_bill_id} | amount={record.amount}"
    )
    return record, True


def apply_refund(record: Payment, refund_id: str, amount: int) -> bool:
    """Add one gateway refund to the aggregate. Replays of the same refund id
    are ignored; the aggregate never exceeds the captured amount."""
    if refund_id in (record.refund_ids or []):
        return False

    total = (record.refund_amount or 0) + amount
    if total > record.amount:
        logger.bind(log_type="refund").warning(
            f"Refund {refund_id} would take payment {record.gateway_payment_id} to "
            f"{total} > captured {record.amount}; capping"
        )
        total = record.amount

    record.refund_ids = [*(record.refund_ids or []), refund_id]
    record.refund_amount = total
    if total >= record.amount:
        record.refund_status = LedgerRefundStatus.FULL.value
        record.status = "refunded"
    else:
        record.refund_status = LedgerRefundStatus.PARTIAL.value
        record.status = "partially_refunded"
    return True
