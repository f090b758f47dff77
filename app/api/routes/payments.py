from datetime import date

from fastapi import APIRouter, Depends, Query, Request
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.dependencies import get_db, get_gateway, get_optional_principal
from app.core.errors import AuthError, Forbidden, NotFound, ValidationError
from app.core.logging_config import get_logger
from app.gateways.base import PaymentGateway
from app.models.booking import Booking
from app.schemas.booking import (
    BookingOut,
    CancelBookingRequest,
    CreateOrderRequest,
    UpdateBookingRequest,
)
from app.schemas.payment import VerifyPaymentRequest
from app.services import cancellation, checkout, rescheduling, slots, verification, webhooks

router = APIRouter(prefix="/api", tags=["Payments"])
logger = get_logger()


# ---------------------------------------------------------------------
# OWNERSHIP
# ---------------------------------------------------------------------
def get_managed_booking(db: Session, booking_id: int, principal, email: str | None = None) -> Booking:
    """Account bookings belong to that account; guest bookings to the e-mail
    they were made with. Admins can manage any booking."""
    booking = db.query(Booking).filter(Booking.id == booking_id).first()
    if not booking:
        raise NotFound("Booking not found")

    user, role = principal
    if role == "admin":
        return booking

    if booking.user_id is None:
        claimed = (email or (user.email if user is not None else "") or "").strip().lower()
        if not claimed or claimed != (booking.user_email or "").lower():
            logger.bind(log_type="booking").warning(
                f"Rejected change to guest booking {booking.internal_bill_id}: e-mail mismatch"
            )
            raise Forbidden("You can only manage your own bookings")
        return booking

    if user is None:
        raise AuthError()
    if user.id != booking.user_id:
        raise Forbidden("You can only manage your own bookings")
    return booking


# =====================================================================
#                           CREATE ORDER
# =====================================================================
@router.post("/create-order")
def create_order(
    data: CreateOrderRequest,
    request: Request,
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_gateway),
    principal=Depends(get_optional_principal),
):
    user, _ = principal
    booking = checkout.create_booking_order(
        db,
        gateway,
        get_settings(),
        amount=data.amount,
        details=data.slot_details,
        user=user,
        request_base_url=str(request.base_url),
    )

    return {
        "success": True,
        "provider": gateway.name,
        "order_id": booking.gateway_order_id,
        "session_id": booking.gateway_session_id,
        "internal_bill_id": booking.internal_bill_id,
        "booking_id": booking.id,
        "amount": booking.amount,
        "currency": booking.currency,
        "key_id": getattr(gateway, "key_id", None),
    }


# =====================================================================
#                           VERIFY PAYMENT
# =====================================================================
@router.post("/verify-payment")
def verify_payment(
    data: VerifyPaymentRequest,
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_gateway),
):
    row, is_balance = verification.verify_payment(
        db, gateway, data.order_id, data.payment_id, data.signature, kind="booking"
    )

    if is_balance:
        paid = row.balance_payment_status == "paid"
        message = "Balance payment verified" if paid else "Balance payment failed"
    else:
        paid = row.payment_status == "paid"
        message = "Payment verified successfully" if paid else "Payment was not captured"

    return {
        "success": paid,
        "message": message,
        "payment_status": row.payment_status,
        "booking": BookingOut.model_validate(row),
    }


@router.get("/check-payment-status/{order_id}")
def check_payment_status(order_id: str, db: Session = Depends(get_db)):
    booking, is_balance = verification.payment_status(db, order_id, kind="booking")
    return {
        "success": True,
        "payment_status": booking.balance_payment_status if is_balance else booking.payment_status,
        "booking_status": booking.status,
        "booking": BookingOut.model_validate(booking),
    }


# =====================================================================
#                           WEBHOOK
# =====================================================================
@router.post("/webhook")
async def webhook(
    request: Request,
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_gateway),
):
    # signature is computed over these exact bytes
    raw_body = await request.body()
    result = await run_in_threadpool(
        webhooks.handle_webhook,
        db,
        gateway,
        raw_body,
        request.headers,
        attempts=get_settings().STORE_RETRY_ATTEMPTS,
    )
    return {"success": True, **result}


# =====================================================================
#                           CANCEL / UPDATE
# =====================================================================
@router.post("/cancel-booking/{booking_id}")
def cancel_booking(
    booking_id: int,
    data: CancelBookingRequest | None = None,
    email: str | None = Query(default=None),
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_gateway),
    principal=Depends(get_optional_principal),
):
    get_managed_booking(db, booking_id, principal, email=(data.email if data else None) or email)

    booking, refunds = cancellation.cancel_booking(
        db, gateway, get_settings(), booking_id, reason=data.reason if data else None
    )
    return {
        "success": True,
        "message": "Booking cancelled. Refund has been initiated.",
        "refund_id": refunds[0].refund_id,
        "refund_ids": [r.refund_id for r in refunds],
        "refund_amount": booking.refund_amount,
        "booking": BookingOut.model_validate(booking),
    }


@router.post("/update-booking/{booking_id}")
def update_booking(
    booking_id: int,
    data: UpdateBookingRequest,
    request: Request,
    email: str | None = Query(default=None),
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_gateway),
    principal=Depends(get_optional_principal),
):
    get_managed_booking(db, booking_id, principal, email=data.email or email)

    result = rescheduling.update_booking(
        db,
        gateway,
        get_settings(),
        booking_id,
        booking_date=data.booking_date,
        booking_time_slot=data.booking_time_slot,
        new_activity_name=data.new_activity_name,
        new_activity_price=data.new_activity_price,
        request_base_url=str(request.base_url),
    )
    needs_payment = result["needs_payment"]

    return {
        "success": True,
        "message": (
            "Booking updated. Please complete balance payment."
            if needs_payment else "Booking updated successfully"
        ),
        "booking": BookingOut.model_validate(result["booking"]),
        "needs_payment": needs_payment,
        "balance_amount": result["balance_amount"],
        "balance_order_id": result["balance_order_id"],
        "session_id": result["balance_session_handle"],
    }


# =====================================================================
#                           LISTING / SLOTS
# =====================================================================
@router.get("/my-bookings")
def my_bookings(
    email: str | None = Query(default=None),
    db: Session = Depends(get_db),
    principal=Depends(get_optional_principal),
):
    user, _ = principal
    query = db.query(Booking)

    if user is not None:
        query = query.filter(Booking.user_id == user.id)
    elif email:
        query = query.filter(Booking.user_email == email.strip().lower())
    else:
        raise AuthError()

    bookings = query.order_by(Booking.created_at.desc(), Booking.id.desc()).all()
    return {"success": True, "bookings": [BookingOut.model_validate(b) for b in bookings]}


@router.get("/available-slots")
def available_slots(
    activity_name: str | None = Query(default=None),
    booking_date: date | None = Query(default=None),
    db: Session = Depends(get_db),
):
    if not activity_name or not booking_date:
        raise ValidationError("Activity name and booking date are required")

    result = slots.available_slots(db, activity_name, booking_date)
    return {"success": True, **result}
