"""
Order / booking initiation.

Validates the request, opens a checkout with the gateway using a locally
generated bill id as idempotency key, and only then writes the pending row.
A gateway failure leaves the store untouched.
"""
from sqlalchemy.orm import Session

from app.core.config import Settings
from app.core.errors import ValidationError
from app.core.logging_config import get_logger
from app.gateways.base import Customer, PaymentGateway
from app.models.booking import Booking
from app.models.enums import BookingStatus, DeliveryStatus, PaymentStatus
from app.models.order import Order
from app.services.slots import ensure_slot_available, invalidate_slot_cache
from app.services.store import run_in_transaction
from app.utils.identifiers import generate_bill_id, public_callback_url
from app.utils.money import to_minor_units
from app.utils.validators import normalize_phone, parse_positive_amount, require_fields

logger = get_logger()

WEBHOOK_PATH = "/api/webhook"


def unique_bill_id(db: Session, model, prefix: str) -> str:
    for _ in range(5):
        bill_id = generate_bill_id(prefix)
        if not db.query(model.id).filter(model.internal_bill_id == bill_id).first():
            return bill_id
    raise ValidationError("Could not allocate a bill id, please retry")


def notify_url_for(settings: Settings, request_base_url: str | None):
    base = settings.PUBLIC_BASE_URL or request_base_url
    return public_callback_url(base, WEBHOOK_PATH, settings.FALLBACK_PUBLIC_URL)


# =====================================================================
# BOOKINGS
# =====================================================================
def create_booking_order(db: Session, gateway: PaymentGateway, settings: Settings,
                         amount, details, user=None, request_base_url: str | None = None) -> Booking:
    if amount is None or details is None:
        raise ValidationError("Amount and slot details are required")

    require_fields(
        {
            "name": details.customer_name,
            "email": details.customer_email,
            "phone": details.customer_phone,
            "date": details.booking_date,
            "slot": details.booking_time_slot,
        },
        "Missing required booking details",
    )
    phone = normalize_phone(details.customer_phone)
    amount_minor = parse_positive_amount(amount)

    activity_name = (
        (details.selected_activities[0] if details.selected_activities else None)
        or details.combo_name
        or "Activity"
    )
    slot = details.booking_time_slot.strip()
    ensure_slot_available(db, activity_name, details.booking_date, slot)

    bill_id = unique_bill_id(db, Booking, settings.BILL_ID_PREFIX)
    email = user.email if user else str(details.customer_email).lower()

    gateway_order = gateway.create_order(
        bill_id=bill_id,
        amount=amount_minor,
        currency=settings.CURRENCY,
        customer=Customer(
            customer_id=f"user_{user.id}" if user else f"guest_{phone}",
            name=details.customer_name.strip(),
            email=email,
            phone=phone,
        ),
        notify_url=notify_url_for(settings, request_base_url),
        notes={
            "booking_date": details.booking_date.isoformat(),
            "booking_time_slot": slot,
            "activities": ", ".join(details.selected_activities or []),
            "combo_name": details.combo_name or "",
            "participants": details.participants or 1,
        },
    )

    booking = Booking(
        internal_bill_id=bill_id,
        gateway_provider=gateway.name,
        gateway_order_id=gateway_order.order_id,
        gateway_session_id=gateway_order.session_handle,
        amount=amount_minor,
        currency=settings.CURRENCY,
        payment_status=PaymentStatus.PENDING_PAYMENT.value,
        status=BookingStatus.PENDING.value,
        user_id=user.id if user else None,
        user_email=email,
        user_name=details.customer_name.strip(),
        user_phone=phone,
        user_address=details.customer_address,
        activity_name=activity_name,
        combo_name=details.combo_name,
        selected_activities=details.selected_activities or [],
        booking_date=details.booking_date,
        booking_time_slot=slot,
        participants=details.participants or 1,
        notes=details.notes,
    )

    def work():
        db.add(booking)
        db.flush()
        return booking

    try:
        run_in_transaction(db, work)
    except Exception:
        logger.bind(log_type="booking").error(
            f"Gateway order {gateway_order.order_id} opened but booking {bill_id} not saved"
        )
        raise
    db.refresh(booking)
    invalidate_slot_cache(booking.booking_date)

    logger.bind(log_type="booking").info(
        f"Booking Created | bill={bill_id} | order={booking.gateway_order_id} | "
        f"{activity_name} {booking.booking_date} {slot} | amount={amount_minor}"
    )
    return booking


# =====================================================================
# DIY KIT ORDERS
# =====================================================================
def _normalize_items(items) -> list[dict]:
    normalized = []
    for item in items:
        try:
            unit_price = to_minor_units(item.unit_price)
            total = to_minor_units(item.total) if item.total is not None else unit_price * item.quantity
        except ValueError:
            raise ValidationError(f"Invalid price for item '{item.name}'")
        normalized.append({
            "name": item.name,
            "quantity": item.quantity,
            "unit_price": unit_price,
            "total": total,
        })
    return normalized


def create_diy_order(db: Session, gateway: PaymentGateway, settings: Settings,
                     amount, data, user=None, request_base_url: str | None = None) -> Order:
    if amount is None or data is None:
        raise ValidationError("Amount and order data are required")

    require_fields(
        {
            "name": data.customer_name,
            "email": data.customer_email,
            "phone": data.customer_phone,
            "address": data.customer_address,
            "items": data.items,
        },
        "Missing required order details",
    )
    phone = normalize_phone(data.customer_phone)
    amount_minor = parse_positive_amount(amount)
    items = _normalize_items(data.items)
    subtotal = parse_positive_amount(data.subtotal) if data.subtotal is not None else amount_minor

    bill_id = unique_bill_id(db, Order, settings.BILL_ID_PREFIX)
    email = user.email if user else str(data.customer_email).lower()

    gateway_order = gateway.create_order(
        bill_id=bill_id,
        amount=amount_minor,
        currency=settings.CURRENCY,
        customer=Customer(
            customer_id=f"user_{user.id}" if user else f"guest_{phone}",
            name=data.customer_name.strip(),
            email=email,
            phone=phone,
        ),
        notify_url=notify_url_for(settings, request_base_url),
        notes={"order_type": "diy_kit"},
    )

    order = Order(
        internal_bill_id=bill_id,
        gateway_provider=gateway.name,
        gateway_order_id=gateway_order.order_id,
        gateway_session_id=gateway_order.session_handle,
        amount=amount_minor,
        currency=settings.CURRENCY,
        payment_status=PaymentStatus.PENDING_PAYMENT.value,
        user_id=user.id if user else None,
        customer_name=data.customer_name.strip(),
        customer_email=email,
        customer_phone=phone,
        customer_address=data.customer_address.strip(),
        items=items,
        subtotal=subtotal,
        gst=0,
        delivery_status=DeliveryStatus.ORDER_CONFIRMED.value,
        notes="DIY Kit Order",
    )

    def work():
        db.add(order)
        db.flush()
        return order

    run_in_transaction(db, work)
    db.refresh(order)

    logger.bind(log_type="payment").info(
        f"DIY Order Created | bill={bill_id} | order={order.gateway_order_id} | amount={amount_minor}"
    )
    return order
