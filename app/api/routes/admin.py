from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.dependencies import get_db, require_admin
from app.core.errors import NotFound
from app.core.logging_config import get_logger
from app.models.booking import Booking
from app.models.enums import OrderType, PaymentStatus
from app.models.order import Order
from app.models.payment import Payment
from app.models.user import User
from app.schemas.booking import BookingOut
from app.schemas.order import DeliveryStatusUpdate, OrderOut
from app.services.store import run_in_transaction

router = APIRouter(prefix="/api", tags=["Admin"])
logger = get_logger()


# =====================================================================
#                           ALL BOOKINGS / ORDERS
# =====================================================================
@router.get("/all-bookings")
def all_bookings(admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    bookings = db.query(Booking).order_by(Booking.created_at.desc(), Booking.id.desc()).all()
    logger.bind(log_type="admin").info(f"{admin.email} listed {len(bookings)} bookings")
    return {"success": True, "bookings": [BookingOut.model_validate(b) for b in bookings]}


@router.get("/all-diy-orders")
def all_diy_orders(admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    orders = (
        db.query(Order)
        .filter(Order.payment_status == PaymentStatus.PAID.value)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )
    return {"success": True, "orders": [OrderOut.model_validate(o) for o in orders]}


# =====================================================================
#                           DELIVERY STATUS
# =====================================================================
@router.post("/update-delivery-status/{order_id}")
def update_delivery_status(
    order_id: int,
    data: DeliveryStatusUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if not db.query(Order.id).filter(Order.id == order_id).first():
        raise NotFound("Order not found")

    def work():
        order = db.query(Order).filter(Order.id == order_id).populate_existing().one()
        order.delivery_status = data.delivery_status.value
        order.delivery_status_updated_at = datetime.utcnow()
        if data.delivery_time is not None:
            order.delivery_time = data.delivery_time.strip() or None
        return order

    order = run_in_transaction(db, work)
    db.refresh(order)

    logger.bind(log_type="admin").info(
        f"{admin.email} set order {order.internal_bill_id} delivery -> {order.delivery_status}"
    )
    return {
        "success": True,
        "message": "Delivery status updated successfully",
        "order": OrderOut.model_validate(order),
    }


# =====================================================================
#                           STATS
# =====================================================================
@router.get("/admin/stats")
def admin_stats(admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    paid_bookings = db.query(Booking).filter(
        Booking.payment_status == PaymentStatus.PAID.value
    ).count()
    paid_orders = db.query(Order).filter(
        Order.payment_status == PaymentStatus.PAID.value
    ).count()

    captured = db.query(func.sum(Payment.amount)).scalar() or 0
    refunded = db.query(func.sum(Payment.refund_amount)).scalar() or 0
    booking_revenue = db.query(func.sum(Payment.amount)).filter(
        Payment.order_type == OrderType.BOOKING.value
    ).scalar() or 0
    diy_revenue = db.query(func.sum(Payment.amount)).filter(
        Payment.order_type == OrderType.DIY.value
    ).scalar() or 0

    logger.bind(log_type="admin").info(f"{admin.email} checked stats")

    return {
        "success": True,
        "paid_bookings": paid_bookings,
        "paid_diy_orders": paid_orders,
        "captured_amount": int(captured),
        "refunded_amount": int(refunded),
        "net_amount": int(captured) - int(refunded),
        "booking_revenue": int(booking_revenue),
        "diy_revenue": int(diy_revenue),
        "total_users": db.query(User).count(),
    }
