from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.dependencies import get_db, get_gateway, get_optional_principal
from app.core.errors import AuthError
from app.gateways.base import PaymentGateway
from app.models.enums import PaymentStatus
from app.models.order import Order
from app.schemas.order import CreateDiyOrderRequest, OrderOut
from app.schemas.payment import VerifyPaymentRequest
from app.services import checkout, verification

router = APIRouter(prefix="/api", tags=["DIY Orders"])


# =====================================================================
#                           CREATE DIY ORDER
# =====================================================================
@router.post("/create-diy-order")
def create_diy_order(
    data: CreateDiyOrderRequest,
    request: Request,
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_gateway),
    principal=Depends(get_optional_principal),
):
    user, _ = principal
    order = checkout.create_diy_order(
        db,
        gateway,
        get_settings(),
        amount=data.amount,
        data=data.order_data,
        user=user,
        request_base_url=str(request.base_url),
    )

    return {
        "success": True,
        "provider": gateway.name,
        "order_id": order.gateway_order_id,
        "session_id": order.gateway_session_id,
        "internal_bill_id": order.internal_bill_id,
        "db_order_id": order.id,
        "amount": order.amount,
        "currency": order.currency,
        "key_id": getattr(gateway, "key_id", None),
    }


# =====================================================================
#                           VERIFY / STATUS
# =====================================================================
@router.post("/verify-diy-payment")
def verify_diy_payment(
    data: VerifyPaymentRequest,
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_gateway),
):
    order, _ = verification.verify_payment(
        db, gateway, data.order_id, data.payment_id, data.signature, kind="diy"
    )
    paid = order.payment_status == PaymentStatus.PAID.value

    return {
        "success": paid,
        "message": "Payment verified successfully" if paid else "Payment was not captured",
        "payment_status": order.payment_status,
        "order": OrderOut.model_validate(order),
    }


@router.get("/check-diy-payment-status/{order_id}")
def check_diy_payment_status(order_id: str, db: Session = Depends(get_db)):
    order, _ = verification.payment_status(db, order_id, kind="diy")
    return {
        "success": True,
        "payment_status": order.payment_status,
        "delivery_status": order.delivery_status,
        "order": OrderOut.model_validate(order),
    }


# =====================================================================
#                           MY ORDERS
# =====================================================================
@router.get("/my-diy-orders")
def my_diy_orders(
    email: str | None = Query(default=None),
    db: Session = Depends(get_db),
    principal=Depends(get_optional_principal),
):
    user, _ = principal
    query = db.query(Order).filter(Order.payment_status == PaymentStatus.PAID.value)

    if user is not None:
        query = query.filter(Order.user_id == user.id)
    elif email:
        query = query.filter(Order.customer_email == email.strip().lower())
    else:
        raise AuthError()

    orders = query.order_by(Order.created_at.desc(), Order.id.desc()).all()
    return {"success": True, "orders": [OrderOut.model_validate(o) for o in orders]}
