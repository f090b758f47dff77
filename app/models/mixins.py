from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, JSON

from app.models.enums import PaymentStatus


class PaymentStateMixin:
    """Gateway identifiers + payment sub-state shared by bookings and DIY orders."""

    internal_bill_id = Column(String, unique=True, index=True, nullable=False)

    gateway_provider = Column(String, nullable=False)  # razorpay | cashfree
    gateway_order_id = Column(String, unique=True, index=True, nullable=True)
    # order id issued by a previous provider, kept while migrating
    legacy_order_id = Column(String, index=True, nullable=True)
    gateway_session_id = Column(String, nullable=True)
    gateway_payment_id = Column(String, index=True, nullable=True)
    gateway_signature = Column(String, nullable=True)
    gateway_payment_data = Column(JSON, nullable=True)

    amount = Column(Integer, nullable=False)  # minor units
    currency = Column(String, nullable=False, default="INR")
    payment_status = Column(String, nullable=False, default=PaymentStatus.PENDING_PAYMENT.value)
    payment_method = Column(String, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
