from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, JSON

from app.db.session import Base
from app.models.enums import LedgerRefundStatus


class Payment(Base):
    """Ledger row written once a payment is captured. Never deleted."""

    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)

    gateway_provider = Column(String, nullable=False)
    gateway_payment_id = Column(String, unique=True, index=True, nullable=False)
    gateway_order_id = Column(String, index=True, nullable=False)

    # Link to booking / order
    internal_bill_id = Column(String, index=True, nullable=False)
    order_type = Column(String, nullable=False)  # booking | diy

    amount = Column(Integer, nullable=False)  # minor units
    currency = Column(String, nullable=False, default="INR")
    status = Column(String, nullable=False, default="paid")  # paid | partially_refunded | refunded
    method = Column(String, nullable=True)

    email = Column(String, nullable=True)
    contact = Column(String, nullable=True)

    # Card
    card_last4 = Column(String, nullable=True)
    card_network = Column(String, nullable=True)
    card_type = Column(String, nullable=True)
    card_issuer = Column(String, nullable=True)

    # UPI
    upi_vpa = Column(String, nullable=True)
    bank_transaction_id = Column(String, nullable=True)

    # Netbanking / wallet
    bank = Column(String, nullable=True)
    wallet_name = Column(String, nullable=True)

    # Refund aggregate (bookings only)
    refund_status = Column(String, nullable=False, default=LedgerRefundStatus.NEVER.value)
    refund_amount = Column(Integer, nullable=False, default=0)
    refund_ids = Column(JSON, nullable=False, default=list)

    items = Column(JSON, nullable=False, default=list)
    gateway_payload = Column(JSON, nullable=True)  # verbatim gateway payment

    paid_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}
