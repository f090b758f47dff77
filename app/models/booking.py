from sqlalchemy import Column, Integer, String, Date, DateTime, Boolean, ForeignKey, JSON, Text
from sqlalchemy.orm import relationship

from app.db.session import Base
from app.models.enums import BookingStatus, RefundStatus
from app.models.mixins import PaymentStateMixin


class Booking(PaymentStateMixin, Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    # ---- CUSTOMER ----
    user_email = Column(String, nullable=False, index=True)
    user_name = Column(String, nullable=False)
    user_phone = Column(String, nullable=False)
    user_address = Column(String, nullable=True)

    # ---- SLOT ----
    activity_name = Column(String, nullable=False)
    combo_name = Column(String, nullable=True)
    selected_activities = Column(JSON, nullable=False, default=list)
    booking_date = Column(Date, nullable=False, index=True)
    booking_time_slot = Column(String, nullable=False)
    participants = Column(Integer, nullable=False, default=1)

    status = Column(String, nullable=False, default=BookingStatus.PENDING.value, index=True)

    # ---- REFUND ----
    refund_id = Column(String, nullable=True)
    refund_status = Column(String, nullable=False, default=RefundStatus.NONE.value)
    refund_amount = Column(Integer, nullable=False, default=0)  # minor units
    refund_reason = Column(Text, nullable=True)
    refund_initiated_at = Column(DateTime, nullable=True)
    refund_processed_at = Column(DateTime, nullable=True)
    gateway_refund_data = Column(JSON, nullable=True)

    # ---- RESCHEDULE ----
    is_updated = Column(Boolean, nullable=False, default=False)
    original_booking_date = Column(Date, nullable=True)
    original_booking_time_slot = Column(String, nullable=True)
    updated_booking_date = Column(Date, nullable=True)
    updated_booking_time_slot = Column(String, nullable=True)

    # ---- BALANCE PAYMENT (activity upgrade) ----
    balance_amount = Column(Integer, nullable=False, default=0)
    balance_payment_order_id = Column(String, unique=True, index=True, nullable=True)
    balance_payment_id = Column(String, nullable=True)
    balance_payment_status = Column(String, nullable=True)
    balance_payment_method = Column(String, nullable=True)
    # gateway refunds that returned the difference on an activity downgrade
    adjustment_refund_ids = Column(JSON, nullable=False, default=list)

    notes = Column(Text, nullable=True)

    # optimistic concurrency
    version = Column(Integer, nullable=False)

    user = relationship("User", back_populates="bookings")

    __mapper_args__ = {"version_id_col": version}
