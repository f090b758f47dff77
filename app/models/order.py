from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON, Text
from sqlalchemy.orm import relationship

from app.db.session import Base
from app.models.enums import DeliveryStatus
from app.models.mixins import PaymentStateMixin


class Order(PaymentStateMixin, Base):
    """DIY kit order. No slot, no refund path."""

    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    customer_name = Column(String, nullable=False)
    customer_email = Column(String, nullable=False, index=True)
    customer_phone = Column(String, nullable=False)
    customer_address = Column(Text, nullable=False)

    # [{"name", "quantity", "unit_price", "total"}], prices in minor units
    items = Column(JSON, nullable=False, default=list)
    subtotal = Column(Integer, nullable=False)
    gst = Column(Integer, nullable=False, default=0)

    delivery_status = Column(String, nullable=False, default=DeliveryStatus.ORDER_CONFIRMED.value)
    delivery_time = Column(String, nullable=True)
    delivery_status_updated_at = Column(DateTime, nullable=True)

    notes = Column(Text, nullable=True)

    version = Column(Integer, nullable=False)

    user = relationship("User", back_populates="orders")

    __mapper_args__ = {"version_id_col": version}
