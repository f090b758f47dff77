from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from app.db.session import Base


class CartItem(Base):
    """One DIY kit line in a user's cart; a kit appears at most once per user."""

    __tablename__ = "cart_items"
    __table_args__ = (UniqueConstraint("user_id", "kit_name", name="uq_cart_items_user_kit"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    kit_name = Column(String, nullable=False)
    # minor units, per kit
    price = Column(Integer, nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="cart_items")
