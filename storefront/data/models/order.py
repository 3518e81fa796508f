from sqlalchemy import Column, Integer, String, DateTime, Numeric
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from storefront.data.database import Base


def _now():
    return datetime.now(timezone.utc)


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    user_id = Column(String(36), nullable=False, index=True)

    status = Column(String(20), nullable=False, default="new")  # new, processing, shipped, completed, canceled
    payment_status = Column(String(20), nullable=False, default="pending")  # pending, success, failed
    payment_method = Column(String(20), nullable=False, default="razorpay")  # razorpay, cod
    payment_id = Column(String, nullable=True)
    gateway_order_id = Column(String, nullable=True)

    total_amount = Column(Numeric(10, 2), nullable=False)

    shipping_name = Column(String, nullable=False)
    shipping_email = Column(String, nullable=False)
    shipping_phone = Column(String, nullable=False)
    shipping_address = Column(String, nullable=False)
    shipping_city = Column(String, nullable=False)
    shipping_state = Column(String, nullable=False)
    shipping_pincode = Column(String, nullable=False)

    # set once, together with the stock decrement for this order
    stock_decremented_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)

    items = relationship(
        "OrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
    )
