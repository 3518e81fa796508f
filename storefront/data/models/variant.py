from sqlalchemy import Column, Integer, String, DateTime, Numeric, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from storefront.data.database import Base


class VariantModel(Base):
    __tablename__ = "variants"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)

    size = Column(String(20), nullable=False)  # 250g, 500g, 1kg
    grind_type = Column(String(20), nullable=False)  # whole_bean, coarse, medium, fine
    price = Column(Numeric(10, 2), nullable=False)
    stock_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    product = relationship("ProductModel", back_populates="variants")

    __table_args__ = (CheckConstraint("stock_count >= 0", name="ck_variant_stock_non_negative"),)
