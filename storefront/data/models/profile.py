from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func

from storefront.data.database import Base


class ProfileModel(Base):
    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True)
    user_id = Column(String(36), nullable=False, unique=True, index=True)

    full_name = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    address = Column(String, nullable=True)
    role = Column(String(20), nullable=False, default="customer")  # customer, admin

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
