import uuid
from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String, Uuid
from sqlalchemy.orm import relationship

from marketplace.core.clock import utcnow
from marketplace.db.base import Base
from marketplace.db.models._types import str_enum


class ProductStatus(str, Enum):
    ACTIVE = "active"
    OUT_OF_STOCK = "out_of_stock"
    INACTIVE = "inactive"


class Product(Base):
    __tablename__ = 'products'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    seller_id = Column(Uuid, ForeignKey('users.id'), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    # price shown to MK buyers; base_price is the seller-currency list price
    price = Column(Numeric(10, 2), nullable=False)
    base_price = Column(Numeric(10, 2), nullable=True)
    base_currency = Column(String(3), nullable=True)
    stock = Column(Integer, nullable=False, default=0)
    has_variants = Column(Boolean, nullable=False, default=False)
    affiliate_commission = Column(Numeric(5, 2), nullable=False, default=0)
    status = Column(str_enum(ProductStatus, "product_status"), nullable=False, default=ProductStatus.ACTIVE)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    variants = relationship("ProductVariant", back_populates="product", cascade="all, delete-orphan")
