import uuid

from sqlalchemy import Boolean, Column, ForeignKey, Integer, Numeric, Uuid
from sqlalchemy.orm import relationship

from marketplace.db.base import Base, JSONType


class ProductVariant(Base):
    __tablename__ = 'product_variants'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    product_id = Column(Uuid, ForeignKey('products.id', ondelete='CASCADE'), nullable=False, index=True)
    # falls back to the product base price when null
    price = Column(Numeric(10, 2), nullable=True)
    stock = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    combination = Column(JSONType, nullable=True)

    product = relationship("Product", back_populates="variants")
