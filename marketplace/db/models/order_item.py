import uuid

from sqlalchemy import Column, ForeignKey, Integer, Numeric, String, Uuid
from sqlalchemy.orm import relationship

from marketplace.db.base import Base, JSONType


class OrderItem(Base):
    __tablename__ = 'order_items'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id = Column(Uuid, ForeignKey('orders.id', ondelete='CASCADE'), nullable=False, index=True)
    product_id = Column(Uuid, ForeignKey('products.id'), nullable=False)
    product_name = Column(String(255), nullable=True)
    quantity = Column(Integer, nullable=False)
    # unit prices
    price = Column(Numeric(10, 2), nullable=False)
    base_price = Column(Numeric(10, 2), nullable=True)
    base_currency = Column(String(3), nullable=True)
    variant_id = Column(Uuid, ForeignKey('product_variants.id'), nullable=True)
    variant_combination = Column(JSONType, nullable=True)

    order = relationship("Order", back_populates="items")

    @property
    def line_total_base(self):
        unit = self.base_price if self.base_price is not None else self.price
        return unit * self.quantity
