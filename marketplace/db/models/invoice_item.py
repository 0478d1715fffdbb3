import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String, Uuid
from sqlalchemy.orm import relationship

from marketplace.db.base import Base


class InvoiceItem(Base):
    __tablename__ = 'invoice_items'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    invoice_id = Column(Uuid, ForeignKey('invoices.id', ondelete='CASCADE'), nullable=False, index=True)
    order_id = Column(Uuid, ForeignKey('orders.id'), nullable=False, index=True)
    order_number = Column(String(50), nullable=False)
    delivery_date = Column(DateTime, nullable=False)

    product_price = Column(Numeric(10, 2), nullable=False)
    product_price_mkd = Column(Numeric(10, 2), nullable=True)
    product_price_eur = Column(Numeric(10, 2), nullable=True)

    platform_fee_percent = Column(Numeric(5, 2), nullable=False)
    platform_fee = Column(Numeric(10, 2), nullable=False)
    platform_fee_mkd = Column(Numeric(10, 2), nullable=True)
    platform_fee_eur = Column(Numeric(10, 2), nullable=True)

    affiliate_fee_percent = Column(Numeric(5, 2), nullable=True)
    affiliate_fee = Column(Numeric(10, 2), nullable=False, default=0)
    affiliate_fee_mkd = Column(Numeric(10, 2), nullable=True)
    affiliate_fee_eur = Column(Numeric(10, 2), nullable=True)

    total_owed = Column(Numeric(10, 2), nullable=False)
    total_owed_mkd = Column(Numeric(10, 2), nullable=True)
    total_owed_eur = Column(Numeric(10, 2), nullable=True)

    invoice = relationship("Invoice", back_populates="items")
