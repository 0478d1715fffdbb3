import uuid
from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Numeric, String, Text, Uuid
from sqlalchemy.orm import relationship

from marketplace.core.clock import utcnow
from marketplace.db.base import Base, JSONType
from marketplace.db.models._types import str_enum


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    RETURNED = "returned"


class Order(Base):
    __tablename__ = 'orders'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    order_number = Column(String(50), nullable=False, unique=True)
    seller_id = Column(Uuid, ForeignKey('users.id'), nullable=False, index=True)
    customer_id = Column(Uuid, ForeignKey('users.id'), nullable=False, index=True)
    affiliate_id = Column(Uuid, ForeignKey('users.id'), nullable=True)
    referral_code = Column(String(50), nullable=True)

    # total_amount is in the buyer currency, total_amount_base in the seller's
    total_amount = Column(Numeric(10, 2), nullable=False)
    total_amount_base = Column(Numeric(10, 2), nullable=True)
    buyer_currency = Column(String(3), nullable=True)
    seller_base_currency = Column(String(3), nullable=True)
    exchange_rate = Column(Numeric(10, 4), nullable=True)

    status = Column(str_enum(OrderStatus, "order_status"), nullable=False, default=OrderStatus.PENDING, index=True)
    tracking_id = Column(String(100), nullable=True)
    status_explanation = Column(Text, nullable=True)
    shipping_address = Column(JSONType, nullable=True)

    # null means cash on delivery
    payment_method = Column(String(20), nullable=True, default="cod")
    seller_paid = Column(Boolean, nullable=False, default=False)
    admin_paid = Column(Boolean, nullable=False, default=False)
    payment_settled_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False, index=True)

    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")
