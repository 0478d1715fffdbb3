import uuid
from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, Uuid

from marketplace.core.clock import utcnow
from marketplace.db.base import Base
from marketplace.db.models._types import str_enum


class CommissionStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    PAID = "paid"
    CANCELLED = "cancelled"


class AffiliateCommission(Base):
    __tablename__ = 'affiliate_commissions'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    affiliate_id = Column(Uuid, ForeignKey('users.id'), nullable=False, index=True)
    order_id = Column(Uuid, ForeignKey('orders.id', ondelete='CASCADE'), nullable=False, index=True)
    product_id = Column(Uuid, ForeignKey('products.id'), nullable=False)
    order_item_amount = Column(Numeric(10, 2), nullable=False)
    commission_percent = Column(Numeric(5, 2), nullable=False)
    commission_amount = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    status = Column(str_enum(CommissionStatus, "commission_status"), nullable=False, default=CommissionStatus.PENDING)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
