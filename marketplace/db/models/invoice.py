import uuid
from enum import Enum

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import relationship

from marketplace.core.clock import utcnow
from marketplace.db.base import Base
from marketplace.db.models._types import str_enum


class InvoiceStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class Invoice(Base):
    __tablename__ = 'invoices'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    invoice_number = Column(String(64), nullable=False, unique=True)
    seller_id = Column(Uuid, ForeignKey('users.id'), nullable=False, index=True)
    week_start_date = Column(Date, nullable=False)
    week_end_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    status = Column(str_enum(InvoiceStatus, "invoice_status"), nullable=False, default=InvoiceStatus.PENDING, index=True)
    total_amount = Column(Numeric(10, 2), nullable=False, default=0)
    total_amount_mkd = Column(Numeric(10, 2), nullable=False, default=0)
    total_amount_eur = Column(Numeric(10, 2), nullable=False, default=0)
    order_count = Column(Integer, nullable=False, default=0)
    paid_at = Column(DateTime, nullable=True)
    payment_notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    items = relationship("InvoiceItem", back_populates="invoice", cascade="all, delete-orphan")
