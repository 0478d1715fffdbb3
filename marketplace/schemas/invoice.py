from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from marketplace.db.models.invoice import InvoiceStatus


class InvoiceItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    order_id: UUID
    order_number: str
    delivery_date: datetime
    product_price: Decimal
    product_price_mkd: Optional[Decimal] = None
    product_price_eur: Optional[Decimal] = None
    platform_fee_percent: Decimal
    platform_fee: Decimal
    platform_fee_mkd: Optional[Decimal] = None
    platform_fee_eur: Optional[Decimal] = None
    affiliate_fee_percent: Optional[Decimal] = None
    affiliate_fee: Decimal
    affiliate_fee_mkd: Optional[Decimal] = None
    affiliate_fee_eur: Optional[Decimal] = None
    total_owed: Decimal
    total_owed_mkd: Optional[Decimal] = None
    total_owed_eur: Optional[Decimal] = None


class InvoiceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    invoice_number: str
    seller_id: UUID
    week_start_date: date
    week_end_date: date
    due_date: date
    status: InvoiceStatus
    total_amount: Decimal
    total_amount_mkd: Decimal
    total_amount_eur: Decimal
    order_count: int
    paid_at: Optional[datetime] = None
    payment_notes: Optional[str] = None
    created_at: datetime
    items: List[InvoiceItemRead] = []


class MarkInvoicePaid(BaseModel):
    payment_notes: Optional[str] = None
