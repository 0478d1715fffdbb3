from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from marketplace.db.models.order import OrderStatus


class ShippingAddress(BaseModel):
    street: str
    city: str
    state: Optional[str] = None
    zip: Optional[str] = None
    country: str
    phone: Optional[str] = None


class OrderItemCreate(BaseModel):
    product_id: UUID
    variant_id: Optional[UUID] = None
    quantity: int = Field(..., ge=1)


class OrderCreate(BaseModel):
    items: List[OrderItemCreate] = Field(..., min_length=1)
    shipping_address: ShippingAddress
    tracking_id: Optional[str] = None
    referral_code: Optional[str] = None
    affiliate_id: Optional[UUID] = None


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    tracking_id: Optional[str] = None
    status_explanation: Optional[str] = None


class OrderCloseRequest(BaseModel):
    """Body of cancel and return requests."""
    explanation: str = Field(..., min_length=1)


class OrderItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    product_id: UUID
    product_name: Optional[str] = None
    quantity: int
    price: Decimal
    base_price: Optional[Decimal] = None
    base_currency: Optional[str] = None
    variant_id: Optional[UUID] = None
    variant_combination: Optional[Dict[str, Any]] = None


class OrderRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    order_number: str
    seller_id: UUID
    customer_id: UUID
    affiliate_id: Optional[UUID] = None
    referral_code: Optional[str] = None
    total_amount: Decimal
    total_amount_base: Optional[Decimal] = None
    buyer_currency: Optional[str] = None
    seller_base_currency: Optional[str] = None
    exchange_rate: Optional[Decimal] = None
    status: OrderStatus
    tracking_id: Optional[str] = None
    status_explanation: Optional[str] = None
    shipping_address: Optional[Dict[str, Any]] = None
    payment_method: Optional[str] = None
    seller_paid: bool
    payment_settled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    items: List[OrderItemRead] = []


class OrderCreationError(BaseModel):
    seller_id: str
    error: str


class OrderCreationResult(BaseModel):
    orders_created: int
    orders: List[OrderRead]
    errors: List[OrderCreationError] = []
