from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class PlatformFeeUpdate(BaseModel):
    # null clears the override
    platform_fee_percent: Optional[float] = Field(None, ge=0, le=100)


class PlatformFeeRead(BaseModel):
    seller_id: UUID
    platform_fee_percent: Decimal
    using_default: bool


class SellerRestrictionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    seller_id: UUID
    payment_restricted: bool
    payment_restricted_at: Optional[datetime] = None


class OrderGateRead(BaseModel):
    seller_id: UUID
    can_create_orders: bool
