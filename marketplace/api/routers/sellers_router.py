from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.auth import CurrentUser, require_admin, require_seller
from marketplace.api.deps import get_fee_resolver
from marketplace.db.base import get_db
from marketplace.schemas.seller import OrderGateRead, PlatformFeeRead, PlatformFeeUpdate, SellerRestrictionRead
from marketplace.services.sellers.fee_resolver import FeeResolver
from marketplace.services.sellers.settings_service import can_seller_create_orders, freeze_seller, unfreeze_seller

router = APIRouter()

@router.get("/admin/sellers/{seller_id}/platform-fee", response_model=PlatformFeeRead)
async def get_platform_fee(
    seller_id: UUID,
    _: CurrentUser = Depends(require_admin),
    fee_resolver: FeeResolver = Depends(get_fee_resolver),
):
    return await fee_resolver.describe(seller_id)

@router.put("/admin/sellers/{seller_id}/platform-fee", response_model=PlatformFeeRead)
async def update_platform_fee(
    seller_id: UUID,
    payload: PlatformFeeUpdate,
    _: CurrentUser = Depends(require_admin),
    fee_resolver: FeeResolver = Depends(get_fee_resolver),
):
    """
    Set a seller's platform fee override; null reverts to the platform default.
    """
    return await fee_resolver.set_seller_override(seller_id, payload.platform_fee_percent)

@router.post("/admin/sellers/{seller_id}/freeze", response_model=SellerRestrictionRead)
async def freeze(
    seller_id: UUID,
    _: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await freeze_seller(db, seller_id)

@router.post("/admin/sellers/{seller_id}/unfreeze", response_model=SellerRestrictionRead)
async def unfreeze(
    seller_id: UUID,
    _: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await unfreeze_seller(db, seller_id)

@router.get("/seller/order-gate", response_model=OrderGateRead)
async def get_order_gate(
    current_user: CurrentUser = Depends(require_seller),
    db: AsyncSession = Depends(get_db),
):
    return {
        "seller_id": current_user.id,
        "can_create_orders": await can_seller_create_orders(db, current_user.id),
    }
