import logging
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from marketplace.core.clock import utcnow
from marketplace.core.exceptions import NotFoundError
from marketplace.db.models.product import Product, ProductStatus
from marketplace.db.models.seller_settings import SellerSettings
from marketplace.db.models.user import User, UserType

logger = logging.getLogger(__name__)


async def get_seller_settings(db: AsyncSession, seller_id: UUID) -> Optional[SellerSettings]:
    result = await db.execute(select(SellerSettings).where(SellerSettings.seller_id == seller_id))
    return result.scalars().first()


async def get_notification_prefs(db: AsyncSession, seller_id: UUID) -> Dict[str, Any]:
    seller_settings = await get_seller_settings(db, seller_id)
    if seller_settings is None:
        return {"telegram_chat_id": None, "notifications_orders": True, "shipping_countries": []}
    return {
        "telegram_chat_id": seller_settings.telegram_chat_id,
        "notifications_orders": seller_settings.notifications_orders,
        "shipping_countries": seller_settings.shipping_countries or [],
    }


async def has_payment_restriction(db: AsyncSession, seller_id: UUID) -> bool:
    seller_settings = await get_seller_settings(db, seller_id)
    return bool(seller_settings and seller_settings.payment_restricted)


async def can_seller_create_orders(db: AsyncSession, seller_id: UUID) -> bool:
    """Sellers without a settings row are never restricted."""
    return not await has_payment_restriction(db, seller_id)


async def _get_seller(db: AsyncSession, seller_id: UUID) -> User:
    result = await db.execute(
        select(User).where(User.id == seller_id, User.user_type == UserType.SELLER)
    )
    seller = result.scalars().first()
    if seller is None:
        raise NotFoundError("Seller not found")
    return seller


async def freeze_seller(db: AsyncSession, seller_id: UUID) -> SellerSettings:
    """Restrict a seller and take their active products off sale."""
    await _get_seller(db, seller_id)
    seller_settings = await get_seller_settings(db, seller_id)
    if seller_settings is None:
        seller_settings = SellerSettings(seller_id=seller_id)
        db.add(seller_settings)

    seller_settings.payment_restricted = True
    seller_settings.payment_restricted_at = utcnow()
    result = await db.execute(
        update(Product)
        .where(Product.seller_id == seller_id, Product.status == ProductStatus.ACTIVE)
        .values(status=ProductStatus.INACTIVE)
    )
    await db.commit()
    logger.info(f"Seller {seller_id} frozen, {result.rowcount} products deactivated")
    return seller_settings


async def unfreeze_seller(db: AsyncSession, seller_id: UUID) -> SellerSettings:
    await _get_seller(db, seller_id)
    seller_settings = await get_seller_settings(db, seller_id)
    if seller_settings is None:
        raise NotFoundError("Seller settings not found")

    seller_settings.payment_restricted = False
    seller_settings.payment_restricted_at = None
    result = await db.execute(
        update(Product)
        .where(Product.seller_id == seller_id, Product.status == ProductStatus.INACTIVE)
        .values(status=ProductStatus.ACTIVE)
    )
    await db.commit()
    logger.info(f"Seller {seller_id} unfrozen, {result.rowcount} products reactivated")
    return seller_settings
