import logging
from decimal import Decimal
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from marketplace.core.config import get_settings
from marketplace.core.currency import to_decimal
from marketplace.db.models.platform_settings import MAIN_SETTINGS_KEY, PlatformSettings
from marketplace.db.models.seller_settings import SellerSettings

logger = logging.getLogger(__name__)


class FeeResolver:
    """Resolves the platform fee percent charged to a seller."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_platform_settings(self) -> PlatformSettings:
        result = await self.db.execute(
            select(PlatformSettings).where(PlatformSettings.key == MAIN_SETTINGS_KEY)
        )
        platform_settings = result.scalars().first()
        if platform_settings is None:
            default = get_settings().DEFAULT_PLATFORM_FEE_PERCENT
            platform_settings = PlatformSettings(key=MAIN_SETTINGS_KEY, platform_fee_percent=to_decimal(default))
            self.db.add(platform_settings)
            await self.db.commit()
            logger.info(f"Created platform settings with default fee {default}%")
        return platform_settings

    async def get_platform_default(self) -> Decimal:
        platform_settings = await self.get_platform_settings()
        return to_decimal(platform_settings.platform_fee_percent)

    async def set_platform_default(self, percent: float) -> Decimal:
        platform_settings = await self.get_platform_settings()
        platform_settings.platform_fee_percent = to_decimal(percent)
        await self.db.commit()
        return to_decimal(platform_settings.platform_fee_percent)

    async def get_seller_override(self, seller_id: UUID) -> Optional[Decimal]:
        result = await self.db.execute(
            select(SellerSettings.platform_fee_percent).where(SellerSettings.seller_id == seller_id)
        )
        value = result.scalar_one_or_none()
        return to_decimal(value) if value is not None else None

    async def resolve(self, seller_id: UUID) -> Decimal:
        """Effective fee percent: the seller override, else the platform default."""
        override = await self.get_seller_override(seller_id)
        if override is not None:
            return override
        return await self.get_platform_default()

    get_effective_platform_fee_percent = resolve

    async def set_seller_override(self, seller_id: UUID, percent: Optional[float]) -> Dict[str, Any]:
        """Set or clear (``percent=None``) the seller's fee override."""
        result = await self.db.execute(select(SellerSettings).where(SellerSettings.seller_id == seller_id))
        seller_settings = result.scalars().first()
        value = to_decimal(percent) if percent is not None else None

        if seller_settings is None:
            seller_settings = SellerSettings(seller_id=seller_id, platform_fee_percent=value)
            self.db.add(seller_settings)
        else:
            seller_settings.platform_fee_percent = value
        await self.db.commit()

        logger.info(f"Platform fee override for seller {seller_id} set to {value}")
        return await self.describe(seller_id)

    async def describe(self, seller_id: UUID) -> Dict[str, Any]:
        override = await self.get_seller_override(seller_id)
        effective = override if override is not None else await self.get_platform_default()
        return {
            "seller_id": seller_id,
            "platform_fee_percent": effective,
            "using_default": override is None,
        }
