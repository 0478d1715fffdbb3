import logging
from decimal import Decimal
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from marketplace.core.currency import quantize_money, to_decimal
from marketplace.db.models.affiliate_commission import AffiliateCommission, CommissionStatus
from marketplace.db.models.affiliate_referral import AffiliateReferral
from marketplace.db.models.order import Order, OrderStatus
from marketplace.db.models.order_item import OrderItem
from marketplace.db.models.product import Product
from marketplace.db.models.user import User, UserType

logger = logging.getLogger(__name__)


def commission_status_for(order_status: OrderStatus) -> Optional[CommissionStatus]:
    """Commission status mirrored from an order status, None when unaffected."""
    order_status = OrderStatus(order_status)
    if order_status == OrderStatus.DELIVERED:
        return CommissionStatus.APPROVED
    if order_status in (OrderStatus.CANCELLED, OrderStatus.RETURNED):
        return CommissionStatus.CANCELLED
    return None


class CommissionLedger:
    """Per-line affiliate commissions and their status lifecycle."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def resolve_affiliate(
        self,
        affiliate_id: Optional[UUID] = None,
        referral_code: Optional[str] = None,
    ) -> Tuple[Optional[UUID], Optional[str]]:
        """Return ``(affiliate_id, referral_code)`` to record on a new order.

        An explicit affiliate id wins when it belongs to an affiliate user.
        An unknown or inactive referral code is still kept for tracking.
        """
        if affiliate_id:
            result = await self.db.execute(
                select(User.id).where(User.id == affiliate_id, User.user_type == UserType.AFFILIATE)
            )
            return result.scalar_one_or_none(), None

        if not referral_code:
            return None, None

        result = await self.db.execute(
            select(AffiliateReferral, User)
            .join(User, User.id == AffiliateReferral.affiliate_id)
            .where(AffiliateReferral.referral_code == referral_code)
        )
        row = result.first()
        if row is None:
            logger.warning(f"Unknown referral code: {referral_code}")
            return None, referral_code

        referral, affiliate = row
        if not referral.is_active or affiliate.user_type != UserType.AFFILIATE:
            logger.warning(f"Invalid referral code or inactive affiliate: {referral_code}")
            return None, referral_code
        return affiliate.id, referral_code

    async def create_commissions_for_order(self, order_id: UUID, affiliate_id: UUID) -> List[AffiliateCommission]:
        result = await self.db.execute(select(Order).where(Order.id == order_id))
        order = result.scalars().first()
        if order is None:
            logger.warning(f"Order {order_id} not found, no commissions created")
            return []

        result = await self.db.execute(
            select(OrderItem, Product)
            .join(Product, Product.id == OrderItem.product_id)
            .where(OrderItem.order_id == order_id)
        )

        commissions = []
        for item, product in result.all():
            percent = to_decimal(product.affiliate_commission)
            if percent <= 0:
                continue

            item_amount = quantize_money(item.line_total_base)
            commission = AffiliateCommission(
                affiliate_id=affiliate_id,
                order_id=order_id,
                product_id=product.id,
                order_item_amount=item_amount,
                commission_percent=percent,
                commission_amount=quantize_money(item_amount * percent / Decimal(100)),
                quantity=item.quantity,
                status=CommissionStatus.PENDING,
            )
            self.db.add(commission)
            commissions.append(commission)

        if order.referral_code:
            referral_result = await self.db.execute(
                select(AffiliateReferral).where(AffiliateReferral.referral_code == order.referral_code)
            )
            referral = referral_result.scalars().first()
            if referral is not None:
                referral.total_orders = (referral.total_orders or 0) + 1

        await self.db.commit()
        logger.info(f"Created {len(commissions)} commissions for order {order.order_number}")
        return commissions

    async def update_commission_status(self, order_id: UUID, order_status: OrderStatus) -> int:
        """Mirror an order status onto its commissions. Returns rows changed."""
        new_status = commission_status_for(order_status)
        if new_status is None:
            return 0

        result = await self.db.execute(
            select(AffiliateCommission).where(AffiliateCommission.order_id == order_id)
        )
        changed = 0
        for commission in result.scalars().all():
            if commission.status != new_status:
                commission.status = new_status
                changed += 1

        if changed:
            await self.db.commit()
            logger.info(f"Commissions of order {order_id} moved to {new_status.value} ({changed} rows)")
        return changed

    async def get_commissions_for_order(self, order_id: UUID) -> List[AffiliateCommission]:
        result = await self.db.execute(
            select(AffiliateCommission).where(AffiliateCommission.order_id == order_id)
        )
        return list(result.scalars().all())

    async def commission_total_for_order(self, order_id: UUID) -> Decimal:
        result = await self.db.execute(
            select(func.coalesce(func.sum(AffiliateCommission.commission_amount), 0))
            .where(AffiliateCommission.order_id == order_id)
        )
        return quantize_money(result.scalar_one())
