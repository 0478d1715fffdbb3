import logging
import secrets
import string
import time
from collections import OrderedDict
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from marketplace.core.config import get_settings
from marketplace.core.currency import (
    base_currency_for_market,
    buyer_currency_for_country,
    convert_and_round,
    get_exchange_rate,
    round_amount,
    to_decimal,
)
from marketplace.core.exceptions import BadRequestError, ForbiddenError, NotFoundError
from marketplace.crud.order import get_order
from marketplace.db.models.order import Order, OrderStatus
from marketplace.db.models.order_item import OrderItem
from marketplace.db.models.product import Product, ProductStatus
from marketplace.db.models.product_variant import ProductVariant
from marketplace.db.models.user import User
from marketplace.services.affiliate.commission_ledger import CommissionLedger
from marketplace.schemas.notification import NotificationType
from marketplace.services.notifications.dispatcher import NotificationDispatcher, notification_type_for
from marketplace.services.orders.state_machine import EXPLAINED_STATUSES, validate_transition
from marketplace.services.sellers.settings_service import get_notification_prefs, get_seller_settings, has_payment_restriction

logger = logging.getLogger(__name__)

CUSTOMER = "customer"
SELLER = "seller"

_BASE36 = string.digits + string.ascii_uppercase


def _base36(number: int) -> str:
    digits = ""
    while number:
        number, rem = divmod(number, 36)
        digits = _BASE36[rem] + digits
    return digits or "0"


def generate_order_number() -> str:
    suffix = "".join(secrets.choice(_BASE36) for _ in range(6))
    return f"ORD-{_base36(int(time.time() * 1000))}-{suffix}"


class OrderService:
    """Order status lifecycle and order creation for a single DB session."""

    def __init__(
        self,
        db: AsyncSession,
        notifier: Optional[NotificationDispatcher] = None,
        ledger: Optional[CommissionLedger] = None,
    ):
        self.db = db
        self.notifier = notifier or NotificationDispatcher()
        self.ledger = ledger or CommissionLedger(db)

    async def _get_locked_order(self, order_id: UUID) -> Order:
        order = await get_order(self.db, order_id, for_update=True)
        if order is None:
            raise NotFoundError("Order not found")
        return order

    async def _restore_stock(self, order: Order) -> None:
        """Put every line's quantity back on the shelf. Caller commits."""
        product_ids = {item.product_id for item in order.items}
        if not product_ids:
            return
        result = await self.db.execute(
            select(Product).where(Product.id.in_(product_ids)).with_for_update()
        )
        products = {product.id: product for product in result.scalars().all()}

        variant_ids = {item.variant_id for item in order.items if item.variant_id}
        variants = {}
        if variant_ids:
            result = await self.db.execute(
                select(ProductVariant).where(ProductVariant.id.in_(variant_ids)).with_for_update()
            )
            variants = {variant.id: variant for variant in result.scalars().all()}

        for item in order.items:
            product = products.get(item.product_id)
            if product is None:
                logger.warning(f"Product {item.product_id} of order {order.order_number} no longer exists")
                continue
            product.stock = (product.stock or 0) + item.quantity
            if product.status == ProductStatus.OUT_OF_STOCK and product.stock > 0:
                product.status = ProductStatus.ACTIVE
            variant = variants.get(item.variant_id)
            if variant is not None:
                variant.stock = (variant.stock or 0) + item.quantity

    async def update_status(
        self,
        order_id: UUID,
        seller_id: UUID,
        status: OrderStatus,
        tracking_id: Optional[str] = None,
        status_explanation: Optional[str] = None,
    ) -> Order:
        order = await self._get_locked_order(order_id)
        if order.seller_id != seller_id:
            raise ForbiddenError("You do not have access to this order")

        target = OrderStatus(status)
        validate_transition(order.status, target)

        explanation = (status_explanation or "").strip()
        if target in EXPLAINED_STATUSES:
            if not explanation:
                raise BadRequestError(f"Status explanation is required when setting status to {target.value}")
            order.status_explanation = explanation
            await self._restore_stock(order)
        else:
            order.status_explanation = None

        order.status = target
        if tracking_id is not None:
            order.tracking_id = tracking_id

        await self.db.commit()
        logger.info(f"Order {order.order_number} moved to {target.value}")

        return await self._after_status_change(order)

    async def cancel(self, order_id: UUID, user_id: UUID, explanation: str, actor: str = CUSTOMER) -> Order:
        order = await self._get_locked_order(order_id)
        self._check_actor(order, user_id, actor)

        if order.status == OrderStatus.CANCELLED:
            raise BadRequestError("Order is already cancelled")
        if order.status == OrderStatus.DELIVERED:
            raise BadRequestError("Cannot cancel a delivered order")
        if order.status == OrderStatus.RETURNED:
            raise BadRequestError("Order is already returned")
        return await self._close_order(order, OrderStatus.CANCELLED, explanation)

    async def return_order(self, order_id: UUID, user_id: UUID, explanation: str, actor: str = CUSTOMER) -> Order:
        order = await self._get_locked_order(order_id)
        self._check_actor(order, user_id, actor)

        if order.status == OrderStatus.RETURNED:
            raise BadRequestError("Order is already returned")
        if order.status == OrderStatus.CANCELLED:
            raise BadRequestError("Cannot return a cancelled order")
        if order.status != OrderStatus.DELIVERED:
            raise BadRequestError("Only delivered orders can be returned")
        return await self._close_order(order, OrderStatus.RETURNED, explanation)

    @staticmethod
    def _check_actor(order: Order, user_id: UUID, actor: str) -> None:
        owner_id = order.seller_id if actor == SELLER else order.customer_id
        if owner_id != user_id:
            raise ForbiddenError("You do not have access to this order")

    async def _close_order(self, order: Order, status: OrderStatus, explanation: str) -> Order:
        explanation = (explanation or "").strip()
        if not explanation:
            raise BadRequestError(f"Status explanation is required when setting status to {status.value}")

        # stock and status land in the same commit
        await self._restore_stock(order)
        order.status = status
        order.status_explanation = explanation
        await self.db.commit()
        logger.info(f"Order {order.order_number} {status.value}, stock restored")

        return await self._after_status_change(order)

    async def _reload(self, order_id: UUID) -> Order:
        """Re-read an order after a rollback expired the session state."""
        await self.db.rollback()
        return await get_order(self.db, order_id, refresh=True)

    async def _after_status_change(self, order: Order) -> Order:
        """Best-effort side effects; the status change is already committed."""
        order_id, order_number = order.id, order.order_number
        status = OrderStatus(order.status)

        if order.affiliate_id:
            try:
                await self.ledger.update_commission_status(order_id, status)
            except Exception as e:
                logger.error(f"Failed to sync commissions for order {order_number}: {str(e)}", exc_info=True)
                order = await self._reload(order_id)

        try:
            prefs = await get_notification_prefs(self.db, order.seller_id)
            emails = await self._get_emails([order.seller_id, order.customer_id])
        except Exception as e:
            logger.error(f"Failed to load notification targets for order {order.order_number}: {str(e)}", exc_info=True)
            return order

        closed = status in EXPLAINED_STATUSES
        if closed and prefs["telegram_chat_id"] and prefs["notifications_orders"]:
            await self.notifier.send_order_alert(prefs["telegram_chat_id"], order)

        type = notification_type_for(status)
        metadata = {"newStatus": status.value, "trackingId": order.tracking_id}
        await self.notifier.notify_order_event(
            order.customer_id, type, order.id, order.order_number, metadata, is_customer=True
        )
        if order.seller_id != order.customer_id:
            await self.notifier.notify_order_event(
                order.seller_id, type, order.id, order.order_number, metadata, is_customer=False
            )

        await self.notifier.send_order_status_email(emails.get(order.customer_id), order)
        if closed:
            kind = "order_cancelled" if status == OrderStatus.CANCELLED else "order_returned"
            await self.notifier.send_seller_notification(
                emails.get(order.seller_id),
                kind,
                {"order_number": order.order_number, "explanation": order.status_explanation},
            )
        return order

    async def _get_emails(self, user_ids: List[UUID]) -> Dict[UUID, str]:
        result = await self.db.execute(select(User.id, User.email).where(User.id.in_(set(user_ids))))
        return {user_id: email for user_id, email in result.all()}

    async def create_orders(
        self,
        customer_id: UUID,
        items: List[Dict[str, Any]],
        shipping_address: Dict[str, Any],
        referral_code: Optional[str] = None,
        affiliate_id: Optional[UUID] = None,
        tracking_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Split a cart into one order per seller.

        A failure for one seller does not prevent orders for the others.

        Returns:
            Dictionary with ``orders_created``, ``orders`` and ``errors``.
        """
        if not items:
            raise BadRequestError("Order must contain at least one item")

        items_by_seller = await self._group_items_by_seller(items)
        order_ids = []
        errors = []
        for seller_id, seller_items in items_by_seller.items():
            try:
                order = await self._create_order_for_seller(
                    seller_id, seller_items, customer_id, shipping_address,
                    referral_code, affiliate_id, tracking_id,
                )
                order_ids.append(order.id)
            except Exception as e:
                await self.db.rollback()
                detail = getattr(e, "detail", None) or str(e)
                logger.error(f"Failed to create order for seller {seller_id}: {detail}")
                errors.append({"seller_id": str(seller_id), "error": detail})

        if not order_ids:
            raise BadRequestError(f"Failed to create any orders. Errors: {errors}")

        # a rollback for a later seller expires the earlier orders
        orders = [await get_order(self.db, order_id, refresh=True) for order_id in order_ids]
        return {"orders_created": len(orders), "orders": orders, "errors": errors}

    async def _group_items_by_seller(self, items: List[Dict[str, Any]]) -> "OrderedDict[UUID, List[Dict[str, Any]]]":
        grouped = OrderedDict()
        for item in items:
            result = await self.db.execute(select(Product.seller_id).where(Product.id == item["product_id"]))
            seller_id = result.scalar_one_or_none()
            if seller_id is None:
                raise NotFoundError(f"Product with ID {item['product_id']} not found")
            grouped.setdefault(seller_id, []).append(item)
        return grouped

    async def _create_order_for_seller(
        self,
        seller_id: UUID,
        items: List[Dict[str, Any]],
        customer_id: UUID,
        shipping_address: Dict[str, Any],
        referral_code: Optional[str],
        affiliate_id: Optional[UUID],
        tracking_id: Optional[str],
    ) -> Order:
        seller = await self.db.get(User, seller_id)
        if seller is None:
            raise NotFoundError(f"Seller with ID {seller_id} not found")
        seller_email = seller.email

        if await has_payment_restriction(self.db, seller_id):
            raise BadRequestError(
                "Cannot create orders. Seller has overdue invoices. "
                "Please pay outstanding invoices to continue."
            )

        seller_currency = base_currency_for_market(seller.market)
        buyer_currency = buyer_currency_for_country(shipping_address.get("country"))
        exchange_rate = get_exchange_rate()

        total_amount = Decimal("0")
        total_amount_base = Decimal("0")
        order_items = []
        for item in items:
            order_item = await self._reserve_line(item, seller_id, seller_currency, buyer_currency, exchange_rate)
            total_amount += order_item.price * order_item.quantity
            total_amount_base += order_item.base_price * order_item.quantity
            order_items.append(order_item)

        await self._validate_shipping_country(seller_id, shipping_address.get("country"))

        resolved_affiliate_id, resolved_referral_code = await self.ledger.resolve_affiliate(
            affiliate_id, referral_code
        )

        order = Order(
            order_number=generate_order_number(),
            seller_id=seller_id,
            customer_id=customer_id,
            affiliate_id=resolved_affiliate_id,
            referral_code=resolved_referral_code,
            total_amount=round_amount(total_amount, buyer_currency),
            total_amount_base=round_amount(total_amount_base, seller_currency),
            buyer_currency=buyer_currency.value,
            seller_base_currency=seller_currency.value,
            exchange_rate=exchange_rate,
            status=OrderStatus.PENDING,
            payment_method="cod",
            tracking_id=tracking_id,
            shipping_address=dict(shipping_address),
            items=order_items,
        )
        self.db.add(order)
        await self.db.commit()
        logger.info(f"Created order {order.order_number} for seller {seller_id} ({len(order_items)} lines)")

        if resolved_affiliate_id:
            order_id, order_number = order.id, order.order_number
            try:
                await self.ledger.create_commissions_for_order(order_id, resolved_affiliate_id)
            except Exception as e:
                logger.error(f"Failed to create commissions for order {order_number}: {str(e)}", exc_info=True)
                order = await self._reload(order_id)

        await self._notify_order_created(order, seller_email)
        return order

    async def _reserve_line(
        self,
        item: Dict[str, Any],
        seller_id: UUID,
        seller_currency,
        buyer_currency,
        exchange_rate: Decimal,
    ) -> OrderItem:
        """Validate one cart line, decrement stock and price it."""
        quantity = int(item["quantity"])
        if quantity < 1:
            raise BadRequestError("Quantity must be at least 1")

        result = await self.db.execute(
            select(Product).where(Product.id == item["product_id"]).with_for_update()
        )
        product = result.scalars().first()
        if product is None:
            raise NotFoundError(f"Product with ID {item['product_id']} not found")
        if product.seller_id != seller_id:
            raise BadRequestError(f"Product {product.id} does not belong to seller {seller_id}")
        if product.status != ProductStatus.ACTIVE:
            raise BadRequestError(f"Product {product.name} is not available")

        fallback_price = product.base_price if product.base_price is not None else product.price
        variant_id = item.get("variant_id")
        variant = None
        if product.has_variants:
            if not variant_id:
                raise BadRequestError(f"Product {product.name} has variants. Please specify a variantId.")
            result = await self.db.execute(
                select(ProductVariant)
                .where(ProductVariant.id == variant_id, ProductVariant.product_id == product.id)
                .with_for_update()
            )
            variant = result.scalars().first()
            if variant is None:
                raise NotFoundError(f"Variant with ID {variant_id} not found for product {product.name}")
            if not variant.is_active:
                raise BadRequestError(f"Variant is not active for product {product.name}")
            if variant.stock < quantity:
                raise BadRequestError(
                    f"Insufficient stock for variant. Available: {variant.stock}, Requested: {quantity}"
                )
            base_price = variant.price if variant.price is not None else fallback_price
            variant.stock -= quantity

            # product stock tracks the sum of its variants
            await self.db.flush()
            result = await self.db.execute(
                select(ProductVariant.stock).where(ProductVariant.product_id == product.id)
            )
            product.stock = sum(result.scalars().all())
        else:
            if variant_id:
                raise BadRequestError(f"Product {product.name} does not have variants. Do not specify variantId.")
            if product.stock < quantity:
                raise BadRequestError(
                    f"Insufficient stock for product {product.name}. "
                    f"Available: {product.stock}, Requested: {quantity}"
                )
            base_price = fallback_price
            product.stock -= quantity

        if product.stock == 0:
            product.status = ProductStatus.OUT_OF_STOCK

        product_currency = (product.base_currency or seller_currency.value).upper()
        if product_currency != seller_currency.value:
            raise BadRequestError(
                f"Product {product.name} base currency ({product_currency}) does not match "
                f"seller's base currency ({seller_currency.value})"
            )

        base_price = to_decimal(base_price)
        return OrderItem(
            product_id=product.id,
            product_name=product.name,
            quantity=quantity,
            price=convert_and_round(base_price, seller_currency, buyer_currency, exchange_rate),
            base_price=base_price,
            base_currency=seller_currency.value,
            variant_id=variant.id if variant is not None else None,
            variant_combination=variant.combination if variant is not None else None,
        )

    async def _validate_shipping_country(self, seller_id: UUID, country: Optional[str]) -> None:
        country = (country or "").strip().upper()
        seller_settings = await get_seller_settings(self.db, seller_id)
        supported = [c.upper() for c in (seller_settings.shipping_countries or [])] if seller_settings else []
        if supported:
            if country not in supported:
                raise BadRequestError(
                    f"Seller does not support shipping to {country}. Supported countries: {', '.join(supported)}"
                )
            return

        available = get_settings().shipping_countries
        if country not in available:
            raise BadRequestError(
                f"Shipping to {country} is not currently supported. Available countries: {', '.join(available)}"
            )

    async def _notify_order_created(self, order: Order, seller_email: Optional[str]) -> None:
        try:
            prefs = await get_notification_prefs(self.db, order.seller_id)
        except Exception as e:
            logger.error(f"Failed to load seller preferences for order {order.order_number}: {str(e)}", exc_info=True)
            return

        if prefs["telegram_chat_id"] and prefs["notifications_orders"]:
            await self.notifier.send_order_alert(prefs["telegram_chat_id"], order)

        await self.notifier.notify_order_event(
            order.seller_id, NotificationType.ORDER_CREATED, order.id, order.order_number, is_customer=False
        )
        await self.notifier.notify_order_event(
            order.customer_id, NotificationType.ORDER_CREATED, order.id, order.order_number, is_customer=True
        )
        if prefs["notifications_orders"]:
            await self.notifier.send_seller_notification(
                seller_email,
                "new_order",
                {
                    "order_number": order.order_number,
                    "total_amount": str(order.total_amount_base),
                    "currency": order.seller_base_currency,
                },
            )
