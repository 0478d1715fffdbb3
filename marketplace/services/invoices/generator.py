import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from marketplace.core.clock import utcnow
from marketplace.core.config import get_settings
from marketplace.core.currency import Currency, bucket_currency, quantize_money, to_decimal
from marketplace.core.exceptions import BadRequestError, NotFoundError
from marketplace.crud.invoice import (
    get_invoice_with_items,
    get_invoiced_order_ids,
    invoice_exists_for_week,
    invoice_number_exists,
)
from marketplace.crud.order import get_orders_with_items, get_settleable_orders
from marketplace.db.models.affiliate_commission import AffiliateCommission
from marketplace.db.models.invoice import Invoice, InvoiceStatus
from marketplace.db.models.invoice_item import InvoiceItem
from marketplace.db.models.order import Order
from marketplace.db.models.user import User, UserType
from marketplace.services.invoices.calendar import (
    base_invoice_number,
    calculate_due_date,
    monday_of,
    previous_week_window,
    sunday_of,
)
from marketplace.services.notifications.dispatcher import NotificationDispatcher
from marketplace.services.sellers.fee_resolver import FeeResolver

logger = logging.getLogger(__name__)

HUNDRED = Decimal(100)


def delivery_date_of(order: Order) -> datetime:
    return order.updated_at or order.created_at


def compute_invoice_line(order: Order, fee_percent: Decimal, affiliate_fee: Decimal) -> Dict[str, Any]:
    """Settlement figures for one order, bucketed by the seller's currency.

    Args:
        order: Delivered order with its items loaded
        fee_percent: Platform fee percent resolved for the seller
        affiliate_fee: Sum of the order's affiliate commissions

    Returns:
        Column values for an InvoiceItem plus ``currency``.
    """
    fee_percent = to_decimal(fee_percent)
    base = order.total_amount_base if order.total_amount_base is not None else order.total_amount
    product_price = quantize_money(base)
    platform_fee = quantize_money(product_price * fee_percent / HUNDRED)
    affiliate_fee = quantize_money(affiliate_fee)
    total_owed = platform_fee + affiliate_fee

    affiliate_fee_percent = None
    if affiliate_fee > 0:
        lines_total = sum((to_decimal(item.line_total_base) for item in order.items), Decimal("0"))
        if lines_total <= 0:
            lines_total = product_price
        if lines_total > 0:
            affiliate_fee_percent = quantize_money(affiliate_fee / lines_total * HUNDRED)

    currency = bucket_currency(order.seller_base_currency)
    is_mkd = currency == Currency.MKD

    def bucket(value: Decimal):
        return (value, None) if is_mkd else (None, value)

    product_price_mkd, product_price_eur = bucket(product_price)
    platform_fee_mkd, platform_fee_eur = bucket(platform_fee)
    affiliate_fee_mkd, affiliate_fee_eur = bucket(affiliate_fee)
    total_owed_mkd, total_owed_eur = bucket(total_owed)

    return {
        "currency": currency,
        "order_id": order.id,
        "order_number": order.order_number,
        "delivery_date": delivery_date_of(order),
        "product_price": product_price,
        "product_price_mkd": product_price_mkd,
        "product_price_eur": product_price_eur,
        "platform_fee_percent": fee_percent,
        "platform_fee": platform_fee,
        "platform_fee_mkd": platform_fee_mkd,
        "platform_fee_eur": platform_fee_eur,
        "affiliate_fee_percent": affiliate_fee_percent,
        "affiliate_fee": affiliate_fee,
        "affiliate_fee_mkd": affiliate_fee_mkd,
        "affiliate_fee_eur": affiliate_fee_eur,
        "total_owed": total_owed,
        "total_owed_mkd": total_owed_mkd,
        "total_owed_eur": total_owed_eur,
    }


class InvoiceGenerator:
    """Builds seller invoices over delivered cash-on-delivery orders."""

    def __init__(
        self,
        db: AsyncSession,
        fee_resolver: Optional[FeeResolver] = None,
        notifier: Optional[NotificationDispatcher] = None,
    ):
        self.db = db
        self.fee_resolver = fee_resolver or FeeResolver(db)
        self.notifier = notifier or NotificationDispatcher()
        self.settings = get_settings()

    async def generate_weekly_invoices(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Invoice every seller for the previous Monday-Sunday week.

        Safe to run more than once: a seller that already has an invoice for
        the week is skipped.
        """
        now = now or utcnow()
        week_start, week_end = previous_week_window(now)
        invoice_date = now.date()
        logger.info(f"Generating weekly invoices for {week_start.date()} - {week_end.date()}")

        result = await self.db.execute(select(User.id, User.email).where(User.user_type == UserType.SELLER))
        sellers = result.all()

        summary = {"generated": 0, "skipped": 0, "failed": 0, "invoice_numbers": []}
        for seller_id, seller_email in sellers:
            try:
                if await invoice_exists_for_week(self.db, seller_id, week_start.date()):
                    logger.info(f"Invoice already exists for seller {seller_id} for week {week_start.date()}")
                    summary["skipped"] += 1
                    continue

                orders = await get_settleable_orders(self.db, seller_id, week_start, week_end)
                orders = await self._exclude_invoiced(orders)
                if not orders:
                    summary["skipped"] += 1
                    continue

                invoice = await self.generate_invoice_for_seller(
                    seller_id, orders, week_start.date(), week_end.date(), invoice_date, seller_email
                )
                summary["generated"] += 1
                summary["invoice_numbers"].append(invoice.invoice_number)
            except Exception as e:
                await self.db.rollback()
                summary["failed"] += 1
                logger.error(f"Error generating invoice for seller {seller_id}: {str(e)}", exc_info=True)

        logger.info(
            f"Weekly invoice generation completed: {summary['generated']} generated, "
            f"{summary['skipped']} skipped, {summary['failed']} failed"
        )
        return summary

    async def generate_for_specific_seller(self, seller_id: UUID, now: Optional[datetime] = None) -> Invoice:
        """Invoice every unsettled delivered COD order of one seller, any date."""
        now = now or utcnow()
        result = await self.db.execute(
            select(User.id, User.email).where(User.id == seller_id, User.user_type == UserType.SELLER)
        )
        seller = result.first()
        if seller is None:
            raise NotFoundError("Seller not found")

        orders = await get_settleable_orders(self.db, seller_id)
        if not orders:
            raise BadRequestError("No delivered COD orders found for this seller that are not yet paid")

        orders = await self._exclude_invoiced(orders)
        if not orders:
            raise BadRequestError("All delivered COD orders for this seller are already included in existing invoices")

        delivery_dates = [delivery_date_of(order) for order in orders]
        week_start = monday_of(min(delivery_dates))
        week_end = sunday_of(max(delivery_dates))

        return await self.generate_invoice_for_seller(
            seller_id, orders, week_start, week_end, now.date(), seller.email
        )

    async def _exclude_invoiced(self, orders: List[Order]) -> List[Order]:
        invoiced = await get_invoiced_order_ids(self.db, [order.id for order in orders])
        if invoiced:
            logger.info(f"Excluding {len(invoiced)} orders already present on invoices")
        return [order for order in orders if order.id not in invoiced]

    async def _affiliate_fees(self, order_ids: List[UUID]) -> Dict[UUID, Decimal]:
        result = await self.db.execute(
            select(AffiliateCommission.order_id, func.sum(AffiliateCommission.commission_amount))
            .where(AffiliateCommission.order_id.in_(order_ids))
            .group_by(AffiliateCommission.order_id)
        )
        return {order_id: to_decimal(total) for order_id, total in result.all()}

    async def _build_lines(self, order_ids: List[UUID], fee_percent: Decimal):
        """Invoice lines for the orders plus the MKD and EUR totals."""
        orders = await get_orders_with_items(self.db, order_ids)
        affiliate_fees = await self._affiliate_fees(order_ids)
        lines = [
            compute_invoice_line(order, fee_percent, affiliate_fees.get(order.id, Decimal("0")))
            for order in orders
        ]
        total_mkd = sum((line["total_owed"] for line in lines if line["currency"] == Currency.MKD), Decimal("0"))
        total_eur = sum((line["total_owed"] for line in lines if line["currency"] == Currency.EUR), Decimal("0"))
        return lines, total_mkd, total_eur

    async def allocate_invoice_number(self, base_number: str) -> str:
        """First free number of ``base``, ``base-1``, ``base-2``..."""
        candidate = base_number
        sequence = 0
        while await invoice_number_exists(self.db, candidate):
            sequence += 1
            candidate = f"{base_number}-{sequence}"
        return candidate

    async def generate_invoice_for_seller(
        self,
        seller_id: UUID,
        orders: List[Order],
        week_start: date,
        week_end: date,
        invoice_date: date,
        seller_email: Optional[str] = None,
    ) -> Invoice:
        # ids survive the rollback of a failed attempt, loaded orders do not
        order_ids = [order.id for order in orders]
        fee_percent = await self.fee_resolver.resolve(seller_id)
        base_number = base_invoice_number(invoice_date, week_start, seller_id)
        due_date = calculate_due_date(invoice_date, self.settings.INVOICE_DUE_DAYS)

        max_attempts = max(1, self.settings.INVOICE_NUMBER_MAX_ATTEMPTS)
        for attempt in range(1, max_attempts + 1):
            # another run may have invoiced some of these since they were selected
            invoiced = await get_invoiced_order_ids(self.db, order_ids)
            if invoiced:
                logger.info(f"Excluding {len(invoiced)} orders already present on invoices")
            order_ids = [order_id for order_id in order_ids if order_id not in invoiced]
            if not order_ids:
                raise BadRequestError(
                    "All delivered COD orders for this seller are already included in existing invoices"
                )

            lines, total_mkd, total_eur = await self._build_lines(order_ids, fee_percent)
            invoice_number = await self.allocate_invoice_number(base_number)
            invoice = Invoice(
                invoice_number=invoice_number,
                seller_id=seller_id,
                week_start_date=week_start,
                week_end_date=week_end,
                due_date=due_date,
                status=InvoiceStatus.PENDING,
                total_amount=total_mkd + total_eur,
                total_amount_mkd=total_mkd,
                total_amount_eur=total_eur,
                order_count=len(lines),
            )
            self.db.add(invoice)
            try:
                # header first so the items can reference it
                await self.db.flush()
                for line in lines:
                    values = {key: value for key, value in line.items() if key != "currency"}
                    self.db.add(InvoiceItem(invoice_id=invoice.id, **values))
                await self.db.commit()
                break
            except IntegrityError:
                await self.db.rollback()
                if attempt == max_attempts:
                    raise
                logger.warning(f"Invoice number {invoice_number} was taken concurrently, retrying")

        invoice = await get_invoice_with_items(self.db, invoice.id, refresh=True)
        logger.info(
            f"Generated invoice {invoice.invoice_number} for seller {seller_id}: "
            f"{invoice.order_count} orders, {total_mkd} MKD, {total_eur} EUR"
        )

        if seller_email is None:
            result = await self.db.execute(select(User.email).where(User.id == seller_id))
            seller_email = result.scalar_one_or_none()
        await self.notifier.send_invoice_summary(seller_email, invoice)
        return invoice
