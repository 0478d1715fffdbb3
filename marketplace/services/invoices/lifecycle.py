import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.clock import utcnow
from marketplace.core.exceptions import BadRequestError, NotFoundError
from marketplace.crud.invoice import count_overdue_invoices, get_invoice_with_items, get_pending_invoices_due_before
from marketplace.crud.order import mark_orders_settled
from marketplace.db.models.invoice import Invoice, InvoiceStatus
from marketplace.services.invoices.calendar import start_of_day
from marketplace.services.sellers.settings_service import can_seller_create_orders, get_seller_settings

logger = logging.getLogger(__name__)


class InvoiceLifecycleManager:
    """Invoice status changes, seller settlement and the payment restriction."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_invoice(self, invoice_id: UUID, seller_id: Optional[UUID] = None) -> Invoice:
        invoice = await get_invoice_with_items(self.db, invoice_id)
        if invoice is None or (seller_id is not None and invoice.seller_id != seller_id):
            raise NotFoundError("Invoice not found")
        return invoice

    async def mark_paid(
        self,
        invoice_id: UUID,
        seller_id: UUID,
        payment_notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Invoice:
        invoice = await self.get_invoice(invoice_id, seller_id)
        return await self._settle(invoice, payment_notes, now)

    async def mark_paid_by_admin(
        self,
        invoice_id: UUID,
        payment_notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Invoice:
        invoice = await self.get_invoice(invoice_id)
        return await self._settle(invoice, payment_notes, now)

    async def _settle(self, invoice: Invoice, payment_notes: Optional[str], now: Optional[datetime]) -> Invoice:
        if invoice.status == InvoiceStatus.PAID:
            raise BadRequestError("Invoice is already marked as paid")

        now = now or utcnow()
        invoice_id, seller_id = invoice.id, invoice.seller_id
        invoice.status = InvoiceStatus.PAID
        invoice.paid_at = now
        invoice.payment_notes = payment_notes
        settled = await mark_orders_settled(self.db, [item.order_id for item in invoice.items], now)
        await self.db.commit()
        logger.info(f"Invoice {invoice.invoice_number} marked as paid, {settled} orders settled")

        # the invoice is persisted as paid before the overdue count is taken
        await self.update_seller_payment_restriction(seller_id)
        return await get_invoice_with_items(self.db, invoice_id, refresh=True)

    async def update_overdue_invoices(self, now: Optional[datetime] = None) -> int:
        """Flip pending invoices past their due date to overdue."""
        today = start_of_day(now or utcnow()).date()
        invoices = await get_pending_invoices_due_before(self.db, today)
        targets = [(invoice.id, invoice.seller_id, invoice.invoice_number) for invoice in invoices]

        updated = 0
        for invoice_id, seller_id, invoice_number in targets:
            try:
                invoice = await self.db.get(Invoice, invoice_id)
                invoice.status = InvoiceStatus.OVERDUE
                await self.db.commit()
                updated += 1
                logger.info(f"Invoice {invoice_number} is overdue")
                await self.update_seller_payment_restriction(seller_id)
            except Exception as e:
                await self.db.rollback()
                logger.error(f"Error marking invoice {invoice_number} overdue: {str(e)}", exc_info=True)

        logger.info(f"Overdue sweep completed: {updated} invoices marked overdue")
        return updated

    async def update_seller_payment_restriction(self, seller_id: UUID) -> Optional[bool]:
        """Lift the restriction once a seller has no overdue invoices.

        Overdue invoices do not restrict a seller automatically; that only
        happens through an admin freeze. Returns the resulting flag, or None
        when the seller has no settings row.
        """
        overdue = await count_overdue_invoices(self.db, seller_id)
        seller_settings = await get_seller_settings(self.db, seller_id)
        if seller_settings is None:
            return None

        if overdue == 0 and seller_settings.payment_restricted:
            seller_settings.payment_restricted = False
            seller_settings.payment_restricted_at = None
            await self.db.commit()
            logger.info(f"Payment restriction lifted for seller {seller_id}")
        elif overdue > 0 and not seller_settings.payment_restricted:
            logger.debug(f"Seller {seller_id} has {overdue} overdue invoices, automatic restriction is disabled")
        return seller_settings.payment_restricted

    async def can_seller_create_orders(self, seller_id: UUID) -> bool:
        return await can_seller_create_orders(self.db, seller_id)
