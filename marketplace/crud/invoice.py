from datetime import date
from typing import Iterable, List, Optional, Set
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from marketplace.db.models.invoice import Invoice, InvoiceStatus
from marketplace.db.models.invoice_item import InvoiceItem


async def get_invoice_with_items(db: AsyncSession, invoice_id: UUID, refresh: bool = False) -> Optional[Invoice]:
    stmt = select(Invoice).options(selectinload(Invoice.items)).where(Invoice.id == invoice_id)
    if refresh:
        stmt = stmt.execution_options(populate_existing=True)
    result = await db.execute(stmt)
    return result.scalars().first()


async def invoice_exists_for_week(db: AsyncSession, seller_id: UUID, week_start: date) -> bool:
    stmt = select(Invoice.id).where(
        Invoice.seller_id == seller_id,
        Invoice.week_start_date == week_start,
    ).limit(1)
    result = await db.execute(stmt)
    return result.scalar_one_or_none() is not None


async def invoice_number_exists(db: AsyncSession, invoice_number: str) -> bool:
    result = await db.execute(select(Invoice.id).where(Invoice.invoice_number == invoice_number).limit(1))
    return result.scalar_one_or_none() is not None


async def get_invoiced_order_ids(db: AsyncSession, order_ids: Iterable[UUID]) -> Set[UUID]:
    order_ids = list(order_ids)
    if not order_ids:
        return set()
    result = await db.execute(
        select(InvoiceItem.order_id).where(InvoiceItem.order_id.in_(order_ids)).distinct()
    )
    return set(result.scalars().all())


async def count_overdue_invoices(db: AsyncSession, seller_id: UUID) -> int:
    stmt = select(func.count(Invoice.id)).where(
        Invoice.seller_id == seller_id,
        Invoice.status == InvoiceStatus.OVERDUE,
    )
    result = await db.execute(stmt)
    return result.scalar_one()


async def get_pending_invoices_due_before(db: AsyncSession, cutoff: date) -> List[Invoice]:
    stmt = select(Invoice).where(
        Invoice.status == InvoiceStatus.PENDING,
        Invoice.due_date < cutoff,
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())
