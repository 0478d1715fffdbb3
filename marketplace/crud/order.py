from datetime import datetime
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from marketplace.db.models.order import Order, OrderStatus


def _settleable_orders_stmt(seller_id: UUID):
    """Delivered cash-on-delivery orders the seller has not settled yet."""
    return (
        select(Order)
        .options(selectinload(Order.items))
        .where(
            Order.seller_id == seller_id,
            or_(Order.payment_method == "cod", Order.payment_method.is_(None)),
            Order.status == OrderStatus.DELIVERED,
            Order.seller_paid.is_(False),
        )
    )


async def get_order(db: AsyncSession, order_id: UUID, for_update: bool = False, refresh: bool = False) -> Optional[Order]:
    stmt = select(Order).options(selectinload(Order.items)).where(Order.id == order_id)
    if refresh:
        stmt = stmt.execution_options(populate_existing=True)
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    return result.scalars().first()


async def get_settleable_orders(
    db: AsyncSession,
    seller_id: UUID,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> List[Order]:
    stmt = _settleable_orders_stmt(seller_id)
    if start is not None and end is not None:
        stmt = stmt.where(Order.updated_at >= start, Order.updated_at <= end)
    result = await db.execute(stmt.order_by(Order.updated_at))
    return list(result.scalars().all())


async def mark_orders_settled(db: AsyncSession, order_ids: Iterable[UUID], settled_at: datetime) -> int:
    """Flag orders as paid out to the seller. Caller commits."""
    order_ids = list(order_ids)
    if not order_ids:
        return 0
    result = await db.execute(select(Order).where(Order.id.in_(order_ids)))
    orders = result.scalars().all()
    for order in orders:
        order.seller_paid = True
        order.payment_settled_at = settled_at
    return len(orders)


async def get_orders_with_items(db: AsyncSession, order_ids: Iterable[UUID]) -> List[Order]:
    """Fresh copies of the given orders, safe to use after a rollback."""
    order_ids = list(order_ids)
    if not order_ids:
        return []
    stmt = (
        select(Order)
        .options(selectinload(Order.items))
        .where(Order.id.in_(order_ids))
        .order_by(Order.updated_at)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())
