from functools import lru_cache

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.db.base import get_db
from marketplace.services.invoices.generator import InvoiceGenerator
from marketplace.services.invoices.lifecycle import InvoiceLifecycleManager
from marketplace.services.notifications.dispatcher import NotificationDispatcher, get_notification_dispatcher
from marketplace.services.orders.order_service import OrderService
from marketplace.services.sellers.fee_resolver import FeeResolver


@lru_cache()
def get_notifier() -> NotificationDispatcher:
    return get_notification_dispatcher()


def get_order_service(
    db: AsyncSession = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
) -> OrderService:
    return OrderService(db, notifier=notifier)


def get_invoice_generator(
    db: AsyncSession = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
) -> InvoiceGenerator:
    return InvoiceGenerator(db, notifier=notifier)


def get_lifecycle_manager(db: AsyncSession = Depends(get_db)) -> InvoiceLifecycleManager:
    return InvoiceLifecycleManager(db)


def get_fee_resolver(db: AsyncSession = Depends(get_db)) -> FeeResolver:
    return FeeResolver(db)
