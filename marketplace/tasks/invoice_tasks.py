import logging

from marketplace.db.base import AsyncSessionLocal
from marketplace.services.invoices.generator import InvoiceGenerator
from marketplace.services.invoices.lifecycle import InvoiceLifecycleManager
from marketplace.services.notifications.dispatcher import get_notification_dispatcher
from marketplace.tasks.async_helper import celery_async_task

logger = logging.getLogger(__name__)


@celery_async_task(name="marketplace.tasks.invoice_tasks.generate_weekly_invoices")
async def generate_weekly_invoices(self):
    notifier = get_notification_dispatcher()
    try:
        async with AsyncSessionLocal() as db:
            generator = InvoiceGenerator(db, notifier=notifier)
            summary = await generator.generate_weekly_invoices()
    finally:
        await notifier.close()
    logger.info(f"Weekly invoice task finished: {summary}")
    return summary


@celery_async_task(name="marketplace.tasks.invoice_tasks.update_overdue_invoices")
async def update_overdue_invoices(self):
    async with AsyncSessionLocal() as db:
        updated = await InvoiceLifecycleManager(db).update_overdue_invoices()
    return {"updated": updated}
