from celery import Celery
from celery.schedules import crontab
from celery.signals import setup_logging as celery_setup_logging
import os
from dotenv import load_dotenv

from marketplace.core.logging import setup_logging

# Load environment variables
load_dotenv()

celery_app = Celery(
    'marketplace_settlement',
    broker=os.getenv('CELERY_BROKER_URL', 'redis://localhost:6379/0'),
    backend=os.getenv('CELERY_RESULT_BACKEND', 'redis://localhost:6379/0'),
    include=['marketplace.tasks.invoice_tasks']
)

celery_app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,
)

celery_app.conf.beat_schedule = {
    'generate-weekly-invoices': {
        'task': 'marketplace.tasks.invoice_tasks.generate_weekly_invoices',
        # Monday 00:00, invoices the week that just ended
        'schedule': crontab(minute=0, hour=0, day_of_week=1),
    },
    'update-overdue-invoices': {
        'task': 'marketplace.tasks.invoice_tasks.update_overdue_invoices',
        'schedule': crontab(minute=0, hour=1),
    },
}

@celery_setup_logging.connect
def configure_worker_logging(**kwargs):
    setup_logging()

if __name__ == '__main__':
    celery_app.start()
