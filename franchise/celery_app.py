"""
Regional Franchise Platform - Celery Configuration

Celery configuration for the settlement batch triggers.
Uses Redis as the message broker and result backend.
"""

from celery import Celery
from celery.schedules import crontab

from franchise.config import settings


# Create Celery app
celery_app = Celery(
    'regional_franchise',
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=['franchise.tasks.celery_tasks'],
)

# Celery configuration
celery_app.conf.update(
    # Serialization
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',

    # Timezone
    timezone='UTC',
    enable_utc=True,

    # Task execution settings
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=600,  # 10 minutes
    task_soft_time_limit=540,

    # Worker settings
    worker_prefetch_multiplier=1,

    # Result backend settings
    result_expires=86400,  # 24 hours

    # Beat schedule for periodic tasks
    beat_schedule={
        # Settle the previous month on the 1st of each month
        'generate-monthly-settlements': {
            'task': 'franchise.tasks.celery_tasks.generate_monthly_settlements_task',
            'schedule': crontab(day_of_month=1, hour=2, minute=0),
        },

        # Flag settlements left unpaid too long, every day at 8 AM
        'check-overdue-settlements': {
            'task': 'franchise.tasks.celery_tasks.check_overdue_settlements_task',
            'schedule': crontab(hour=8, minute=0),
        },
    },
)
