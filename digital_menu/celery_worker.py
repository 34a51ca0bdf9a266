"""
Background jobs: order alerts and the subscription reconciliation beat.

Redis is both broker and result backend.

    celery -A digital_menu.celery_worker worker --beat --loglevel=info
"""

from celery import Celery

from digital_menu.core.config import get_settings

settings = get_settings()

celery_app = Celery(
    'digital_menu_worker',
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=['digital_menu.tasks'],
)

celery_app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,

    task_always_eager=settings.celery_task_always_eager,
    task_eager_propagates=settings.celery_task_always_eager,

    # One task in flight per worker process
    worker_prefetch_multiplier=1,
    worker_concurrency=4,
    result_expires=3600,

    # An alert lost with a dying worker is redelivered, not dropped
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    broker_connection_retry_on_startup=True,

    # The access gate only reads; this job writes the expiry back
    beat_schedule={
        'reconcile-expired-subscriptions': {
            'task': 'digital_menu.tasks.reconcile_expired_subscriptions',
            'schedule': float(settings.subscription_reconcile_interval_seconds),
        },
    },
)


if __name__ == '__main__':
    celery_app.start()
