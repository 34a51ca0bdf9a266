"""
Celery Tasks
Background work that must never hold up a request: order alerts to the
establishment and the periodic subscription reconciliation.
"""

import asyncio
import logging
import time
from datetime import datetime

from digital_menu.celery_worker import celery_app
from digital_menu.database import async_session_maker, engine
from digital_menu.models import Establishment, Order
from digital_menu.services.notifications import get_notification_service
from digital_menu.services.order_messages import format_order_message, normalize_contact_handle
from digital_menu.services import subscriptions

logger = logging.getLogger(__name__)


def run_async(coro_func, *args):
    """
    Run a coroutine from a synchronous worker.

    Each call gets its own event loop, so pooled connections are disposed
    before the loop closes.
    """
    async def runner():
        try:
            return await coro_func(*args)
        finally:
            await engine.dispose()

    return asyncio.run(runner())


# =============================================================================
# ORDER ALERTS
# =============================================================================

async def _deliver_order_alert(order_id: int) -> dict:
    async with async_session_maker() as session:
        order = await session.get(Order, order_id)
        if order is None:
            logger.warning(f"Order alert skipped: order #{order_id} not found")
            return {"success": False, "order_id": order_id, "errors": ["order not found"]}

        establishment = await session.get(Establishment, order.establishment_id)
        message = format_order_message(establishment, order)

    service = get_notification_service()
    result = await service.send_order_alert(
        order_id=order.id,
        establishment_name=establishment.name,
        whatsapp_phone=normalize_contact_handle(establishment.whatsapp_phone),
        email=establishment.email,
        message=message,
    )

    outcome = result.to_dict()
    outcome["order_id"] = order_id
    return outcome


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(Exception,),
    retry_backoff=True
)
def send_order_alert(self, order_id: int) -> dict:
    """
    Push a newly placed order to the establishment over WhatsApp and email.

    Delivery failures are reported in the result; the order is already
    stored and is not touched here.
    """
    task_id = self.request.id
    logger.info(f"📋 Task {task_id}: Alerting for order #{order_id}")
    start_time = time.time()

    result = run_async(_deliver_order_alert, order_id)

    elapsed = round(time.time() - start_time, 3)
    result['task_id'] = task_id
    result['processing_time_seconds'] = elapsed

    if result['success']:
        logger.info(f"✅ Task {task_id}: Order #{order_id} alert sent in {elapsed}s")
    else:
        logger.warning(f"⚠️ Task {task_id}: Order #{order_id} alert failed - {result['errors']}")

    return result


# =============================================================================
# SUBSCRIPTIONS
# =============================================================================

async def _reconcile() -> int:
    async with async_session_maker() as session:
        return await subscriptions.reconcile_expired_subscriptions(session)


@celery_app.task
def reconcile_expired_subscriptions() -> dict:
    """Switch off subscriptions whose expiry has passed."""
    expired = run_async(_reconcile)
    return {
        'expired': expired,
        'timestamp': datetime.now().isoformat()
    }


@celery_app.task
def health_check() -> dict:
    """
    Simple health check task to verify Celery is working.
    """
    return {
        'status': 'healthy',
        'worker': 'celery',
        'timestamp': datetime.now().isoformat()
    }
