"""
Order alert channels.

``get_notification_service()`` returns the in-memory mock in development
and Twilio/SendGrid otherwise.
"""

import logging
from functools import lru_cache

from digital_menu.core.config import get_settings
from digital_menu.services.notifications.base import (
    BaseNotificationService,
    NotificationResult,
    OrderAlertResult,
)
from digital_menu.services.notifications.mock import MockNotificationService
from digital_menu.services.notifications.real import RealNotificationService

logger = logging.getLogger(__name__)


@lru_cache()
def get_notification_service() -> BaseNotificationService:
    settings = get_settings()

    if settings.is_development:
        service: BaseNotificationService = MockNotificationService(
            failure_rate=settings.mock_failure_rate,
            max_latency=settings.mock_max_latency,
        )
    else:
        service = RealNotificationService()

    logger.info(f"Notification provider: {service.provider_name} ({settings.env_mode.value})")
    return service


def reset_notification_service() -> None:
    get_notification_service.cache_clear()


__all__ = [
    "get_notification_service",
    "reset_notification_service",
    "BaseNotificationService",
    "NotificationResult",
    "OrderAlertResult",
]
