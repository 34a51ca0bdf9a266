"""
Subscription payment providers.

``get_payment_service()`` hands out one shared provider per process:
the mock hosted checkout in development, Stripe Checkout otherwise
(test keys on staging, live keys in production).
"""

import logging
from functools import lru_cache

from digital_menu.core.config import get_settings
from digital_menu.services.payment.base import (
    BasePaymentService,
    CheckoutResult,
    PaymentStatusEvent,
)
from digital_menu.services.payment.mock import MockPaymentService
from digital_menu.services.payment.stripe import StripePaymentService

logger = logging.getLogger(__name__)


@lru_cache()
def get_payment_service() -> BasePaymentService:
    settings = get_settings()

    if settings.is_development:
        service: BasePaymentService = MockPaymentService(
            failure_rate=settings.mock_failure_rate,
            max_latency=settings.mock_max_latency,
            frontend_url=settings.frontend_url,
        )
    else:
        service = StripePaymentService()

    logger.info(f"Payment provider: {service.provider_name} ({settings.env_mode.value})")
    return service


def reset_payment_service() -> None:
    """Forget the cached provider, e.g. after the settings changed."""
    get_payment_service.cache_clear()


__all__ = [
    "get_payment_service",
    "reset_payment_service",
    "BasePaymentService",
    "CheckoutResult",
    "PaymentStatusEvent",
]
