"""
Contract shared by the subscription payment providers.

The billing routes only ever talk to BasePaymentService, so the mock
checkout and Stripe are interchangeable.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from digital_menu.services.subscriptions import SubscriptionPlan


@dataclass
class CheckoutResult:
    """
    Standardized result from creating a checkout link.

    Attributes:
        success: Whether the provider accepted the checkout
        checkout_url: Where to send the establishment owner to pay
        session_id: Provider-side identifier of the checkout
        error_message: Error description if creation failed
        error_code: Machine-readable error code
        response_time_ms: Time taken by the provider
    """
    success: bool
    checkout_url: Optional[str] = None
    session_id: Optional[str] = None
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    response_time_ms: float = 0.0


@dataclass
class PaymentStatusEvent:
    """
    A verified payment notification, reduced to what the subscription needs.

    Attributes:
        establishment_id: Establishment the payment was made for
        status: approved, pending, rejected, refunded, cancelled, charged_back
        plan_id: Plan that was paid for
        event_id: Provider event identifier, for logging
    """
    establishment_id: int
    status: str
    plan_id: Optional[str] = None
    event_id: Optional[str] = None


class BasePaymentService(ABC):
    """
    Abstract base class for payment services.

    Example:
        >>> service = get_payment_service()  # Returns Mock or Stripe
        >>> result = await service.create_checkout_link(PLANS["monthly"], 42)
        >>> if result.success:
        ...     print(result.checkout_url)
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Short provider name, e.g. "mock" or "stripe"."""
        pass

    @abstractmethod
    async def create_checkout_link(
        self,
        plan: SubscriptionPlan,
        establishment_id: int,
    ) -> CheckoutResult:
        """
        Create a hosted checkout for a subscription plan.

        Args:
            plan: The plan being purchased
            establishment_id: Establishment that will be credited

        Returns:
            CheckoutResult: Contains the checkout URL on success
        """
        pass

    @abstractmethod
    async def verify_webhook(
        self,
        payload: bytes,
        signature: Optional[str],
    ) -> Optional[PaymentStatusEvent]:
        """
        Verify and parse a webhook from the payment provider.

        Args:
            payload: Raw request body bytes
            signature: Signature header from the request

        Returns:
            PaymentStatusEvent, or None for verified events that carry no
            subscription change

        Raises:
            InvalidWebhookError: Signature or payload checks failed
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """True when the provider is reachable with the configured credentials."""
        pass


def build_return_urls(frontend_url: str, plan: SubscriptionPlan, establishment_id: int) -> dict[str, str]:
    """Frontend pages the provider sends the payer back to."""
    base = f"{frontend_url.rstrip('/')}/payment-status"
    query = f"plan={plan.id}&establishment_id={establishment_id}"
    return {
        "success": f"{base}?status=success&{query}&expiration={plan.duration_days}",
        "pending": f"{base}?status=pending&{query}",
        "failure": f"{base}?status=failure&{query}",
    }
