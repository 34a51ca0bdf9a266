"""
Hosted checkout stand-in for development.

Checkout links point at a fake host (cs_mock_... session ids) and webhooks
are unsigned JSON bodies: {"establishment_id", "status", "plan_id"}. Scripts
and tests use it to activate establishments without a real payment.
"""

import asyncio
import json
import random
import uuid
import logging
from datetime import datetime
from typing import Optional

from digital_menu.core.exceptions import InvalidWebhookError
from digital_menu.services.payment.base import (
    BasePaymentService,
    CheckoutResult,
    PaymentStatusEvent,
    build_return_urls,
)
from digital_menu.services.subscriptions import SubscriptionPlan

logger = logging.getLogger(__name__)


class MockPaymentService(BasePaymentService):
    """
    Fake checkout with optional latency and failure injection.

    Attributes:
        failure_rate: Probability of simulated checkout failure (0.0-1.0)
        min_latency: Minimum simulated response time in seconds
        max_latency: Maximum simulated response time in seconds
        frontend_url: Base URL used for the return pages

    Example:
        >>> service = MockPaymentService(failure_rate=0.0)
        >>> result = await service.create_checkout_link(PLANS["annual"], 7)
        >>> result.checkout_url.startswith("https://checkout.mock.local/")
        True
    """

    CHECKOUT_BASE_URL = "https://checkout.mock.local/session"
    MAX_SESSIONS = 500

    FAILURE_REASONS = [
        ("provider_unavailable", "The payment provider is temporarily unavailable."),
        ("invalid_request", "The checkout request was rejected."),
    ]

    def __init__(
        self,
        failure_rate: float = 0.0,
        min_latency: float = 0.0,
        max_latency: float = 0.0,
        frontend_url: str = "http://localhost:3000",
    ):
        self.failure_rate = failure_rate
        self.min_latency = min_latency
        self.max_latency = max(min_latency, max_latency)
        self.frontend_url = frontend_url
        # Debug record of recent checkouts, keyed by session id; oldest evicted first
        self.sessions: dict[str, dict] = {}

        logger.info(
            f"MockPaymentService initialized "
            f"(failure_rate={failure_rate:.0%}, "
            f"latency={self.min_latency}-{self.max_latency}s)"
        )

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "mock"

    def _generate_session_id(self) -> str:
        """Generate a Stripe-like checkout session ID."""
        return f"cs_mock_{uuid.uuid4().hex[:24]}"

    async def _simulate_latency(self) -> float:
        """
        Simulate network latency.

        Returns:
            float: Actual latency in milliseconds
        """
        latency = random.uniform(self.min_latency, self.max_latency)
        if latency > 0:
            await asyncio.sleep(latency)
        return latency * 1000

    def _should_fail(self) -> bool:
        """Determine if this request should simulate a failure."""
        return random.random() < self.failure_rate

    async def create_checkout_link(
        self,
        plan: SubscriptionPlan,
        establishment_id: int,
    ) -> CheckoutResult:
        """Simulate creating a hosted checkout session."""
        latency_ms = await self._simulate_latency()

        if self._should_fail():
            error_code, error_message = random.choice(self.FAILURE_REASONS)
            logger.debug(f"Mock: Checkout failed - {error_code}")
            return CheckoutResult(
                success=False,
                error_message=error_message,
                error_code=error_code,
                response_time_ms=latency_ms,
            )

        session_id = self._generate_session_id()
        self.sessions[session_id] = {
            "plan_id": plan.id,
            "establishment_id": establishment_id,
            "amount": str(plan.price),
            "return_urls": build_return_urls(self.frontend_url, plan, establishment_id),
            "created_at": datetime.now().isoformat(),
        }
        while len(self.sessions) > self.MAX_SESSIONS:
            self.sessions.pop(next(iter(self.sessions)))

        checkout_url = f"{self.CHECKOUT_BASE_URL}/{session_id}"
        logger.info(
            f"Mock: Checkout created - {session_id} - {plan.id} "
            f"for establishment #{establishment_id}"
        )

        return CheckoutResult(
            success=True,
            checkout_url=checkout_url,
            session_id=session_id,
            response_time_ms=latency_ms,
        )

    async def verify_webhook(
        self,
        payload: bytes,
        signature: Optional[str],
    ) -> Optional[PaymentStatusEvent]:
        """
        Parse a mock webhook.

        In mock mode there is no signature; the body is taken at face value.
        """
        try:
            data = json.loads(payload)
            return PaymentStatusEvent(
                establishment_id=int(data["establishment_id"]),
                status=str(data["status"]).lower(),
                plan_id=data.get("plan_id"),
                event_id=data.get("event_id"),
            )
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Mock: Invalid webhook payload - {e}")
            raise InvalidWebhookError("Invalid webhook payload") from e

    async def health_check(self) -> bool:
        """Mock health check always returns True."""
        logger.debug("Mock: Health check passed")
        return True
