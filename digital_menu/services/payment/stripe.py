"""
Stripe Checkout provider.

Used when ENV_MODE is staging or production. Needs STRIPE_SECRET_KEY for
checkouts and STRIPE_WEBHOOK_SECRET for webhooks; unsigned webhooks are
always refused.

Subscriptions are sold as one-off Checkout Sessions. The establishment and
plan travel in the session metadata, and in the payment intent metadata so
refunds can be traced back.
"""

import asyncio
import json
import logging
import time
from typing import Optional

import stripe

from digital_menu.core.config import get_settings
from digital_menu.core.exceptions import InvalidWebhookError
from digital_menu.services.payment.base import (
    BasePaymentService,
    CheckoutResult,
    PaymentStatusEvent,
    build_return_urls,
)
from digital_menu.services.subscriptions import SubscriptionPlan

logger = logging.getLogger(__name__)

# Most specific first; (error_code, message shown to the owner)
CHECKOUT_ERRORS = [
    (stripe.AuthenticationError, "authentication_error", "Payment service configuration error"),
    (stripe.APIConnectionError, "connection_error", "Payment service temporarily unavailable"),
    (stripe.StripeError, "stripe_error", "Payment processing error"),
]


class StripePaymentService(BasePaymentService):
    """Stripe Checkout Sessions plus signed webhooks."""

    # Stripe event type -> payment status understood by the subscription
    EVENT_STATUSES = {
        "checkout.session.async_payment_succeeded": "approved",
        "checkout.session.async_payment_failed": "rejected",
        "checkout.session.expired": "rejected",
        "charge.refunded": "refunded",
    }

    def __init__(self):
        settings = get_settings()
        if not settings.stripe_secret_key:
            raise ValueError("STRIPE_SECRET_KEY is required outside development mode")

        stripe.api_key = settings.stripe_secret_key
        self._webhook_secret = settings.stripe_webhook_secret
        self._currency = settings.stripe_currency
        self._frontend_url = settings.frontend_url
        logger.info(f"StripePaymentService initialized (currency={self._currency})")

    @property
    def provider_name(self) -> str:
        return "stripe"

    def _line_item(self, plan: SubscriptionPlan) -> dict:
        return {
            "price_data": {
                "currency": self._currency,
                "product_data": {"name": plan.title, "description": plan.description},
                # smallest currency unit
                "unit_amount": int(plan.price * 100),
            },
            "quantity": 1,
        }

    async def create_checkout_link(
        self,
        plan: SubscriptionPlan,
        establishment_id: int,
    ) -> CheckoutResult:
        started = time.perf_counter()
        return_urls = build_return_urls(self._frontend_url, plan, establishment_id)
        metadata = {
            "establishment_id": str(establishment_id),
            "plan_id": plan.id,
            "expiration_days": str(plan.duration_days),
        }

        try:
            session = await asyncio.to_thread(
                stripe.checkout.Session.create,
                mode="payment",
                line_items=[self._line_item(plan)],
                success_url=return_urls["success"],
                cancel_url=return_urls["failure"],
                client_reference_id=str(establishment_id),
                metadata=metadata,
                payment_intent_data={"metadata": metadata},
            )
        except stripe.StripeError as e:
            elapsed_ms = (time.perf_counter() - started) * 1000
            for error_type, error_code, message in CHECKOUT_ERRORS:
                if isinstance(e, error_type):
                    break
            log = logger.critical if error_code == "authentication_error" else logger.error
            log(f"Stripe: Checkout for establishment #{establishment_id} failed ({error_code}) - {e}")
            return CheckoutResult(
                success=False,
                error_message=message,
                error_code=error_code,
                response_time_ms=elapsed_ms,
            )

        logger.info(
            f"Stripe: Checkout session {session.id} ({plan.id}) "
            f"for establishment #{establishment_id}"
        )
        return CheckoutResult(
            success=True,
            checkout_url=session.url,
            session_id=session.id,
            response_time_ms=(time.perf_counter() - started) * 1000,
        )

    def _to_status_event(self, event: dict) -> Optional[PaymentStatusEvent]:
        event_type = event.get("type", "")
        obj = (event.get("data") or {}).get("object") or {}
        metadata = obj.get("metadata") or {}

        if event_type == "checkout.session.completed":
            status = "approved" if obj.get("payment_status") == "paid" else "pending"
        else:
            status = self.EVENT_STATUSES.get(event_type)
        if status is None:
            logger.debug(f"Stripe: Ignoring event type {event_type}")
            return None

        establishment_id = metadata.get("establishment_id") or obj.get("client_reference_id")
        if not establishment_id:
            logger.warning(f"Stripe: Event {event.get('id')} has no establishment reference")
            return None

        try:
            establishment_id = int(establishment_id)
        except (TypeError, ValueError):
            logger.warning(
                f"Stripe: Event {event.get('id')} has a malformed establishment reference "
                f"{establishment_id!r}"
            )
            return None

        return PaymentStatusEvent(
            establishment_id=establishment_id,
            status=status,
            plan_id=metadata.get("plan_id"),
            event_id=event.get("id"),
        )

    async def verify_webhook(
        self,
        payload: bytes,
        signature: Optional[str],
    ) -> Optional[PaymentStatusEvent]:
        """
        Verify the Stripe-Signature header and reduce the event to a payment
        status. Events without a subscription meaning come back as None.
        """
        if not self._webhook_secret:
            logger.error("Stripe: Webhook secret not configured, rejecting webhook")
            raise InvalidWebhookError("Webhook verification is not configured")

        try:
            stripe.Webhook.construct_event(payload, signature or "", self._webhook_secret)
        except stripe.SignatureVerificationError as e:
            logger.warning(f"Stripe: Webhook signature invalid - {e}")
            raise InvalidWebhookError("Invalid webhook signature") from e
        except ValueError as e:
            logger.warning(f"Stripe: Webhook payload invalid - {e}")
            raise InvalidWebhookError("Invalid webhook payload") from e

        event = json.loads(payload)
        logger.debug(f"Stripe: Webhook verified - {event.get('type')}")
        return self._to_status_event(event)

    async def health_check(self) -> bool:
        """Cheap authenticated call; fails on bad keys or no connectivity."""
        try:
            await asyncio.to_thread(stripe.Account.retrieve)
        except stripe.StripeError as e:
            logger.error(f"Stripe: Health check failed - {e}")
            return False
        return True
