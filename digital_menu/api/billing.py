"""
Subscription billing: checkout links and the payment provider webhook.

Both routes stay reachable without an active subscription; that is how an
establishment gets one.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from digital_menu.core.exceptions import EstablishmentNotFoundError, PaymentProviderError
from digital_menu.database import get_db
from digital_menu.models import Establishment
from digital_menu.schemas import (
    CheckoutRequest,
    CheckoutResponse,
    ErrorResponse,
    WebhookResponse,
)
from digital_menu.services.payment import get_payment_service
from digital_menu.services.subscriptions import apply_payment_status, get_plan

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/billing", tags=["Billing"])


@router.post(
    "/checkout",
    response_model=CheckoutResponse,
    responses={
        404: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
    summary="Create Checkout Link",
)
async def create_checkout(
    data: CheckoutRequest,
    db: AsyncSession = Depends(get_db),
) -> CheckoutResponse:
    """Create a hosted checkout for a subscription plan."""
    plan = get_plan(data.plan_id)
    if await db.get(Establishment, data.establishment_id) is None:
        raise EstablishmentNotFoundError(data.establishment_id)

    payment_service = get_payment_service()
    result = await payment_service.create_checkout_link(plan, data.establishment_id)

    if not result.success:
        logger.error(
            f"Checkout failed for establishment #{data.establishment_id}: "
            f"{result.error_code} - {result.error_message}"
        )
        raise PaymentProviderError(
            result.error_message or "Could not create checkout",
            error_code=result.error_code,
        )

    logger.info(
        f"Checkout {result.session_id} created for establishment "
        f"#{data.establishment_id} ({plan.id}, {result.response_time_ms:.0f}ms)"
    )
    return CheckoutResponse(
        checkout_url=result.checkout_url,
        session_id=result.session_id,
        plan_id=plan.id,
        provider=payment_service.provider_name,
    )


@router.post(
    "/webhook",
    response_model=WebhookResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Payment Provider Webhook",
)
async def payment_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
    stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature"),
) -> WebhookResponse:
    """
    Receive asynchronous payment notifications.

    Unverifiable payloads get a 400. Verified events that carry no
    subscription change are acknowledged so the provider stops retrying.
    """
    payload = await request.body()

    payment_service = get_payment_service()
    event = await payment_service.verify_webhook(payload, stripe_signature)

    if event is None:
        return WebhookResponse(received=True)

    logger.info(
        f"Payment event {event.event_id or '-'}: establishment #{event.establishment_id} "
        f"-> {event.status}"
    )
    establishment = await apply_payment_status(
        db,
        establishment_id=event.establishment_id,
        status=event.status,
        plan_id=event.plan_id,
    )

    return WebhookResponse(
        received=True,
        establishment_id=establishment.id,
        status=event.status,
        subscription_active=establishment.subscription_active,
    )
