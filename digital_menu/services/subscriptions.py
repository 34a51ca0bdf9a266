"""
Subscription Gate

Entitlement is a pure function of the stored subscription columns and the
current time. Nothing here writes during an access check; lapsed
subscriptions are switched off by ``reconcile_expired_subscriptions``, which
the Celery beat scheduler runs periodically, and switched on by the payment
webhook through ``apply_payment_status``.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from digital_menu.core.exceptions import EstablishmentNotFoundError, UnknownPlanError
from digital_menu.models import Establishment

logger = logging.getLogger(__name__)


# =============================================================================
# PLANS
# =============================================================================

@dataclass(frozen=True)
class SubscriptionPlan:
    id: str
    title: str
    description: str
    price: Decimal
    duration_days: int


PLANS: dict[str, SubscriptionPlan] = {
    "monthly": SubscriptionPlan(
        id="monthly",
        title="Monthly Subscription - Digital Menu",
        description="One month of full access to the digital menu",
        price=Decimal("29.90"),
        duration_days=30,
    ),
    "annual": SubscriptionPlan(
        id="annual",
        title="Annual Subscription - Digital Menu",
        description="One year of full access to the digital menu, discounted",
        price=Decimal("290.90"),
        duration_days=365,
    ),
}


def get_plan(plan_id: str) -> SubscriptionPlan:
    try:
        return PLANS[plan_id]
    except KeyError:
        raise UnknownPlanError(plan_id) from None


# =============================================================================
# ENTITLEMENT
# =============================================================================

class Entitlement(str, Enum):
    ENTITLED = "entitled"
    NOT_FOUND = "not_found"
    INACTIVE = "inactive"
    EXPIRED = "expired"


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_subscription_active(
    active: bool,
    expires_at: Optional[datetime],
    now: datetime,
) -> bool:
    """Active flag set AND (no expiry OR expiry strictly in the future)."""
    if not active:
        return False
    return expires_at is None or _as_utc(expires_at) > _as_utc(now)


def evaluate_entitlement(
    establishment: Optional[Establishment],
    now: Optional[datetime] = None,
) -> Entitlement:
    if establishment is None:
        return Entitlement.NOT_FOUND
    now = now or datetime.now(timezone.utc)
    if not establishment.subscription_active:
        return Entitlement.INACTIVE
    if not is_subscription_active(True, establishment.subscription_expires_at, now):
        return Entitlement.EXPIRED
    return Entitlement.ENTITLED


def is_entitled(
    establishment: Optional[Establishment],
    now: Optional[datetime] = None,
) -> bool:
    return evaluate_entitlement(establishment, now) is Entitlement.ENTITLED


# =============================================================================
# STATE CHANGES
# =============================================================================

ACTIVATING_STATUSES = frozenset({"approved"})
DEACTIVATING_STATUSES = frozenset({"refunded", "cancelled", "charged_back"})


async def reconcile_expired_subscriptions(
    session: AsyncSession,
    now: Optional[datetime] = None,
) -> int:
    """
    Switch off every subscription whose expiry has passed.

    Returns:
        Number of establishments updated
    """
    now = _as_utc(now or datetime.now(timezone.utc))
    result = await session.execute(
        update(Establishment)
        .where(
            Establishment.subscription_active.is_(True),
            Establishment.subscription_expires_at.is_not(None),
            Establishment.subscription_expires_at < now,
        )
        .values(subscription_active=False)
        .execution_options(synchronize_session=False)
    )
    await session.commit()

    expired = result.rowcount or 0
    if expired:
        logger.info(f"Expired {expired} lapsed subscription(s)")
    return expired


async def apply_payment_status(
    session: AsyncSession,
    establishment_id: int,
    status: str,
    plan_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Establishment:
    """
    Update the stored subscription after a payment-provider notification.

    ``approved`` extends the subscription by the plan duration, counted from
    the later of now and the current expiry. Refunds, cancellations and
    chargebacks switch it off. Every other status leaves it untouched.

    Raises:
        EstablishmentNotFoundError: Unknown establishment
        UnknownPlanError: Approved payment for an unknown plan
    """
    now = _as_utc(now or datetime.now(timezone.utc))
    establishment = await session.get(Establishment, establishment_id)
    if establishment is None:
        raise EstablishmentNotFoundError(establishment_id)

    status = (status or "").lower()
    if status in ACTIVATING_STATUSES:
        plan = get_plan(plan_id or establishment.subscription_plan or "")
        start = now
        current = establishment.subscription_expires_at
        if establishment.subscription_active and current is not None and _as_utc(current) > now:
            start = _as_utc(current)
        establishment.subscription_active = True
        establishment.subscription_plan = plan.id
        establishment.subscription_expires_at = start + timedelta(days=plan.duration_days)
        logger.info(
            f"Subscription for establishment #{establishment_id} active until "
            f"{establishment.subscription_expires_at.isoformat()} ({plan.id})"
        )
    elif status in DEACTIVATING_STATUSES:
        establishment.subscription_active = False
        logger.info(f"Subscription for establishment #{establishment_id} switched off ({status})")
    else:
        logger.info(f"Payment status '{status}' for establishment #{establishment_id}: no change")

    await session.commit()
    return establishment
