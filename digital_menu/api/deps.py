"""
Shared route dependencies.
"""

import logging

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from digital_menu.core.exceptions import EstablishmentNotFoundError, SubscriptionInactiveError
from digital_menu.database import get_db
from digital_menu.models import Establishment
from digital_menu.services.subscriptions import Entitlement, evaluate_entitlement

logger = logging.getLogger(__name__)


async def get_establishment(
    establishment_id: int,
    db: AsyncSession = Depends(get_db),
) -> Establishment:
    """Load the establishment named in the path, or 404."""
    establishment = await db.get(Establishment, establishment_id)
    if establishment is None:
        raise EstablishmentNotFoundError(establishment_id)
    return establishment


async def require_entitlement(
    establishment: Establishment = Depends(get_establishment),
) -> Establishment:
    """
    Subscription gate for establishment-side management routes.

    Read-only: a lapsed subscription is refused here but only switched off
    by the scheduled reconciliation task.
    """
    entitlement = evaluate_entitlement(establishment)
    if entitlement is not Entitlement.ENTITLED:
        logger.info(
            f"Access denied for establishment #{establishment.id}: {entitlement.value}"
        )
        raise SubscriptionInactiveError(establishment.id, reason=entitlement.value)
    return establishment
