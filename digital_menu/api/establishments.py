"""
Establishment registration and profile endpoints.

None of these are behind the subscription gate: an owner must be able to
sign up and fix their profile before paying.
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from digital_menu.api.deps import get_establishment
from digital_menu.core.exceptions import DuplicateEmailError
from digital_menu.database import get_db
from digital_menu.models import Establishment
from digital_menu.schemas import (
    ErrorResponse,
    EstablishmentCreate,
    EstablishmentResponse,
    EstablishmentUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/establishments", tags=["Establishments"])

# Columns that cannot be cleared through a profile update
REQUIRED_PROFILE_FIELDS = {"name", "primary_color", "social_links"}


@router.post(
    "",
    response_model=EstablishmentResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse}},
    summary="Register Establishment",
)
async def register_establishment(
    data: EstablishmentCreate,
    db: AsyncSession = Depends(get_db),
) -> EstablishmentResponse:
    """Create a new establishment. It starts without an active subscription."""
    existing = await db.execute(
        select(Establishment.id).where(Establishment.email == data.email)
    )
    if existing.scalar_one_or_none() is not None:
        raise DuplicateEmailError(data.email)

    establishment = Establishment(**data.model_dump())
    db.add(establishment)
    try:
        await db.commit()
    except IntegrityError:
        # Concurrent registration with the same email
        await db.rollback()
        raise DuplicateEmailError(data.email) from None

    logger.info(f"Establishment #{establishment.id} registered ({establishment.email})")
    return EstablishmentResponse.model_validate(establishment)


@router.get(
    "/{establishment_id}",
    response_model=EstablishmentResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_establishment_profile(
    establishment: Establishment = Depends(get_establishment),
) -> EstablishmentResponse:
    return EstablishmentResponse.model_validate(establishment)


@router.put(
    "/{establishment_id}",
    response_model=EstablishmentResponse,
    responses={404: {"model": ErrorResponse}},
)
async def update_establishment_profile(
    data: EstablishmentUpdate,
    establishment: Establishment = Depends(get_establishment),
    db: AsyncSession = Depends(get_db),
) -> EstablishmentResponse:
    """Update profile and presentation fields."""
    for field, value in data.model_dump(exclude_unset=True).items():
        if value is None and field in REQUIRED_PROFILE_FIELDS:
            continue
        setattr(establishment, field, value)
    await db.commit()

    logger.info(f"Establishment #{establishment.id} profile updated")
    return EstablishmentResponse.model_validate(establishment)
