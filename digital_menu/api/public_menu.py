"""
Public menu endpoints, read by customers. Never gated.
"""

from typing import List, Sequence

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from digital_menu.api.deps import get_establishment
from digital_menu.database import get_db
from digital_menu.models import Category, Establishment, Product
from digital_menu.schemas import (
    CategoryResponse,
    ErrorResponse,
    ProductResponse,
    PublicEstablishmentResponse,
    PublicMenuResponse,
)
from digital_menu.services.order_messages import normalize_contact_handle
from digital_menu.services.subscriptions import is_entitled

router = APIRouter(
    prefix="/api/public/menu/{establishment_id}",
    tags=["Public Menu"],
    responses={404: {"model": ErrorResponse}},
)


async def active_categories(db: AsyncSession, establishment_id: int) -> Sequence[Category]:
    result = await db.execute(
        select(Category)
        .where(Category.establishment_id == establishment_id, Category.active.is_(True))
        .order_by(Category.sort_order, Category.id)
    )
    return result.scalars().all()


async def visible_products(
    db: AsyncSession,
    establishment_id: int,
    categories: Sequence[Category],
) -> Sequence[Product]:
    """Products filed under an active category, plus uncategorized ones."""
    category_ids = [c.id for c in categories]
    query = select(Product).where(Product.establishment_id == establishment_id)
    if category_ids:
        query = query.where(
            Product.category_id.in_(category_ids) | Product.category_id.is_(None)
        )
    else:
        query = query.where(Product.category_id.is_(None))
    result = await db.execute(query.order_by(Product.name, Product.id))
    return result.scalars().all()


@router.get("", response_model=PublicMenuResponse, summary="Public Menu")
async def get_public_menu(
    establishment: Establishment = Depends(get_establishment),
    db: AsyncSession = Depends(get_db),
) -> PublicMenuResponse:
    """Establishment presentation, active categories and their products."""
    categories = await active_categories(db, establishment.id)
    products = await visible_products(db, establishment.id, categories)

    return PublicMenuResponse(
        establishment=PublicEstablishmentResponse.model_validate(establishment),
        menu_active=is_entitled(establishment),
        accepting_orders=normalize_contact_handle(establishment.whatsapp_phone) is not None,
        categories=[CategoryResponse.model_validate(c) for c in categories],
        products=[ProductResponse.model_validate(p) for p in products],
    )


@router.get("/categories", response_model=List[CategoryResponse])
async def get_public_categories(
    establishment: Establishment = Depends(get_establishment),
    db: AsyncSession = Depends(get_db),
) -> List[CategoryResponse]:
    categories = await active_categories(db, establishment.id)
    return [CategoryResponse.model_validate(c) for c in categories]


@router.get("/products", response_model=List[ProductResponse])
async def get_public_products(
    establishment: Establishment = Depends(get_establishment),
    db: AsyncSession = Depends(get_db),
) -> List[ProductResponse]:
    categories = await active_categories(db, establishment.id)
    products = await visible_products(db, establishment.id, categories)
    return [ProductResponse.model_validate(p) for p in products]
