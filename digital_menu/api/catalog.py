"""
Menu management: categories and products.

Every route here sits behind the subscription gate. Ids that belong to a
different establishment are reported as not found.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from digital_menu.api.deps import require_entitlement
from digital_menu.core.exceptions import CategoryNotFoundError, ProductNotFoundError
from digital_menu.database import get_db
from digital_menu.models import Category, Establishment, Product
from digital_menu.schemas import (
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    ErrorResponse,
    ProductCreate,
    ProductResponse,
    ProductUpdate,
)

logger = logging.getLogger(__name__)

GATED_RESPONSES = {403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}}

categories_router = APIRouter(
    prefix="/api/establishments/{establishment_id}/categories",
    tags=["Categories"],
    dependencies=[Depends(require_entitlement)],
    responses=GATED_RESPONSES,
)

products_router = APIRouter(
    prefix="/api/establishments/{establishment_id}/products",
    tags=["Products"],
    dependencies=[Depends(require_entitlement)],
    responses=GATED_RESPONSES,
)


# =============================================================================
# HELPERS
# =============================================================================

async def load_category(db: AsyncSession, establishment_id: int, category_id: int) -> Category:
    category = await db.get(Category, category_id)
    if category is None or category.establishment_id != establishment_id:
        raise CategoryNotFoundError(category_id)
    return category


async def load_product(db: AsyncSession, establishment_id: int, product_id: int) -> Product:
    product = await db.get(Product, product_id)
    if product is None or product.establishment_id != establishment_id:
        raise ProductNotFoundError(product_id)
    return product


def dump_option_groups(groups) -> list[dict]:
    """Option groups are stored as JSON; prices become strings."""
    return [group.model_dump(mode="json") for group in groups]


# =============================================================================
# CATEGORIES
# =============================================================================

@categories_router.get("", response_model=List[CategoryResponse])
async def list_categories(
    establishment: Establishment = Depends(require_entitlement),
    db: AsyncSession = Depends(get_db),
) -> List[CategoryResponse]:
    """All categories, inactive included, in display order."""
    result = await db.execute(
        select(Category)
        .where(Category.establishment_id == establishment.id)
        .order_by(Category.sort_order, Category.id)
    )
    return [CategoryResponse.model_validate(c) for c in result.scalars().all()]


@categories_router.post(
    "",
    response_model=CategoryResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_category(
    data: CategoryCreate,
    establishment: Establishment = Depends(require_entitlement),
    db: AsyncSession = Depends(get_db),
) -> CategoryResponse:
    category = Category(establishment_id=establishment.id, **data.model_dump())
    db.add(category)
    await db.commit()

    logger.info(f"Category #{category.id} '{category.name}' created for establishment #{establishment.id}")
    return CategoryResponse.model_validate(category)


@categories_router.put("/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: int,
    data: CategoryUpdate,
    establishment: Establishment = Depends(require_entitlement),
    db: AsyncSession = Depends(get_db),
) -> CategoryResponse:
    category = await load_category(db, establishment.id, category_id)
    for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(category, field, value)
    await db.commit()
    return CategoryResponse.model_validate(category)


@categories_router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(
    category_id: int,
    establishment: Establishment = Depends(require_entitlement),
    db: AsyncSession = Depends(get_db),
) -> Response:
    """Delete a category together with every product filed under it."""
    category = await load_category(db, establishment.id, category_id)

    result = await db.execute(
        delete(Product)
        .where(
            Product.establishment_id == establishment.id,
            Product.category_id == category.id,
        )
        .execution_options(synchronize_session=False)
    )
    await db.delete(category)
    await db.commit()

    logger.info(
        f"Category #{category_id} deleted for establishment #{establishment.id} "
        f"({result.rowcount or 0} product(s) removed)"
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# PRODUCTS
# =============================================================================

@products_router.get("", response_model=List[ProductResponse])
async def list_products(
    category_id: Optional[int] = Query(None),
    establishment: Establishment = Depends(require_entitlement),
    db: AsyncSession = Depends(get_db),
) -> List[ProductResponse]:
    query = select(Product).where(Product.establishment_id == establishment.id)
    if category_id is not None:
        query = query.where(Product.category_id == category_id)
    result = await db.execute(query.order_by(Product.name, Product.id))
    return [ProductResponse.model_validate(p) for p in result.scalars().all()]


@products_router.post(
    "",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_product(
    data: ProductCreate,
    establishment: Establishment = Depends(require_entitlement),
    db: AsyncSession = Depends(get_db),
) -> ProductResponse:
    if data.category_id is not None:
        await load_category(db, establishment.id, data.category_id)

    product = Product(
        establishment_id=establishment.id,
        category_id=data.category_id,
        name=data.name,
        description=data.description,
        base_price=data.base_price,
        image_url=data.image_url,
        available=data.available,
        option_groups=dump_option_groups(data.option_groups),
    )
    db.add(product)
    await db.commit()

    logger.info(f"Product #{product.id} '{product.name}' created for establishment #{establishment.id}")
    return ProductResponse.model_validate(product)


@products_router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: int,
    establishment: Establishment = Depends(require_entitlement),
    db: AsyncSession = Depends(get_db),
) -> ProductResponse:
    product = await load_product(db, establishment.id, product_id)
    return ProductResponse.model_validate(product)


@products_router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: int,
    data: ProductUpdate,
    establishment: Establishment = Depends(require_entitlement),
    db: AsyncSession = Depends(get_db),
) -> ProductResponse:
    """
    Update a product. Existing orders keep the name and prices they were
    placed with.
    """
    product = await load_product(db, establishment.id, product_id)
    updates = data.model_dump(exclude_unset=True)

    if "category_id" in updates and updates["category_id"] is not None:
        await load_category(db, establishment.id, updates["category_id"])
    if "option_groups" in updates:
        updates["option_groups"] = dump_option_groups(data.option_groups or [])

    for field, value in updates.items():
        if value is None and field not in ("category_id", "description", "image_url"):
            continue
        setattr(product, field, value)
    await db.commit()

    return ProductResponse.model_validate(product)


@products_router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(
    product_id: int,
    establishment: Establishment = Depends(require_entitlement),
    db: AsyncSession = Depends(get_db),
) -> Response:
    product = await load_product(db, establishment.id, product_id)
    await db.delete(product)
    await db.commit()

    logger.info(f"Product #{product_id} deleted for establishment #{establishment.id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
