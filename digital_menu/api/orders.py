"""
Order endpoints.

``POST /api/orders`` is the customer-facing entry point and is never gated.
The management routes under ``/api/establishments/{id}/orders`` require an
active subscription.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from digital_menu.api.deps import require_entitlement
from digital_menu.core.config import get_settings
from digital_menu.core.exceptions import OrderNotFoundError
from digital_menu.database import get_db
from digital_menu.models import Establishment, Order
from digital_menu.schemas import (
    ErrorResponse,
    OrderCreate,
    OrderCreateResponse,
    OrderResponse,
    OrderUpdate,
)
from digital_menu.services.orders import change_order_status, place_order
from digital_menu.services.pricing import CartLine, OptionSelection
from digital_menu.services.repositories import SqlAlchemyOrderRepository
from digital_menu.tasks import send_order_alert

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Orders"])

manage_router = APIRouter(
    prefix="/api/establishments/{establishment_id}/orders",
    tags=["Orders"],
    dependencies=[Depends(require_entitlement)],
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)


def to_cart_lines(order_data: OrderCreate) -> list[CartLine]:
    return [
        CartLine(
            product_id=item.product_id,
            quantity=item.quantity,
            selections=tuple(
                OptionSelection(group_name=s.group_name, value=s.value)
                for s in item.selected_options
            ),
            notes=item.notes,
        )
        for item in order_data.items
    ]


def queue_order_alert(order_id: int) -> None:
    """Hand the order to the worker; the order itself is already committed."""
    if not get_settings().order_alerts_enabled:
        return
    try:
        send_order_alert.delay(order_id)
    # Broker outages must not turn a placed order into an error response
    except Exception as e:
        logger.error(f"Could not queue alert for order #{order_id}: {e}")


# =============================================================================
# CUSTOMER
# =============================================================================

@router.post(
    "/api/orders",
    response_model=OrderCreateResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
    summary="Place Order",
)
async def create_order(
    order_data: OrderCreate,
    db: AsyncSession = Depends(get_db),
) -> OrderCreateResponse:
    """
    Place an order from the public menu.

    Prices are computed server-side from the current catalog. The response
    carries the rendered message and a wa.me link the customer opens to
    send it to the establishment.
    """
    logger.info(
        f"Creating order for establishment #{order_data.establishment_id}: "
        f"{order_data.customer_name}"
    )

    placed = await place_order(
        db,
        establishment_id=order_data.establishment_id,
        cart_lines=to_cart_lines(order_data),
        customer_name=order_data.customer_name,
        customer_phone=order_data.customer_phone,
        customer_address=order_data.customer_address,
        notes=order_data.notes,
    )

    queue_order_alert(placed.order.id)

    return OrderCreateResponse(
        order=OrderResponse.model_validate(placed.order),
        message=placed.message,
        whatsapp_url=placed.whatsapp_url,
    )


# =============================================================================
# ESTABLISHMENT
# =============================================================================

async def load_order(db: AsyncSession, establishment_id: int, order_id: int) -> Order:
    order = await SqlAlchemyOrderRepository(db).get(establishment_id, order_id)
    if order is None:
        raise OrderNotFoundError(order_id)
    return order


@manage_router.get("", response_model=List[OrderResponse])
async def list_orders(
    establishment: Establishment = Depends(require_entitlement),
    db: AsyncSession = Depends(get_db),
) -> List[OrderResponse]:
    """Orders for this establishment, newest first."""
    orders = await SqlAlchemyOrderRepository(db).list_for_establishment(establishment.id)
    return [OrderResponse.model_validate(order) for order in orders]


@manage_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: int,
    establishment: Establishment = Depends(require_entitlement),
    db: AsyncSession = Depends(get_db),
) -> OrderResponse:
    order = await load_order(db, establishment.id, order_id)
    return OrderResponse.model_validate(order)


@manage_router.put("/{order_id}", response_model=OrderResponse)
async def update_order(
    order_id: int,
    data: OrderUpdate,
    establishment: Establishment = Depends(require_entitlement),
    db: AsyncSession = Depends(get_db),
) -> OrderResponse:
    """Change status and/or customer details. Line items are immutable."""
    order = await load_order(db, establishment.id, order_id)
    updates = data.model_dump(exclude_unset=True)

    requested = updates.pop("status", None)
    if requested is not None and change_order_status(order, requested):
        logger.info(f"Order #{order.id} moved to {order.status.value}")

    for field, value in updates.items():
        if value is None and field in ("customer_name", "customer_phone"):
            continue
        setattr(order, field, value)

    await db.commit()
    return OrderResponse.model_validate(order)


@manage_router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_order(
    order_id: int,
    establishment: Establishment = Depends(require_entitlement),
    db: AsyncSession = Depends(get_db),
) -> Response:
    order = await load_order(db, establishment.id, order_id)
    await db.delete(order)
    await db.commit()

    logger.info(f"Order #{order_id} deleted for establishment #{establishment.id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
