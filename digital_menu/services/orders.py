"""
Order Placement

Ties the pieces together for a customer order:

    establishment lookup -> contact check -> catalog snapshot -> pricing
    -> persistence (one transaction) -> WhatsApp message and link

The contact channel is checked before anything is written, so an
establishment that cannot receive orders never accumulates them.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from digital_menu.core.exceptions import (
    EstablishmentNotFoundError,
    InvalidStatusTransitionError,
)
from digital_menu.models import ORDER_STATUS_TRANSITIONS, Establishment, Order, OrderStatus
from digital_menu.services.order_messages import (
    build_notification_link,
    format_order_message,
    require_contact_handle,
)
from digital_menu.services.pricing import CartLine, PricedOrder, price_order
from digital_menu.services.repositories import (
    CatalogRepository,
    OrderRepository,
    SqlAlchemyCatalogRepository,
    SqlAlchemyOrderRepository,
)

logger = logging.getLogger(__name__)


@dataclass
class PlacedOrder:
    """Everything the caller needs to answer the customer."""
    establishment: Establishment
    order: Order
    priced: PricedOrder
    message: str
    whatsapp_url: str


async def place_order(
    session: AsyncSession,
    establishment_id: int,
    cart_lines: Sequence[CartLine],
    customer_name: str,
    customer_phone: str,
    customer_address: Optional[str] = None,
    notes: Optional[str] = None,
    catalog: Optional[CatalogRepository] = None,
    orders: Optional[OrderRepository] = None,
) -> PlacedOrder:
    """
    Price and persist a customer order.

    Raises:
        EstablishmentNotFoundError: Unknown establishment
        MissingContactChannelError: Establishment has no WhatsApp number
        EmptyCartError / InvalidQuantityError: Malformed cart
        ProductNotFoundError: A line references an unknown product
    """
    catalog = catalog or SqlAlchemyCatalogRepository(session)
    orders = orders or SqlAlchemyOrderRepository(session)

    establishment = await catalog.get_establishment(establishment_id)
    if establishment is None:
        raise EstablishmentNotFoundError(establishment_id)
    require_contact_handle(establishment)

    snapshot = await catalog.load_snapshot(
        establishment_id, (line.product_id for line in cart_lines)
    )
    priced = price_order(snapshot, cart_lines)

    try:
        order = await orders.add(
            priced,
            customer_name=customer_name,
            customer_phone=customer_phone,
            customer_address=customer_address,
            notes=notes,
        )
        await session.commit()
    except Exception:
        await session.rollback()
        raise

    message = format_order_message(establishment, order)
    whatsapp_url = build_notification_link(establishment, message)

    logger.info(
        f"Order #{order.id} placed for establishment #{establishment_id} "
        f"({len(priced.lines)} line(s), total {priced.total})"
    )

    return PlacedOrder(
        establishment=establishment,
        order=order,
        priced=priced,
        message=message,
        whatsapp_url=whatsapp_url,
    )


def change_order_status(order: Order, requested: OrderStatus) -> bool:
    """
    Move an order to a new status.

    Returns:
        True when the status changed, False for a repeat of the current status

    Raises:
        InvalidStatusTransitionError: The move is not allowed
    """
    current = order.status or OrderStatus.PENDING
    if requested == current:
        return False
    if requested not in ORDER_STATUS_TRANSITIONS[current]:
        raise InvalidStatusTransitionError(current.value, requested.value)
    order.status = requested
    return True
