"""
Catalog and Order Repositories

Abstract interfaces plus their SQLAlchemy implementations. Order placement
talks to these instead of the session so that the pricing engine only ever
sees an in-memory catalog snapshot.
"""

from abc import ABC, abstractmethod
from typing import Iterable, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from digital_menu.models import Establishment, Order, OrderItem, OrderStatus, Product
from digital_menu.services.pricing import CatalogSnapshot, PricedOrder, ProductSnapshot


class CatalogRepository(ABC):
    """Read access to an establishment's catalog."""

    @abstractmethod
    async def get_establishment(self, establishment_id: int) -> Optional[Establishment]:
        pass

    @abstractmethod
    async def load_snapshot(
        self,
        establishment_id: int,
        product_ids: Iterable[int],
    ) -> CatalogSnapshot:
        """
        Snapshot the given products, scoped to the establishment.

        Products belonging to other establishments are left out, so the
        engine reports them as not found.
        """
        pass


class OrderRepository(ABC):
    """Persistence for priced orders."""

    @abstractmethod
    async def add(
        self,
        priced: PricedOrder,
        customer_name: str,
        customer_phone: str,
        customer_address: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Order:
        pass

    @abstractmethod
    async def get(self, establishment_id: int, order_id: int) -> Optional[Order]:
        pass

    @abstractmethod
    async def list_for_establishment(self, establishment_id: int) -> Sequence[Order]:
        pass


class SqlAlchemyCatalogRepository(CatalogRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_establishment(self, establishment_id: int) -> Optional[Establishment]:
        return await self.session.get(Establishment, establishment_id)

    async def load_snapshot(
        self,
        establishment_id: int,
        product_ids: Iterable[int],
    ) -> CatalogSnapshot:
        ids = set(product_ids)
        products = []
        if ids:
            result = await self.session.execute(
                select(Product).where(
                    Product.establishment_id == establishment_id,
                    Product.id.in_(ids),
                )
            )
            products = [ProductSnapshot.from_record(p) for p in result.scalars().all()]
        return CatalogSnapshot.from_products(establishment_id, products)


class SqlAlchemyOrderRepository(OrderRepository):
    """Adds orders to the session; the caller owns the commit."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(
        self,
        priced: PricedOrder,
        customer_name: str,
        customer_phone: str,
        customer_address: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Order:
        order = Order(
            establishment_id=priced.establishment_id,
            customer_name=customer_name,
            customer_phone=customer_phone,
            customer_address=customer_address,
            notes=notes,
            total=priced.total,
            status=OrderStatus.PENDING,
            items=[
                OrderItem(
                    position=position,
                    product_id=line.product_id,
                    product_name=line.product_name,
                    unit_price=line.unit_price,
                    quantity=line.quantity,
                    notes=line.notes,
                    selected_options=[option.to_dict() for option in line.selected_options],
                )
                for position, line in enumerate(priced.lines)
            ],
        )
        self.session.add(order)
        await self.session.flush()
        return order

    async def get(self, establishment_id: int, order_id: int) -> Optional[Order]:
        result = await self.session.execute(
            select(Order).where(
                Order.id == order_id,
                Order.establishment_id == establishment_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_for_establishment(self, establishment_id: int) -> Sequence[Order]:
        result = await self.session.execute(
            select(Order)
            .where(Order.establishment_id == establishment_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
        )
        return result.scalars().all()
