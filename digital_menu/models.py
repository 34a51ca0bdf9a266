"""
SQLAlchemy Database Models

Tables:
- establishments: merchant accounts owning a menu, plus subscription state
- categories / products: the catalog; option groups live as JSON on the product
- orders / order_items: priced orders with line-item snapshots
"""

import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from digital_menu.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderStatus(str, enum.Enum):
    """Order status workflow."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    DELIVERED = "delivered"


# Allowed moves; anything else is rejected
ORDER_STATUS_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.CANCELLED: frozenset(),
    OrderStatus.DELIVERED: frozenset(),
}


class OptionKind(str, enum.Enum):
    """How an option group is presented and priced."""
    SINGLE_SELECT = "single_select"
    MULTI_SELECT = "multi_select"
    QUANTITY = "quantity"  # free-text / amount, value need not match an item
    CHECKBOX = "checkbox"  # additive extras


class Establishment(Base):
    """
    A merchant account that owns a menu.

    The subscription columns are written only by the payment webhook and the
    scheduled reconciliation, never by the profile update endpoint.
    """
    __tablename__ = "establishments"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True, index=True)

    # =========================================================================
    # PROFILE
    # =========================================================================
    name = Column(String(150), nullable=False)
    whatsapp_phone = Column(String(30), nullable=True)
    address = Column(String(255), nullable=True)
    opening_hours = Column(String(255), nullable=True)
    social_links = Column(JSON, nullable=False, default=list)

    # =========================================================================
    # PRESENTATION
    # =========================================================================
    welcome_message = Column(Text, nullable=True)
    primary_color = Column(String(20), nullable=False, default="#4F46E5")
    logo_url = Column(String(500), nullable=True)

    # =========================================================================
    # SUBSCRIPTION
    # =========================================================================
    subscription_active = Column(Boolean, nullable=False, default=False)
    subscription_expires_at = Column(DateTime(timezone=True), nullable=True, index=True)
    subscription_plan = Column(String(30), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    def __repr__(self):
        return f"<Establishment #{self.id} - {self.name}>"


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    establishment_id = Column(
        Integer, ForeignKey("establishments.id"), nullable=False, index=True
    )
    name = Column(String(100), nullable=False)
    sort_order = Column(Integer, nullable=False, default=0)
    active = Column(Boolean, nullable=False, default=True)

    def __repr__(self):
        return f"<Category #{self.id} - {self.name}>"


class Product(Base):
    """
    A menu entry.

    ``option_groups`` is an ordered list of
    ``{"name", "kind", "min_selections", "max_selections", "items": [{"label", "extra_price"}]}``
    with prices stored as decimal strings.
    """
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    establishment_id = Column(
        Integer, ForeignKey("establishments.id"), nullable=False, index=True
    )
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True, index=True)
    name = Column(String(150), nullable=False)
    description = Column(Text, nullable=True)
    base_price = Column(Numeric(10, 2), nullable=False)
    image_url = Column(String(500), nullable=True)
    available = Column(Boolean, nullable=False, default=True)
    option_groups = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    def __repr__(self):
        return f"<Product #{self.id} - {self.name} - {self.base_price}>"


class Order(Base):
    """
    A customer order, priced at creation time.

    Customer contact fields are denormalized; line items are snapshots and
    never follow later product edits.
    """
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    establishment_id = Column(
        Integer, ForeignKey("establishments.id"), nullable=False, index=True
    )

    # =========================================================================
    # CUSTOMER INFORMATION
    # =========================================================================
    customer_name = Column(String(100), nullable=False)
    customer_phone = Column(String(30), nullable=False)
    customer_address = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)

    total = Column(Numeric(12, 2), nullable=False)
    status = Column(
        Enum(OrderStatus),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True
    )

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.position",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<Order #{self.id} - {self.customer_name} - {self.status.value}>"


class OrderItem(Base):
    """Snapshot of one ordered product."""
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)

    # No foreign key: the product may be deleted while the order lives on
    product_id = Column(Integer, nullable=False)
    product_name = Column(String(150), nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, nullable=False)
    notes = Column(Text, nullable=True)
    selected_options = Column(JSON, nullable=False, default=list)

    order = relationship("Order", back_populates="items")

    def __repr__(self):
        return f"<OrderItem {self.quantity}x {self.product_name}>"
