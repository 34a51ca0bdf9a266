"""
Pydantic Schemas for Request/Response Validation

Covers establishments, the catalog (categories, products with option
groups), customer orders, subscription billing and health checks.
"""

import re
from datetime import datetime
from decimal import Decimal
from typing import Annotated, List, Optional

from pydantic import (
    AfterValidator,
    BaseModel,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

from digital_menu.models import OptionKind, OrderStatus
from digital_menu.services.pricing import CENT
from digital_menu.services.subscriptions import evaluate_entitlement


Money = Annotated[
    Decimal,
    Field(ge=0, max_digits=10, decimal_places=2),
    AfterValidator(lambda value: value.quantize(CENT)),
]


def _validate_phone(v: Optional[str]) -> Optional[str]:
    if v is None or v == "":
        return None
    cleaned = re.sub(r'[^\d]', '', v)
    if len(cleaned) < 8:
        raise ValueError('Phone number must have at least 8 digits')
    return v


# =============================================================================
# ESTABLISHMENTS
# =============================================================================

class EstablishmentBase(BaseModel):
    whatsapp_phone: Optional[str] = Field(None, max_length=30, examples=["+55 11 91234-5678"])
    address: Optional[str] = Field(None, max_length=255)
    opening_hours: Optional[str] = Field(None, max_length=255, examples=["Tue-Sun 18h-23h"])
    social_links: List[str] = Field(default_factory=list)
    welcome_message: Optional[str] = Field(None, max_length=1000)
    primary_color: str = Field(default="#4F46E5", pattern=r"^#[0-9A-Fa-f]{6}$")
    logo_url: Optional[str] = Field(None, max_length=500)

    @field_validator('whatsapp_phone')
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        return _validate_phone(v)


class EstablishmentCreate(EstablishmentBase):
    """Registration payload."""
    email: str = Field(..., max_length=255, examples=["owner@burgerhouse.com"])
    name: str = Field(..., min_length=2, max_length=150, examples=["Burger House"])

    @field_validator('email')
    @classmethod
    def validate_email(cls, v: str) -> str:
        if not re.match(r'^[\w\.\+-]+@[\w\.-]+\.\w+$', v):
            raise ValueError('Invalid email format')
        return v.lower()


class EstablishmentUpdate(BaseModel):
    """
    Profile update. Email and subscription state are deliberately absent:
    subscriptions change only through the payment webhook.
    """
    name: Optional[str] = Field(None, min_length=2, max_length=150)
    whatsapp_phone: Optional[str] = Field(None, max_length=30)
    address: Optional[str] = Field(None, max_length=255)
    opening_hours: Optional[str] = Field(None, max_length=255)
    social_links: Optional[List[str]] = None
    welcome_message: Optional[str] = Field(None, max_length=1000)
    primary_color: Optional[str] = Field(None, pattern=r"^#[0-9A-Fa-f]{6}$")
    logo_url: Optional[str] = Field(None, max_length=500)

    @field_validator('whatsapp_phone')
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        return _validate_phone(v)


class EstablishmentResponse(EstablishmentBase):
    id: int
    email: str
    name: str
    subscription_active: bool
    subscription_expires_at: Optional[datetime]
    subscription_plan: Optional[str]
    created_at: datetime

    @computed_field
    @property
    def subscription_status(self) -> str:
        return evaluate_entitlement(self).value

    class Config:
        from_attributes = True


class PublicEstablishmentResponse(BaseModel):
    """What customers see; no email, no subscription details."""
    id: int
    name: str
    whatsapp_phone: Optional[str]
    address: Optional[str]
    opening_hours: Optional[str]
    social_links: List[str]
    welcome_message: Optional[str]
    primary_color: str
    logo_url: Optional[str]

    class Config:
        from_attributes = True


# =============================================================================
# CATALOG
# =============================================================================

class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, examples=["Burgers"])
    sort_order: int = Field(default=0, examples=[1])
    active: bool = True


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    sort_order: Optional[int] = None
    active: Optional[bool] = None


class CategoryResponse(BaseModel):
    id: int
    establishment_id: int
    name: str
    sort_order: int
    active: bool

    class Config:
        from_attributes = True


class OptionItemSchema(BaseModel):
    label: str = Field(..., min_length=1, max_length=100, examples=["Large"])
    extra_price: Money = Field(default=Decimal("0.00"), examples=["5.00"])


class OptionGroupSchema(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, examples=["Size"])
    kind: OptionKind = OptionKind.SINGLE_SELECT
    min_selections: Optional[int] = Field(None, ge=0)
    max_selections: Optional[int] = Field(None, ge=0)
    items: List[OptionItemSchema] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_selection_bounds(self) -> "OptionGroupSchema":
        if (
            self.min_selections is not None
            and self.max_selections is not None
            and self.min_selections > self.max_selections
        ):
            raise ValueError("min_selections cannot exceed max_selections")
        return self


def _check_unique_group_names(groups):
    """Selections are resolved by group name, so a product cannot repeat one."""
    if groups is None:
        return groups
    names = [group.name for group in groups]
    if len(names) != len(set(names)):
        raise ValueError('Option group names must be unique within a product')
    return groups


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150, examples=["Classic Burger"])
    category_id: Optional[int] = None
    description: Optional[str] = Field(None, max_length=1000)
    base_price: Money = Field(..., examples=["20.00"])
    image_url: Optional[str] = Field(None, max_length=500)
    available: bool = True
    option_groups: List[OptionGroupSchema] = Field(default_factory=list)

    @field_validator('option_groups')
    @classmethod
    def unique_group_names(cls, v: List[OptionGroupSchema]) -> List[OptionGroupSchema]:
        return _check_unique_group_names(v)


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    category_id: Optional[int] = None
    description: Optional[str] = Field(None, max_length=1000)
    base_price: Optional[Money] = None
    image_url: Optional[str] = Field(None, max_length=500)
    available: Optional[bool] = None
    option_groups: Optional[List[OptionGroupSchema]] = None

    @field_validator('option_groups')
    @classmethod
    def unique_group_names(cls, v: Optional[List[OptionGroupSchema]]) -> Optional[List[OptionGroupSchema]]:
        return _check_unique_group_names(v)


class ProductResponse(BaseModel):
    id: int
    establishment_id: int
    category_id: Optional[int]
    name: str
    description: Optional[str]
    base_price: Decimal
    image_url: Optional[str]
    available: bool
    option_groups: List[OptionGroupSchema]

    class Config:
        from_attributes = True


# =============================================================================
# ORDERS
# =============================================================================

class OptionSelectionCreate(BaseModel):
    group_name: str = Field(..., min_length=1, examples=["Size"])
    value: str = Field(..., examples=["Large"])


class OrderItemCreate(BaseModel):
    """Single cart line."""
    product_id: int
    quantity: int = Field(..., ge=1, examples=[2])
    notes: Optional[str] = Field(None, max_length=300)
    selected_options: List[OptionSelectionCreate] = Field(default_factory=list)


class OrderCreate(BaseModel):
    """Customer order placed from the public menu."""
    establishment_id: int
    items: List[OrderItemCreate] = Field(..., min_length=1)
    customer_name: str = Field(..., min_length=1, max_length=100, examples=["Maria Silva"])
    customer_phone: str = Field(..., min_length=8, max_length=30, examples=["11 98765-4321"])
    customer_address: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator('customer_phone')
    @classmethod
    def validate_phone(cls, v: str) -> str:
        return _validate_phone(v)


class OrderUpdate(BaseModel):
    status: Optional[OrderStatus] = None
    customer_name: Optional[str] = Field(None, min_length=1, max_length=100)
    customer_phone: Optional[str] = Field(None, min_length=8, max_length=30)
    customer_address: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = Field(None, max_length=500)


class SelectedOptionResponse(BaseModel):
    group_name: str
    value: str
    extra_price: Decimal


class OrderItemResponse(BaseModel):
    product_id: int
    product_name: str
    unit_price: Decimal
    quantity: int
    notes: Optional[str]
    selected_options: List[SelectedOptionResponse]

    @computed_field
    @property
    def subtotal(self) -> Decimal:
        return (self.unit_price * self.quantity).quantize(CENT)

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    id: int
    establishment_id: int
    customer_name: str
    customer_phone: str
    customer_address: Optional[str]
    notes: Optional[str]
    total: Decimal
    status: OrderStatus
    created_at: datetime
    updated_at: Optional[datetime]
    items: List[OrderItemResponse]

    class Config:
        from_attributes = True


class OrderCreateResponse(BaseModel):
    """Response after successfully placing an order."""
    order: OrderResponse
    message: str
    whatsapp_url: str


# =============================================================================
# PUBLIC MENU
# =============================================================================

class PublicMenuResponse(BaseModel):
    establishment: PublicEstablishmentResponse
    menu_active: bool
    accepting_orders: bool
    categories: List[CategoryResponse]
    products: List[ProductResponse]


# =============================================================================
# BILLING
# =============================================================================

class CheckoutRequest(BaseModel):
    plan_id: str = Field(..., examples=["monthly", "annual"])
    establishment_id: int


class CheckoutResponse(BaseModel):
    checkout_url: str
    session_id: Optional[str] = None
    plan_id: str
    provider: str


class WebhookResponse(BaseModel):
    received: bool
    establishment_id: Optional[int] = None
    status: Optional[str] = None
    subscription_active: Optional[bool] = None


# =============================================================================
# MISC
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    message: str
    error: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    redis: str
    payment_service: str
    notification_service: str
    timestamp: datetime
