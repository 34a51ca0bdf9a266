"""
Domain Exceptions

Every error the service raises on purpose derives from DigitalMenuError and
carries the HTTP status it maps to. The API layer turns them into
``{"message": ..., "error": ...}`` responses.
"""

from typing import Any, Optional


class DigitalMenuError(Exception):
    """Base class for expected, request-scoped failures."""

    status_code: int = 500
    error: str = "internal_error"

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict:
        return {"message": self.message, "error": self.error}


# =============================================================================
# NOT FOUND
# =============================================================================

class NotFoundError(DigitalMenuError):
    status_code = 404
    error = "not_found"


class EstablishmentNotFoundError(NotFoundError):
    error = "establishment_not_found"

    def __init__(self, establishment_id: Any):
        super().__init__(
            f"Establishment {establishment_id} not found",
            establishment_id=establishment_id,
        )
        self.establishment_id = establishment_id


class CategoryNotFoundError(NotFoundError):
    error = "category_not_found"

    def __init__(self, category_id: Any):
        super().__init__(f"Category {category_id} not found", category_id=category_id)
        self.category_id = category_id


class ProductNotFoundError(NotFoundError):
    error = "product_not_found"

    def __init__(self, product_id: Any):
        super().__init__(f"Product {product_id} not found", product_id=product_id)
        self.product_id = product_id


class OrderNotFoundError(NotFoundError):
    error = "order_not_found"

    def __init__(self, order_id: Any):
        super().__init__(f"Order {order_id} not found", order_id=order_id)
        self.order_id = order_id


# =============================================================================
# VALIDATION
# =============================================================================

class ValidationError(DigitalMenuError):
    status_code = 422
    error = "validation_error"


class EmptyCartError(ValidationError):
    error = "empty_cart"

    def __init__(self):
        super().__init__("An order needs at least one item")


class InvalidQuantityError(ValidationError):
    error = "invalid_quantity"

    def __init__(self, product_id: Any, quantity: Any):
        super().__init__(
            f"Quantity for product {product_id} must be a positive integer, got {quantity!r}",
            product_id=product_id,
            quantity=quantity,
        )


class InvalidStatusTransitionError(ValidationError):
    error = "invalid_status_transition"

    def __init__(self, current: str, requested: str):
        super().__init__(
            f"Cannot move an order from '{current}' to '{requested}'",
            current=current,
            requested=requested,
        )


class DuplicateEmailError(ValidationError):
    status_code = 409
    error = "duplicate_email"

    def __init__(self, email: str):
        super().__init__(f"Email {email} is already registered", email=email)


class UnknownPlanError(ValidationError):
    error = "unknown_plan"

    def __init__(self, plan_id: str):
        super().__init__(f"Unknown subscription plan '{plan_id}'", plan_id=plan_id)


# =============================================================================
# PERMISSION
# =============================================================================

class PermissionDeniedError(DigitalMenuError):
    status_code = 403
    error = "permission_denied"


class SubscriptionInactiveError(PermissionDeniedError):
    error = "subscription_inactive"

    def __init__(self, establishment_id: Any, reason: Optional[str] = None):
        super().__init__(
            "The subscription for this establishment is not active or has expired. "
            "Subscribe to regain full access.",
            establishment_id=establishment_id,
            reason=reason,
        )


# =============================================================================
# UPSTREAM
# =============================================================================

class UpstreamError(DigitalMenuError):
    status_code = 502
    error = "upstream_error"


class PaymentProviderError(UpstreamError):
    error = "payment_provider_error"


class MissingContactChannelError(UpstreamError):
    """The establishment has no WhatsApp handle to receive orders on."""

    status_code = 409
    error = "missing_contact_channel"

    def __init__(self, establishment_id: Any):
        super().__init__(
            "The establishment has no WhatsApp number configured and cannot receive orders",
            establishment_id=establishment_id,
        )


class InvalidWebhookError(DigitalMenuError):
    """A payment webhook failed signature or payload checks."""

    status_code = 400
    error = "invalid_webhook"
