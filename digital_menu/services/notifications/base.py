"""
Order alert channels.

Implementations provide one WhatsApp send and one email send;
``send_order_alert`` fans a rendered order message out over whichever
channels the establishment has.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class NotificationResult:
    """Result from sending a notification."""
    success: bool
    message_id: Optional[str] = None
    error_message: Optional[str] = None
    provider: str = "unknown"


@dataclass
class OrderAlertResult:
    """Combined outcome of alerting an establishment about an order."""
    whatsapp: Optional[NotificationResult] = None
    email: Optional[NotificationResult] = None
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return any(r is not None and r.success for r in (self.whatsapp, self.email))

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "whatsapp_sent": bool(self.whatsapp and self.whatsapp.success),
            "email_sent": bool(self.email and self.email.success),
            "errors": list(self.errors),
        }


class BaseNotificationService(ABC):
    """Abstract base class for notification services."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    async def send_whatsapp(
        self,
        to_phone: str,
        message: str,
    ) -> NotificationResult:
        """Send a WhatsApp message to a digits-only phone number."""
        pass

    @abstractmethod
    async def send_email(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str] = None,
    ) -> NotificationResult:
        """Send an email."""
        pass

    async def send_order_alert(
        self,
        order_id: int,
        establishment_name: str,
        whatsapp_phone: Optional[str],
        email: Optional[str],
        message: str,
    ) -> OrderAlertResult:
        """Push the rendered order message over every configured channel."""
        result = OrderAlertResult()

        if whatsapp_phone:
            result.whatsapp = await self.send_whatsapp(whatsapp_phone, message)
            if not result.whatsapp.success:
                result.errors.append(f"whatsapp: {result.whatsapp.error_message}")

        if email:
            body_html = "<br>".join(message.splitlines())
            result.email = await self.send_email(
                to_email=email,
                subject=f"New order #{order_id} - {establishment_name}",
                body_html=f"<div style=\"font-family: Arial, sans-serif;\">{body_html}</div>",
                body_text=message,
            )
            if not result.email.success:
                result.errors.append(f"email: {result.email.error_message}")

        return result

    @abstractmethod
    async def health_check(self) -> bool:
        """Check service connectivity."""
        pass
