"""
Real Notification Service

Delivers order alerts to the establishment owner:
- WhatsApp through the Twilio Messages API
- Email through SendGrid

Both SDKs are blocking, so each send runs in a worker thread. A channel
without credentials is reported as failed and never raises.
"""

import asyncio
import logging
from typing import Optional

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail
from twilio.rest import Client as TwilioClient
from twilio.base.exceptions import TwilioException

from digital_menu.core.config import get_settings
from digital_menu.services.notifications.base import (
    BaseNotificationService,
    NotificationResult,
)

logger = logging.getLogger(__name__)

SENDGRID_ACCEPTED = {200, 201, 202}


class RealNotificationService(BaseNotificationService):
    """Twilio WhatsApp + SendGrid email."""

    def __init__(self):
        settings = get_settings()

        self.twilio_client: Optional[TwilioClient] = None
        self.whatsapp_sender: Optional[str] = None
        if settings.twilio_account_sid and settings.twilio_auth_token and settings.twilio_whatsapp_number:
            self.twilio_client = TwilioClient(settings.twilio_account_sid, settings.twilio_auth_token)
            self.whatsapp_sender = f"whatsapp:{settings.twilio_whatsapp_number}"
        else:
            logger.warning("Order alerts over WhatsApp disabled: Twilio credentials missing")

        self.sendgrid_client: Optional[SendGridAPIClient] = None
        self.email_sender = settings.sendgrid_from_email
        if settings.sendgrid_api_key:
            self.sendgrid_client = SendGridAPIClient(settings.sendgrid_api_key)
        else:
            logger.warning("Order alerts over email disabled: SendGrid key missing")

        logger.info(
            f"RealNotificationService initialized "
            f"(whatsapp={'on' if self.twilio_client else 'off'}, "
            f"email={'on' if self.sendgrid_client else 'off'})"
        )

    @property
    def provider_name(self) -> str:
        return "real"

    async def send_whatsapp(self, to_phone: str, message: str) -> NotificationResult:
        if self.twilio_client is None:
            return NotificationResult(success=False, error_message="Twilio not configured", provider="twilio")

        try:
            sent = await asyncio.to_thread(
                self.twilio_client.messages.create,
                body=message,
                from_=self.whatsapp_sender,
                to=f"whatsapp:+{to_phone.lstrip('+')}",
            )
        except TwilioException as e:
            logger.error(f"Twilio rejected alert to {to_phone}: {e}")
            return NotificationResult(success=False, error_message=str(e), provider="twilio")

        logger.info(f"WhatsApp alert sent to {to_phone} ({sent.sid})")
        return NotificationResult(success=True, message_id=sent.sid, provider="twilio")

    async def send_email(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str] = None,
    ) -> NotificationResult:
        if self.sendgrid_client is None:
            return NotificationResult(success=False, error_message="SendGrid not configured", provider="sendgrid")

        mail = Mail(
            from_email=self.email_sender,
            to_emails=to_email,
            subject=subject,
            html_content=body_html,
            plain_text_content=body_text,
        )
        try:
            response = await asyncio.to_thread(self.sendgrid_client.send, mail)
        # python_http_client raises its own HTTPError subclasses per status
        except Exception as e:
            logger.error(f"SendGrid rejected alert to {to_email}: {e}")
            return NotificationResult(success=False, error_message=str(e), provider="sendgrid")

        accepted = response.status_code in SENDGRID_ACCEPTED
        logger.info(f"Email alert to {to_email}: HTTP {response.status_code}")
        return NotificationResult(
            success=accepted,
            message_id=response.headers.get("X-Message-Id"),
            error_message=None if accepted else f"HTTP {response.status_code}",
            provider="sendgrid",
        )

    async def health_check(self) -> bool:
        """At least one channel configured; no network probe."""
        return self.twilio_client is not None or self.sendgrid_client is not None
