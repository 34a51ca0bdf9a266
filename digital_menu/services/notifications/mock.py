"""
Mock Notification Service

Order alerts are never delivered in development. Each accepted alert is
logged and appended to ``sent`` so scripts and tests can inspect it.
"""

import asyncio
import random
import uuid
import logging
from typing import Optional

from digital_menu.services.notifications.base import (
    BaseNotificationService,
    NotificationResult,
)

logger = logging.getLogger(__name__)


class MockNotificationService(BaseNotificationService):
    """
    In-memory outbox for order alerts.

    Attributes:
        failure_rate: Probability that a single channel send fails (0.0-1.0)
        max_latency: Upper bound of the simulated delay in seconds
        sent: Alerts accepted so far, oldest first
    """

    def __init__(self, failure_rate: float = 0.0, max_latency: float = 0.0):
        self.failure_rate = failure_rate
        self.max_latency = max_latency
        self.sent: list[dict] = []
        logger.info(f"MockNotificationService initialized (failure_rate={failure_rate:.0%})")

    @property
    def provider_name(self) -> str:
        return "mock"

    async def _deliver(self, channel: str, recipient: str, **content) -> NotificationResult:
        if self.max_latency > 0:
            await asyncio.sleep(random.uniform(0, self.max_latency))

        if random.random() < self.failure_rate:
            logger.warning(f"Mock {channel} to {recipient} dropped (simulated failure)")
            return NotificationResult(
                success=False,
                error_message=f"Simulated {channel} failure",
                provider=self.provider_name,
            )

        message_id = f"{channel}_mock_{uuid.uuid4().hex[:12]}"
        self.sent.append({"channel": channel, "to": recipient, "id": message_id, **content})
        logger.info(f"Mock {channel} queued for {recipient} ({message_id})")
        return NotificationResult(success=True, message_id=message_id, provider=self.provider_name)

    async def send_whatsapp(self, to_phone: str, message: str) -> NotificationResult:
        return await self._deliver("whatsapp", to_phone, body=message)

    async def send_email(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str] = None,
    ) -> NotificationResult:
        return await self._deliver("email", to_email, subject=subject, body=body_text or body_html)

    async def health_check(self) -> bool:
        return True
