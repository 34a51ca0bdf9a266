import asyncio
import json

import pytest

from digital_menu.core.exceptions import InvalidWebhookError
from digital_menu.services.payment.mock import MockPaymentService
from digital_menu.services.payment.stripe import StripePaymentService
from digital_menu.services.subscriptions import get_plan


class TestMockPaymentService:
    def test_checkout_link(self):
        service = MockPaymentService(frontend_url="http://menu.local")
        result = asyncio.run(service.create_checkout_link(get_plan("annual"), 3))

        assert result.success
        assert result.checkout_url.startswith(MockPaymentService.CHECKOUT_BASE_URL)
        session = service.sessions[result.session_id]
        assert session["amount"] == "290.90"
        assert session["return_urls"]["success"].startswith(
            "http://menu.local/payment-status?status=success&plan=annual&establishment_id=3"
        )

    def test_session_record_is_bounded(self):
        service = MockPaymentService()
        service.MAX_SESSIONS = 2

        async def checkouts():
            return [await service.create_checkout_link(get_plan("monthly"), i) for i in range(3)]

        results = asyncio.run(checkouts())

        assert list(service.sessions) == [r.session_id for r in results[1:]]

    def test_checkout_failure_simulation(self):
        service = MockPaymentService(failure_rate=1.0)
        result = asyncio.run(service.create_checkout_link(get_plan("monthly"), 3))

        assert not result.success
        assert result.checkout_url is None
        assert result.error_code

    def test_webhook_body_taken_at_face_value(self):
        service = MockPaymentService()
        payload = json.dumps({"establishment_id": "5", "status": "Approved", "plan_id": "monthly"})
        event = asyncio.run(service.verify_webhook(payload.encode(), None))

        assert event.establishment_id == 5
        assert event.status == "approved"
        assert event.plan_id == "monthly"

    @pytest.mark.parametrize("payload", [b"not json", b"{}", b'{"status": "approved"}', b"[]"])
    def test_invalid_webhook(self, payload):
        with pytest.raises(InvalidWebhookError):
            asyncio.run(MockPaymentService().verify_webhook(payload, None))


def stripe_event(event_type, **obj):
    return {"id": "evt_1", "type": event_type, "data": {"object": obj}}


@pytest.fixture()
def stripe_service():
    # Event mapping needs no API key
    return StripePaymentService.__new__(StripePaymentService)


class TestStripeEventMapping:
    def test_paid_checkout_approves(self, stripe_service):
        event = stripe_service._to_status_event(
            stripe_event(
                "checkout.session.completed",
                payment_status="paid",
                metadata={"establishment_id": "8", "plan_id": "annual"},
            )
        )
        assert (event.establishment_id, event.status, event.plan_id) == (8, "approved", "annual")

    def test_unpaid_checkout_is_pending(self, stripe_service):
        event = stripe_service._to_status_event(
            stripe_event(
                "checkout.session.completed",
                payment_status="unpaid",
                client_reference_id="8",
            )
        )
        assert event.status == "pending"
        assert event.establishment_id == 8

    @pytest.mark.parametrize(
        "event_type, status",
        [
            ("checkout.session.async_payment_succeeded", "approved"),
            ("checkout.session.async_payment_failed", "rejected"),
            ("checkout.session.expired", "rejected"),
            ("charge.refunded", "refunded"),
        ],
    )
    def test_event_statuses(self, stripe_service, event_type, status):
        event = stripe_service._to_status_event(
            stripe_event(event_type, metadata={"establishment_id": "8", "plan_id": "monthly"})
        )
        assert event.status == status

    def test_irrelevant_event_ignored(self, stripe_service):
        assert stripe_service._to_status_event(stripe_event("customer.created")) is None

    def test_event_without_establishment_ignored(self, stripe_service):
        event = stripe_event("checkout.session.completed", payment_status="paid", metadata={})
        assert stripe_service._to_status_event(event) is None

    def test_event_with_malformed_establishment_ignored(self, stripe_service):
        event = stripe_event("charge.refunded", metadata={"establishment_id": "abc"})
        assert stripe_service._to_status_event(event) is None
