import asyncio

from digital_menu.services.notifications.mock import MockNotificationService


def send_alert(service, **overrides):
    kwargs = dict(
        order_id=12,
        establishment_name="Burger House",
        whatsapp_phone="5511912345678",
        email="owner@burgerhouse.com",
        message="*New Order - Burger House*\n\n*Total:* R$ 10.00",
    )
    kwargs.update(overrides)
    return asyncio.run(service.send_order_alert(**kwargs))


class TestOrderAlert:
    def test_both_channels(self):
        service = MockNotificationService()
        result = send_alert(service)

        assert result.to_dict() == {
            "success": True,
            "whatsapp_sent": True,
            "email_sent": True,
            "errors": [],
        }
        assert [m["channel"] for m in service.sent] == ["whatsapp", "email"]
        assert service.sent[1]["subject"] == "New order #12 - Burger House"

    def test_only_configured_channels_used(self):
        service = MockNotificationService()
        result = send_alert(service, email=None)

        assert result.success
        assert result.email is None
        assert [m["channel"] for m in service.sent] == ["whatsapp"]

    def test_failures_reported_not_raised(self):
        service = MockNotificationService(failure_rate=1.0)
        result = send_alert(service)

        assert not result.success
        assert len(result.errors) == 2
        assert service.sent == []

    def test_no_channels(self):
        result = send_alert(MockNotificationService(), whatsapp_phone=None, email=None)
        assert not result.success
        assert result.errors == []
