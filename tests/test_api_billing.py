from conftest import register_establishment


class TestCheckout:
    def test_checkout_link(self, client):
        created = register_establishment(client)
        response = client.post(
            "/api/billing/checkout",
            json={"plan_id": "monthly", "establishment_id": created["id"]},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["checkout_url"].startswith("https://checkout.mock.local/session/cs_mock_")
        assert data["plan_id"] == "monthly"
        assert data["provider"] == "mock"

    def test_unknown_plan(self, client):
        created = register_establishment(client)
        response = client.post(
            "/api/billing/checkout",
            json={"plan_id": "lifetime", "establishment_id": created["id"]},
        )

        assert response.status_code == 422
        assert response.json()["error"] == "unknown_plan"

    def test_unknown_establishment(self, client):
        response = client.post(
            "/api/billing/checkout",
            json={"plan_id": "annual", "establishment_id": 9999},
        )
        assert response.status_code == 404


class TestPaymentWebhook:
    def test_approved_payment_activates(self, client):
        created = register_establishment(client)
        response = client.post(
            "/api/billing/webhook",
            json={"establishment_id": created["id"], "status": "approved", "plan_id": "monthly"},
        )

        assert response.status_code == 200
        assert response.json() == {
            "received": True,
            "establishment_id": created["id"],
            "status": "approved",
            "subscription_active": True,
        }
        profile = client.get(f"/api/establishments/{created['id']}").json()
        assert profile["subscription_plan"] == "monthly"
        assert profile["subscription_expires_at"] is not None

    def test_pending_payment_changes_nothing(self, client):
        created = register_establishment(client)
        response = client.post(
            "/api/billing/webhook",
            json={"establishment_id": created["id"], "status": "pending", "plan_id": "monthly"},
        )

        assert response.status_code == 200
        assert response.json()["subscription_active"] is False

    def test_invalid_payload(self, client):
        response = client.post(
            "/api/billing/webhook",
            content=b"definitely not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_webhook"

    def test_unknown_establishment(self, client):
        response = client.post(
            "/api/billing/webhook",
            json={"establishment_id": 9999, "status": "approved", "plan_id": "monthly"},
        )
        assert response.status_code == 404
