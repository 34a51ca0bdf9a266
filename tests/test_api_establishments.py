from conftest import activate_subscription, register_establishment


class TestRegisterEstablishment:
    def test_register(self, client):
        data = register_establishment(client, email="Owner@BurgerHouse.com")

        assert data["email"] == "owner@burgerhouse.com"
        assert data["name"] == "Burger House"
        assert data["primary_color"] == "#4F46E5"
        assert data["social_links"] == []
        assert data["subscription_active"] is False
        assert data["subscription_expires_at"] is None
        assert data["subscription_status"] == "inactive"

    def test_duplicate_email(self, client):
        register_establishment(client)
        response = client.post(
            "/api/establishments",
            json={"email": "OWNER@burgerhouse.com", "name": "Another Place"},
        )

        assert response.status_code == 409
        assert response.json()["error"] == "duplicate_email"

    def test_invalid_payload(self, client):
        response = client.post("/api/establishments", json={"email": "not-an-email", "name": "X"})
        assert response.status_code == 422

    def test_subscription_fields_cannot_be_self_assigned(self, client):
        data = register_establishment(client, subscription_active=True)
        assert data["subscription_active"] is False


class TestEstablishmentProfile:
    def test_get_profile(self, client):
        created = register_establishment(client)
        response = client.get(f"/api/establishments/{created['id']}")

        assert response.status_code == 200
        assert response.json()["id"] == created["id"]

    def test_unknown_establishment(self, client):
        response = client.get("/api/establishments/9999")

        assert response.status_code == 404
        assert response.json() == {
            "message": "Establishment 9999 not found",
            "error": "establishment_not_found",
        }

    def test_update_profile(self, client):
        created = register_establishment(client)
        response = client.put(
            f"/api/establishments/{created['id']}",
            json={
                "name": "Burger House Centro",
                "opening_hours": "Tue-Sun 18h-23h",
                "social_links": ["https://instagram.com/burgerhouse"],
                "primary_color": "#FF5500",
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Burger House Centro"
        assert data["opening_hours"] == "Tue-Sun 18h-23h"
        assert data["social_links"] == ["https://instagram.com/burgerhouse"]
        assert data["primary_color"] == "#FF5500"
        assert data["address"] == "Rua Augusta, 1500"

    def test_update_ignores_subscription_and_email(self, client):
        created = register_establishment(client)
        response = client.put(
            f"/api/establishments/{created['id']}",
            json={
                "email": "thief@example.com",
                "subscription_active": True,
                "subscription_expires_at": "2099-01-01T00:00:00Z",
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["email"] == "owner@burgerhouse.com"
        assert data["subscription_active"] is False
        assert data["subscription_expires_at"] is None

    def test_profile_reachable_without_subscription(self, client):
        created = register_establishment(client)
        response = client.put(f"/api/establishments/{created['id']}", json={"address": "Av. Paulista, 900"})
        assert response.status_code == 200

    def test_status_after_activation(self, client):
        created = register_establishment(client)
        activate_subscription(client, created["id"], plan_id="annual")

        data = client.get(f"/api/establishments/{created['id']}").json()
        assert data["subscription_active"] is True
        assert data["subscription_plan"] == "annual"
        assert data["subscription_status"] == "entitled"
