from conftest import BURGER, register_establishment


def base_url(establishment_id):
    return f"/api/establishments/{establishment_id}"


class TestSubscriptionGate:
    def test_inactive_subscription_refused(self, client):
        created = register_establishment(client)
        response = client.post(f"{base_url(created['id'])}/categories", json={"name": "Burgers"})

        assert response.status_code == 403
        assert response.json()["error"] == "subscription_inactive"

    def test_every_management_route_gated(self, client):
        created = register_establishment(client)
        base = base_url(created["id"])

        for method, path in [
            ("get", f"{base}/categories"),
            ("get", f"{base}/products"),
            ("get", f"{base}/orders"),
            ("get", f"{base}/orders/1"),
            ("delete", f"{base}/products/1"),
        ]:
            assert getattr(client, method)(path).status_code == 403, path

    def test_unknown_establishment(self, client):
        response = client.get(f"{base_url(9999)}/categories")
        assert response.status_code == 404
        assert response.json()["error"] == "establishment_not_found"

    def test_refund_revokes_access(self, client, establishment):
        base = base_url(establishment["id"])
        assert client.get(f"{base}/categories").status_code == 200

        client.post(
            "/api/billing/webhook",
            json={"establishment_id": establishment["id"], "status": "refunded"},
        )

        assert client.get(f"{base}/categories").status_code == 403


class TestCategories:
    def test_create_and_list_in_display_order(self, client, establishment):
        base = base_url(establishment["id"])
        for name, sort_order in [("Drinks", 2), ("Burgers", 1), ("Desserts", 2)]:
            response = client.post(f"{base}/categories", json={"name": name, "sort_order": sort_order})
            assert response.status_code == 201

        names = [c["name"] for c in client.get(f"{base}/categories").json()]
        assert names == ["Burgers", "Drinks", "Desserts"]

    def test_update(self, client, menu):
        base = base_url(menu["establishment"]["id"])
        response = client.put(
            f"{base}/categories/{menu['category']['id']}",
            json={"name": "Smash Burgers", "active": False},
        )

        assert response.status_code == 200
        assert response.json()["name"] == "Smash Burgers"
        assert response.json()["active"] is False

    def test_delete_removes_its_products(self, client, menu):
        base = base_url(menu["establishment"]["id"])
        other = client.post(f"{base}/categories", json={"name": "Drinks"}).json()
        juice = client.post(
            f"{base}/products",
            json={"name": "Juice", "base_price": "9.50", "category_id": other["id"]},
        ).json()

        response = client.delete(f"{base}/categories/{menu['category']['id']}")

        assert response.status_code == 204
        remaining = [p["id"] for p in client.get(f"{base}/products").json()]
        assert remaining == [juice["id"]]

    def test_other_establishments_category_not_found(self, client, menu):
        intruder = register_establishment(client, email="intruder@x.com")
        client.post(
            "/api/billing/webhook",
            json={"establishment_id": intruder["id"], "status": "approved", "plan_id": "monthly"},
        )

        response = client.delete(f"{base_url(intruder['id'])}/categories/{menu['category']['id']}")

        assert response.status_code == 404
        assert response.json()["error"] == "category_not_found"


class TestProducts:
    def test_create_with_option_groups(self, client, menu):
        burger = menu["burger"]

        assert burger["base_price"] == "20.00"
        assert burger["available"] is True
        size = burger["option_groups"][0]
        assert size["name"] == "Size"
        assert size["kind"] == "single_select"
        assert [(i["label"], i["extra_price"]) for i in size["items"]] == [
            ("Regular", "0.00"),
            ("Large", "5.00"),
        ]
        assert burger["option_groups"][2]["kind"] == "quantity"

    def test_filter_by_category(self, client, menu):
        base = base_url(menu["establishment"]["id"])
        client.post(f"{base}/products", json={"name": "Loose item", "base_price": "1.00"})

        filtered = client.get(f"{base}/products", params={"category_id": menu["category"]["id"]}).json()
        everything = client.get(f"{base}/products").json()

        assert {p["name"] for p in filtered} == {"Classic Burger", "Soda"}
        assert len(everything) == 3

    def test_update(self, client, menu):
        base = base_url(menu["establishment"]["id"])
        response = client.put(
            f"{base}/products/{menu['soda']['id']}",
            json={"base_price": "7.5", "available": False, "option_groups": [{"name": "Ice", "kind": "quantity"}]},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["base_price"] == "7.50"
        assert data["available"] is False
        assert data["option_groups"][0]["name"] == "Ice"

    def test_delete(self, client, menu):
        base = base_url(menu["establishment"]["id"])
        assert client.delete(f"{base}/products/{menu['soda']['id']}").status_code == 204
        assert client.get(f"{base}/products/{menu['soda']['id']}").status_code == 404

    def test_negative_price_rejected(self, client, establishment):
        response = client.post(
            f"{base_url(establishment['id'])}/products",
            json={"name": "Freebie", "base_price": "-1.00"},
        )
        assert response.status_code == 422

    def test_min_above_max_rejected(self, client, establishment):
        product = {
            **BURGER,
            "option_groups": [
                {"name": "Addons", "kind": "multi_select", "min_selections": 3, "max_selections": 1}
            ],
        }
        response = client.post(f"{base_url(establishment['id'])}/products", json=product)
        assert response.status_code == 422

    def test_duplicate_group_names_rejected(self, client, menu):
        base = base_url(menu["establishment"]["id"])
        groups = [
            {"name": "Size", "items": [{"label": "Regular"}]},
            {"name": "Size", "items": [{"label": "Large", "extra_price": "5.00"}]},
        ]

        created = client.post(f"{base}/products", json={**BURGER, "option_groups": groups})
        updated = client.put(f"{base}/products/{menu['burger']['id']}", json={"option_groups": groups})

        assert created.status_code == 422
        assert updated.status_code == 422
        stored = client.get(f"{base}/products/{menu['burger']['id']}").json()
        assert [g["name"] for g in stored["option_groups"]] == ["Size", "Addons", "Ice"]

    def test_category_from_another_establishment_rejected(self, client, menu):
        intruder = register_establishment(client, email="intruder@x.com")
        client.post(
            "/api/billing/webhook",
            json={"establishment_id": intruder["id"], "status": "approved", "plan_id": "monthly"},
        )

        response = client.post(
            f"{base_url(intruder['id'])}/products",
            json={"name": "Stolen", "base_price": "1.00", "category_id": menu["category"]["id"]},
        )
        assert response.status_code == 404
