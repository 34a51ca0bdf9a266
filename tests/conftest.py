import asyncio
import os
import tempfile
from pathlib import Path

import pytest

TEST_DB_PATH = Path(tempfile.gettempdir()) / "digital_menu_test.db"

# Settings are read once at import time, so the environment goes first
os.environ["ENV_MODE"] = "development"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{TEST_DB_PATH}"
os.environ["MOCK_FAILURE_RATE"] = "0"
os.environ["MOCK_MAX_LATENCY"] = "0"
os.environ["ORDER_ALERTS_ENABLED"] = "false"
os.environ["REDIS_URL"] = "redis://localhost:6399/0"

from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402

from digital_menu import models  # noqa: E402,F401
from digital_menu.database import Base  # noqa: E402
from digital_menu.services.notifications import reset_notification_service  # noqa: E402
from digital_menu.services.payment import reset_payment_service  # noqa: E402


@pytest.fixture()
def client():
    """API client over a fresh SQLite database."""
    TEST_DB_PATH.unlink(missing_ok=True)
    reset_payment_service()
    reset_notification_service()

    from digital_menu.main import app

    with TestClient(app) as test_client:
        yield test_client

    TEST_DB_PATH.unlink(missing_ok=True)


@pytest.fixture()
def run_db(tmp_path):
    """Run ``func(session)`` against a throwaway database and return its result."""

    def runner(func):
        async def main():
            engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'unit.db'}")
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            session_maker = async_sessionmaker(engine, expire_on_commit=False)
            try:
                async with session_maker() as session:
                    return await func(session)
            finally:
                await engine.dispose()

        return asyncio.run(main())

    return runner


# =============================================================================
# API HELPERS
# =============================================================================

def register_establishment(client, **overrides) -> dict:
    payload = {
        "email": "owner@burgerhouse.com",
        "name": "Burger House",
        "whatsapp_phone": "+55 11 91234-5678",
        "address": "Rua Augusta, 1500",
    }
    payload.update(overrides)
    response = client.post("/api/establishments", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def activate_subscription(client, establishment_id: int, plan_id: str = "monthly") -> dict:
    response = client.post(
        "/api/billing/webhook",
        json={"establishment_id": establishment_id, "status": "approved", "plan_id": plan_id},
    )
    assert response.status_code == 200, response.text
    return response.json()


BURGER = {
    "name": "Classic Burger",
    "base_price": "20.00",
    "option_groups": [
        {
            "name": "Size",
            "kind": "single_select",
            "items": [
                {"label": "Regular", "extra_price": "0"},
                {"label": "Large", "extra_price": "5.00"},
            ],
        },
        {
            "name": "Addons",
            "kind": "multi_select",
            "min_selections": 0,
            "max_selections": 2,
            "items": [{"label": "Cheese", "extra_price": "3.00"}],
        },
        {"name": "Ice", "kind": "quantity", "items": []},
    ],
}


@pytest.fixture()
def establishment(client) -> dict:
    """A registered establishment with an active subscription."""
    data = register_establishment(client)
    activate_subscription(client, data["id"])
    return data


@pytest.fixture()
def menu(client, establishment) -> dict:
    """One category holding the burger and a soda."""
    base = f"/api/establishments/{establishment['id']}"
    category = client.post(f"{base}/categories", json={"name": "Burgers", "sort_order": 1}).json()
    burger = client.post(f"{base}/products", json={**BURGER, "category_id": category["id"]}).json()
    soda = client.post(
        f"{base}/products",
        json={"name": "Soda", "base_price": "6.00", "category_id": category["id"]},
    ).json()
    return {"establishment": establishment, "category": category, "burger": burger, "soda": soda}
