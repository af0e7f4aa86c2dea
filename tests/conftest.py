from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient

from bonzenga_api.app.core.config import settings
from bonzenga_api.app.main import app


API = "/api/v1"
PASSWORD = "Secret@123"
GOOD_CARD = {
    "method": "card",
    "card_number": "4242 4242 4242 4242",
    "expiry": "12/99",
    "cvv": "123",
    "card_name": "Jane Mbuyi",
}


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def future_date(days: int = 7) -> str:
    return (date.today() + timedelta(days=days)).isoformat()


def login(client: TestClient, email: str, password: str) -> dict:
    resp = client.post(f"{API}/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    return resp.json()


@pytest.fixture
def client(monkeypatch, tmp_path):
    monkeypatch.setattr(settings, "database_url", str(tmp_path / "bonzenga_test.db"))
    monkeypatch.setattr(settings, "payment_simulation_delay", 0.0)
    # Entering the client runs the startup hook, which creates the schema.
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def register(client):
    counter = {"n": 0}

    def _register(kind: str = "customer", **overrides) -> dict:
        counter["n"] += 1
        n = counter["n"]
        payload = {
            "email": f"{kind}{n}@example.com",
            "password": PASSWORD,
            "first_name": kind.title(),
            "last_name": f"Tester{n}",
            "phone": "+243810000000",
        }
        if kind == "vendor":
            payload.update({"shop_name": f"Salon {n}", "city": "Kinshasa", "address": f"{n} Avenue du Commerce"})
        payload.update(overrides)
        resp = client.post(f"{API}/auth/register-{kind}", json=payload)
        assert resp.status_code == 201, resp.text
        data = resp.json()
        data["headers"] = auth(data["access_token"])
        data["id"] = data["user"]["id"]
        return data

    return _register


@pytest.fixture
def admin_headers(client):
    return auth(login(client, settings.admin_email, settings.admin_password)["access_token"])


@pytest.fixture
def manager_headers(client):
    return auth(login(client, settings.manager_email, settings.manager_password)["access_token"])


@pytest.fixture
def customer(register):
    return register("customer")


@pytest.fixture
def vendor(client, register, manager_headers):
    """An approved vendor offering two services."""
    data = register("vendor")
    resp = client.patch(f"{API}/manager/vendors/{data['id']}/approve", headers=manager_headers)
    assert resp.status_code == 200, resp.text
    services = []
    for name, price, duration, category in (
        ("Hair Cut & Style", 50.0, 60, "Hair Styling"),
        ("Facial Treatment", 80.0, 90, "Facial Treatments"),
    ):
        resp = client.post(
            f"{API}/vendor/services",
            json={"name": name, "price": price, "duration": duration, "category": category},
            headers=data["headers"],
        )
        assert resp.status_code == 201, resp.text
        services.append(resp.json())
    data["services"] = services
    return data


@pytest.fixture
def make_booking(client, customer, vendor):
    def _make(headers: dict = None, **overrides) -> dict:
        payload = {
            "vendor_id": vendor["id"],
            "items": [{"service_id": vendor["services"][0]["id"], "quantity": 1}],
            "service_type": "SALON",
            "scheduled_date": future_date(),
            "scheduled_time": "10:00",
        }
        payload.update(overrides)
        resp = client.post(f"{API}/bookings", json=payload, headers=headers or customer["headers"])
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _make


@pytest.fixture
def beautician(client, register, vendor, manager_headers):
    """An approved beautician working at ``vendor``."""
    data = register("beautician", vendor_id=vendor["id"], skills=["Hair Styling"], experience=3)
    resp = client.patch(f"{API}/manager/beauticians/{data['id']}/approve", headers=manager_headers)
    assert resp.status_code == 200, resp.text
    return data
