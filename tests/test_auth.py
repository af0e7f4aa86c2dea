from bonzenga_api.app.core.config import settings

from .conftest import API, PASSWORD, auth, login


def test_register_customer_returns_tokens_and_dashboard(client):
    resp = client.post(
        f"{API}/auth/register",
        json={"email": "Jane@Example.com", "password": PASSWORD, "first_name": "Jane", "last_name": "Mbuyi"},
    )
    assert resp.status_code == 201
    data = resp.json()
    assert data["user"]["email"] == "jane@example.com"
    assert data["user"]["role"] == "CUSTOMER"
    assert data["dashboard_path"] == "/customer"
    assert data["token_type"] == "bearer"
    assert data["access_token"] and data["refresh_token"]
    assert "password" not in data["user"]


def test_register_duplicate_email(client, register):
    register("customer", email="dup@example.com")
    resp = client.post(
        f"{API}/auth/register-customer",
        json={"email": "dup@example.com", "password": PASSWORD, "first_name": "A", "last_name": "B"},
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "User already exists"


def test_register_cannot_pick_staff_role(client):
    resp = client.post(
        f"{API}/auth/register",
        json={"email": "x@example.com", "password": PASSWORD, "first_name": "A", "last_name": "B", "role": "ADMIN"},
    )
    assert resp.status_code == 400


def test_register_rejects_bad_email(client):
    resp = client.post(
        f"{API}/auth/register",
        json={"email": "not-an-email", "password": PASSWORD, "first_name": "A", "last_name": "B"},
    )
    assert resp.status_code == 422


def test_register_vendor_starts_pending(client, register, manager_headers):
    data = register("vendor", shop_name="Glamour Studio")
    assert data["dashboard_path"] == "/vendor"
    pending = client.get(f"{API}/manager/vendors/pending", headers=manager_headers).json()
    entry = next(v for v in pending if v["id"] == data["id"])
    assert entry["shop_name"] == "Glamour Studio"
    assert entry["status"] == "PENDING"
    assert entry["is_verified"] is False
    assert client.get(f"{API}/vendors").json() == []


def test_register_beautician_with_unknown_vendor(client):
    resp = client.post(
        f"{API}/auth/register-beautician",
        json={"email": "b@example.com", "password": PASSWORD, "first_name": "A", "last_name": "B", "vendor_id": 999},
    )
    assert resp.status_code == 400


def test_login_bootstrap_accounts(client):
    admin = login(client, settings.admin_email, settings.admin_password)
    assert admin["user"]["role"] == "ADMIN"
    assert admin["dashboard_path"] == "/admin"
    manager = login(client, settings.manager_email, settings.manager_password)
    assert manager["dashboard_path"] == "/manager"


def test_login_invalid_credentials(client, customer):
    resp = client.post(f"{API}/auth/login", json={"email": customer["user"]["email"], "password": "wrong-pass"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid credentials"
    assert resp.headers["www-authenticate"] == "Bearer"

    resp = client.post(f"{API}/auth/login", json={"email": "nobody@example.com", "password": "wrong-pass"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid credentials"


def test_me_requires_token(client, customer):
    assert client.get(f"{API}/auth/me").status_code == 401
    assert client.get(f"{API}/auth/me", headers=auth("garbage")).status_code == 401
    resp = client.get(f"{API}/auth/me", headers=customer["headers"])
    assert resp.status_code == 200
    assert resp.json()["email"] == customer["user"]["email"]
    assert resp.json()["dashboard_path"] == "/customer"


def test_refresh_token_exchange(client, customer):
    resp = client.post(f"{API}/auth/refresh", json={"refresh_token": customer["refresh_token"]})
    assert resp.status_code == 200
    assert resp.json()["user"]["id"] == customer["id"]

    # An access token is not a refresh token and vice versa.
    resp = client.post(f"{API}/auth/refresh", json={"refresh_token": customer["access_token"]})
    assert resp.status_code == 401
    assert client.get(f"{API}/auth/me", headers=auth(customer["refresh_token"])).status_code == 401


def test_profile_update_and_password_change(client, customer):
    headers = customer["headers"]
    resp = client.put(f"{API}/customer/profile", json={"first_name": "Marie", "phone": "+243899999999"}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["first_name"] == "Marie"
    assert resp.json()["phone"] == "+243899999999"

    resp = client.put(
        f"{API}/customer/profile/password",
        json={"current_password": "wrong-pass", "new_password": "NewSecret@1"},
        headers=headers,
    )
    assert resp.status_code == 400

    resp = client.put(
        f"{API}/customer/profile/password",
        json={"current_password": PASSWORD, "new_password": "NewSecret@1"},
        headers=headers,
    )
    assert resp.status_code == 200
    login(client, customer["user"]["email"], "NewSecret@1")


def test_profile_rejects_null_names(client, customer):
    headers = customer["headers"]
    for field in ("first_name", "last_name"):
        resp = client.put(f"{API}/customer/profile", json={field: None}, headers=headers)
        assert resp.status_code == 400
        assert resp.json()["detail"] == f"{field} cannot be empty"

    resp = client.put(f"{API}/customer/profile", json={"phone": None}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["phone"] is None
    assert resp.json()["first_name"] == "Customer"
