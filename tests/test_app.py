import json
import logging

import requests

from bonzenga_api.app.core.logging_config import CardNumberFilter, mask_card_numbers
from bonzenga_api.app.services.seed_service import SAMPLE_CUSTOMER, SAMPLE_PASSWORD, seed_sample_data
from bonzenga_client import BonzengaClient, _error_message

from .conftest import API, login


def make_response(status_code: int, body) -> requests.Response:
    response = requests.Response()
    response.status_code = status_code
    response._content = json.dumps(body).encode() if body is not None else b""
    response.headers["Content-Type"] = "application/json"
    return response


class FakeSession:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def request(self, **kwargs):
        self.calls.append(kwargs)
        return self.responses.pop(0)


def test_health(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_cors_preflight(client):
    resp = client.options(
        f"{API}/services",
        headers={"Origin": "http://localhost:5173", "Access-Control-Request-Method": "GET"},
    )
    assert resp.status_code == 200
    assert resp.headers["access-control-allow-origin"] == "http://localhost:5173"


def test_unknown_route(client):
    assert client.get(f"{API}/nothing-here").status_code == 404


def test_seed_is_idempotent(client, manager_headers):
    assert seed_sample_data() == {"vendors": 2, "bookings_added": 2}
    assert seed_sample_data() == {"vendors": 2, "bookings_added": 0}

    vendors = client.get(f"{API}/vendors").json()
    assert [v["shop_name"] for v in vendors] == ["Elegant Beauty Salon"]
    assert vendors[0]["service_count"] == 4
    pending = client.get(f"{API}/manager/vendors/pending", headers=manager_headers).json()
    assert [v["shop_name"] for v in pending] == ["Glamour Studio"]

    customer = login(client, SAMPLE_CUSTOMER["email"], SAMPLE_PASSWORD)
    bookings = client.get(f"{API}/bookings", headers={"Authorization": f"Bearer {customer['access_token']}"}).json()
    assert sorted(b["status"] for b in bookings["bookings"]) == ["COMPLETED", "PENDING"]


def test_error_message_flattens_details():
    assert _error_message(make_response(400, {"detail": "User already exists"})) == "User already exists"
    validation = {
        "detail": [
            {"loc": ["body", "email"], "msg": "Invalid email address"},
            {"loc": ["body"], "msg": "Field required"},
        ]
    }
    assert _error_message(make_response(422, validation)) == "email: Invalid email address; Field required"


def test_client_login_keeps_token():
    session = FakeSession(
        make_response(200, {"access_token": "abc", "refresh_token": "def", "user": {"id": 1}}),
        make_response(200, {"bookings": [{"id": 7}], "pagination": {}}),
    )
    client = BonzengaClient(base_url="http://api.local/", session=session)
    data, error = client.login("jane@example.com", "Secret@123")
    assert error is None
    assert client.token == "abc"
    assert session.calls[0]["url"] == "http://api.local/api/v1/auth/login"

    bookings, error = client.my_bookings(status=None)
    assert bookings == [{"id": 7}]
    assert session.calls[1]["headers"]["Authorization"] == "Bearer abc"
    assert "status" not in session.calls[1]["params"]


def test_client_reports_http_errors():
    session = FakeSession(make_response(402, {"detail": "Payment declined by the card issuer"}))
    client = BonzengaClient(base_url="http://api.local", token="abc", session=session)
    data, error = client.process_payment(1, "card", card_number="4000000000000002")
    assert data is None
    assert error == {"status_code": 402, "message": "Payment declined by the card issuer"}
    assert session.calls[0]["json"]["method"] == "card"


def test_client_shop_calls():
    session = FakeSession(
        make_response(200, {"products": [{"id": 3}], "pagination": {}}),
        make_response(201, {"id": 11, "status": "PENDING"}),
        make_response(409, {"detail": "Insufficient stock"}),
    )
    client = BonzengaClient(base_url="http://api.local", token="abc", session=session)
    products, error = client.list_products(category="Hair Styling", search=None)
    assert products == [{"id": 3}]
    assert session.calls[0]["params"] == {"category": "Hair Styling"}

    order, error = client.place_order([{"product_id": 3, "quantity": 2}], address_id=5)
    assert order["id"] == 11
    assert session.calls[1]["json"] == {
        "items": [{"product_id": 3, "quantity": 2}],
        "address_id": 5,
        "payment_method": "cash",
    }

    orders, error = client.my_orders()
    assert orders == []
    assert error["status_code"] == 409


def test_client_refresh_without_token():
    client = BonzengaClient(base_url="http://api.local", session=FakeSession())
    data, error = client.refresh()
    assert data is None
    assert error["message"] == "No refresh token available"


def test_card_numbers_are_masked_in_logs():
    assert mask_card_numbers("card 4242 4242 4242 4242 declined") == "card ************4242 declined"
    assert mask_card_numbers("card 4000-0000-0000-0002") == "card ************0002"
    assert mask_card_numbers("payment TXN-1760700000000 for +243810000000") == (
        "payment TXN-1760700000000 for +243810000000"
    )

    record = logging.LogRecord("payments", logging.INFO, __file__, 1, "Charging %s", ("4111111111111111",), None)
    assert CardNumberFilter().filter(record) is True
    assert record.getMessage() == "Charging ************1111"
