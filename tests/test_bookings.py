import os
import time

import pytest

from .conftest import API, future_date


def test_quote_prices_cart_with_tax(client, vendor):
    hair, facial = vendor["services"]
    resp = client.post(
        f"{API}/bookings/quote",
        json={
            "vendor_id": vendor["id"],
            "items": [{"service_id": hair["id"], "quantity": 2}, {"service_id": facial["id"]}],
        },
    )
    assert resp.status_code == 200
    quote = resp.json()
    assert quote["subtotal"] == 180.0
    assert quote["tax"] == 18.0
    assert quote["total"] == 198.0
    assert quote["duration"] == 210
    assert quote["currency"] == "CDF"
    assert [item["line_total"] for item in quote["items"]] == [100.0, 80.0]


def test_quote_rejects_foreign_or_unknown_services(client, vendor, register, manager_headers):
    other = register("vendor")
    resp = client.post(
        f"{API}/bookings/quote",
        json={"vendor_id": other["id"], "items": [{"service_id": vendor["services"][0]["id"]}]},
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Vendor is not available for booking"

    client.patch(f"{API}/manager/vendors/{other['id']}/approve", headers=manager_headers)
    resp = client.post(
        f"{API}/bookings/quote",
        json={"vendor_id": other["id"], "items": [{"service_id": vendor["services"][0]["id"]}]},
    )
    assert resp.status_code == 400

    resp = client.post(f"{API}/bookings/quote", json={"vendor_id": 9999, "items": [{"service_id": 1}]})
    assert resp.status_code == 404

    resp = client.post(f"{API}/bookings/quote", json={"vendor_id": vendor["id"], "items": []})
    assert resp.status_code == 422


def test_create_booking(client, customer, vendor, make_booking):
    booking = make_booking(notes="Please be on time")
    assert booking["status"] == "PENDING"
    assert booking["payment_status"] == "PENDING"
    assert booking["total"] == 55.0
    assert booking["vendor_name"].startswith("Salon ")
    assert booking["phone"] == "+243810000000"
    assert booking["items"][0]["name"] == "Hair Cut & Style"

    events = client.get(f"{API}/bookings/{booking['id']}/events", headers=customer["headers"]).json()
    assert [e["type"] for e in events] == ["CREATED"]
    assert events[0]["data"]["total"] == 55.0


def test_create_booking_validation(client, customer, vendor):
    base = {
        "vendor_id": vendor["id"],
        "items": [{"service_id": vendor["services"][0]["id"]}],
        "scheduled_date": future_date(),
        "scheduled_time": "10:00",
    }
    resp = client.post(f"{API}/bookings", json={**base, "scheduled_date": "2001-01-01"}, headers=customer["headers"])
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Cannot book an appointment in the past"

    resp = client.post(f"{API}/bookings", json={**base, "scheduled_time": "25:00"}, headers=customer["headers"])
    assert resp.status_code == 422

    resp = client.post(f"{API}/bookings", json={**base, "service_type": "AT_HOME"}, headers=customer["headers"])
    assert resp.status_code == 400
    assert resp.json()["detail"] == "An address is required for at-home services"

    resp = client.post(f"{API}/bookings", json={**base, "address_id": 4242}, headers=customer["headers"])
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Address not found"


def test_at_home_booking_with_address(client, customer, make_booking):
    address = client.post(
        f"{API}/customer/addresses",
        json={"street": "12 Avenue Kasa-Vubu", "city": "Kinshasa"},
        headers=customer["headers"],
    ).json()
    booking = make_booking(service_type="AT_HOME", address_id=address["id"])
    assert booking["service_type"] == "AT_HOME"
    assert booking["address_id"] == address["id"]


def test_only_customers_book(client, vendor):
    resp = client.post(
        f"{API}/bookings",
        json={
            "vendor_id": vendor["id"],
            "items": [{"service_id": vendor["services"][0]["id"]}],
            "scheduled_date": future_date(),
            "scheduled_time": "10:00",
        },
        headers=vendor["headers"],
    )
    assert resp.status_code == 403


def test_book_from_vendor_page(client, customer, vendor):
    resp = client.post(
        f"{API}/vendors/{vendor['id']}/bookings",
        json={
            "vendor_id": 0,
            "items": [{"service_id": vendor["services"][1]["id"]}],
            "scheduled_date": future_date(3),
            "scheduled_time": "15:30",
        },
        headers=customer["headers"],
    )
    assert resp.status_code == 201
    assert resp.json()["vendor_id"] == vendor["id"]
    assert resp.json()["total"] == 88.0


def test_booking_visibility(client, customer, vendor, register, make_booking, manager_headers):
    booking = make_booking()
    other_customer = register("customer")

    assert client.get(f"{API}/bookings/{booking['id']}", headers=customer["headers"]).status_code == 200
    assert client.get(f"{API}/bookings/{booking['id']}", headers=vendor["headers"]).status_code == 200
    assert client.get(f"{API}/bookings/{booking['id']}", headers=manager_headers).status_code == 200
    assert client.get(f"{API}/bookings/{booking['id']}", headers=other_customer["headers"]).status_code == 404

    listing = client.get(f"{API}/bookings", headers=other_customer["headers"]).json()
    assert listing["bookings"] == []
    assert listing["pagination"]["total"] == 0

    listing = client.get(f"{API}/bookings", headers=customer["headers"]).json()
    assert [b["id"] for b in listing["bookings"]] == [booking["id"]]

    resp = client.get(f"{API}/bookings", params={"status": "bogus"}, headers=customer["headers"])
    assert resp.status_code == 400


def test_status_transitions(client, vendor, make_booking):
    booking = make_booking()
    url = f"{API}/bookings/{booking['id']}/status"
    headers = vendor["headers"]

    resp = client.patch(url, json={"status": "COMPLETED"}, headers=headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Cannot change booking status from PENDING to COMPLETED"

    resp = client.patch(url, json={"status": "SOMEWHERE"}, headers=headers)
    assert resp.status_code == 400

    for new_status in ("confirmed", "IN_PROGRESS", "COMPLETED"):
        resp = client.patch(url, json={"status": new_status}, headers=headers)
        assert resp.status_code == 200, resp.text
    assert resp.json()["status"] == "COMPLETED"

    resp = client.patch(url, json={"status": "CANCELLED"}, headers=headers)
    assert resp.status_code == 400


def test_customer_cannot_set_status(client, customer, make_booking):
    booking = make_booking()
    resp = client.patch(
        f"{API}/bookings/{booking['id']}/status", json={"status": "CONFIRMED"}, headers=customer["headers"]
    )
    assert resp.status_code == 403


def test_customer_cancel(client, customer, make_booking):
    booking = make_booking()
    resp = client.patch(f"{API}/bookings/{booking['id']}/cancel", headers=customer["headers"])
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "CANCELLED"
    assert data["cancellation_reason"] == "Cancelled by customer"
    assert data["payment_status"] == "FAILED"

    resp = client.patch(
        f"{API}/bookings/{booking['id']}/cancel", json={"reason": "Changed my mind"}, headers=customer["headers"]
    )
    assert resp.status_code == 400

    events = client.get(f"{API}/bookings/{booking['id']}/events", headers=customer["headers"]).json()
    assert [e["type"] for e in events] == ["CREATED", "CANCELLED"]


def test_cancel_with_reason(client, customer, make_booking):
    booking = make_booking()
    resp = client.patch(
        f"{API}/bookings/{booking['id']}/cancel", json={"reason": "Travelling"}, headers=customer["headers"]
    )
    assert resp.json()["cancellation_reason"] == "Travelling"


def test_customer_stats(client, customer, make_booking):
    make_booking()
    cancelled = make_booking()
    client.patch(f"{API}/bookings/{cancelled['id']}/cancel", headers=customer["headers"])
    stats = client.get(f"{API}/bookings/stats", headers=customer["headers"]).json()
    assert stats == {
        "active_bookings": 1,
        "completed_bookings": 0,
        "pending_payments": 1,
        "total_bookings": 2,
        "total_spent": 0.0,
    }


def test_vendor_appointments_and_dashboard(client, vendor, make_booking):
    make_booking()
    make_booking(scheduled_time="11:00")
    appointments = client.get(f"{API}/vendor/appointments", headers=vendor["headers"]).json()
    assert appointments["pagination"]["total"] == 2

    booking_id = appointments["bookings"][0]["id"]
    resp = client.patch(
        f"{API}/vendor/appointments/{booking_id}/status", json={"status": "CONFIRMED"}, headers=vendor["headers"]
    )
    assert resp.status_code == 200

    confirmed = client.get(
        f"{API}/vendor/appointments", params={"status": "CONFIRMED"}, headers=vendor["headers"]
    ).json()
    assert [b["id"] for b in confirmed["bookings"]] == [booking_id]

    dashboard = client.get(f"{API}/vendor/dashboard", headers=vendor["headers"]).json()
    assert dashboard["new_bookings"] == 2
    assert dashboard["pending_bookings"] == 1
    assert dashboard["upcoming_appointments"] == 2
    assert dashboard["total_services"] == 2
    assert dashboard["total_customers"] == 1


@pytest.mark.skipif(not hasattr(time, "tzset"), reason="needs time.tzset")
def test_vendor_dashboard_counts_new_bookings_by_utc_day(client, vendor, make_booking):
    previous = os.environ.get("TZ")
    # UTC+14: the local calendar runs a day ahead of UTC for most of the day.
    os.environ["TZ"] = "Etc/GMT-14"
    time.tzset()
    try:
        make_booking(scheduled_date=future_date(3))
        dashboard = client.get(f"{API}/vendor/dashboard", headers=vendor["headers"]).json()
        assert dashboard["new_bookings"] == 1
    finally:
        if previous is None:
            os.environ.pop("TZ", None)
        else:
            os.environ["TZ"] = previous
        time.tzset()
