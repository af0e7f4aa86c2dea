from .conftest import API, GOOD_CARD


def pay(client, customer, booking_id, **fields):
    return client.post(f"{API}/payments/process", json={"booking_id": booking_id, **fields}, headers=customer["headers"])


def test_payment_methods(client):
    methods = {m["id"]: m for m in client.get(f"{API}/payments/methods").json()}
    assert set(methods) == {"card", "mobile_money", "cash"}
    assert "mpesa" in methods["mobile_money"]["providers"]


def test_card_payment_confirms_booking(client, customer, make_booking):
    booking = make_booking()
    resp = pay(client, customer, booking["id"], **GOOD_CARD)
    assert resp.status_code == 200, resp.text
    payment = resp.json()
    assert payment["status"] == "COMPLETED"
    assert payment["method"] == "CARD"
    assert payment["card_last4"] == "4242"
    assert payment["transaction_id"].startswith("TXN-")
    assert payment["amount"] == 55.0
    assert payment["booking_status"] == "CONFIRMED"

    booking = client.get(f"{API}/bookings/{booking['id']}", headers=customer["headers"]).json()
    assert booking["status"] == "CONFIRMED"
    assert booking["payment_status"] == "COMPLETED"

    events = client.get(f"{API}/bookings/{booking['id']}/events", headers=customer["headers"]).json()
    assert [e["type"] for e in events] == ["CREATED", "PAYMENT_COMPLETED", "STATUS_CHANGED"]

    resp = pay(client, customer, booking["id"], **GOOD_CARD)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Only pending bookings can be paid"

    stats = client.get(f"{API}/bookings/stats", headers=customer["headers"]).json()
    assert stats["total_spent"] == 55.0


def test_card_validation(client, customer, make_booking):
    booking = make_booking()
    cases = [
        ({"card_number": "1234"}, "Invalid card number"),
        ({"cvv": "12"}, "Invalid CVV"),
        ({"expiry": "13/30"}, "Expiry must be in MM/YY format"),
        ({"expiry": "01/20"}, "Card has expired"),
        ({"card_name": " "}, "Cardholder name is required"),
    ]
    for override, message in cases:
        resp = pay(client, customer, booking["id"], **{**GOOD_CARD, **override})
        assert resp.status_code == 400
        assert resp.json()["detail"] == message


def test_declined_card_then_retry(client, customer, make_booking):
    booking = make_booking()
    resp = pay(client, customer, booking["id"], **{**GOOD_CARD, "card_number": "4000 0000 0000 0002"})
    assert resp.status_code == 402
    assert resp.json()["detail"] == "Payment declined by the card issuer"

    payments = client.get(f"{API}/payments", headers=customer["headers"]).json()
    assert [p["status"] for p in payments] == ["FAILED"]
    events = client.get(f"{API}/bookings/{booking['id']}/events", headers=customer["headers"]).json()
    assert events[-1]["type"] == "PAYMENT_FAILED"

    resp = pay(client, customer, booking["id"], **GOOD_CARD)
    assert resp.status_code == 200
    payments = client.get(f"{API}/payments", headers=customer["headers"]).json()
    assert sorted(p["status"] for p in payments) == ["COMPLETED", "FAILED"]


def test_mobile_money_defaults_provider(client, customer, make_booking):
    booking = make_booking()
    resp = pay(client, customer, booking["id"], method="mobile_money", mobile_number="+243 810 000 000")
    assert resp.status_code == 200
    assert resp.json()["provider"] == "mpesa"
    assert resp.json()["status"] == "COMPLETED"

    other = make_booking()
    resp = pay(client, customer, other["id"], method="mobile_money", mobile_number="abc")
    assert resp.status_code == 400


def test_cash_payment_confirmed_by_vendor(client, customer, vendor, make_booking):
    booking = make_booking()
    resp = pay(client, customer, booking["id"], method="cash")
    assert resp.status_code == 200
    payment = resp.json()
    assert payment["status"] == "PENDING"
    assert payment["notes"] == "Cash to be collected by the vendor"

    resp = client.post(f"{API}/payments/{payment['id']}/confirm", headers=customer["headers"])
    assert resp.status_code == 403

    resp = client.post(f"{API}/payments/{payment['id']}/confirm", headers=vendor["headers"])
    assert resp.status_code == 200
    assert resp.json()["status"] == "COMPLETED"
    assert resp.json()["confirmed_by"] == vendor["id"]
    assert resp.json()["booking_status"] == "CONFIRMED"

    resp = client.post(f"{API}/payments/{payment['id']}/confirm", headers=vendor["headers"])
    assert resp.status_code == 400


def test_pay_someone_elses_booking(client, register, make_booking):
    booking = make_booking()
    stranger = register("customer")
    resp = pay(client, stranger, booking["id"], **GOOD_CARD)
    assert resp.status_code == 404


def test_payment_visibility(client, customer, register, make_booking, admin_headers):
    booking = make_booking()
    payment = pay(client, customer, booking["id"], **GOOD_CARD).json()
    stranger = register("customer")
    assert client.get(f"{API}/payments/{payment['id']}", headers=stranger["headers"]).status_code == 404
    assert client.get(f"{API}/payments/{payment['id']}", headers=customer["headers"]).status_code == 200
    assert client.get(f"{API}/payments/{payment['id']}", headers=admin_headers).status_code == 200


def test_refund_is_admin_only(client, customer, make_booking, manager_headers, admin_headers):
    booking = make_booking()
    payment = pay(client, customer, booking["id"], **GOOD_CARD).json()

    resp = client.post(f"{API}/payments/{payment['id']}/refund", headers=manager_headers)
    assert resp.status_code == 403

    resp = client.post(
        f"{API}/payments/{payment['id']}/refund", json={"reason": "Salon closed"}, headers=admin_headers
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "REFUNDED"
    assert resp.json()["booking_status"] == "CANCELLED"

    booking = client.get(f"{API}/bookings/{booking['id']}", headers=customer["headers"]).json()
    assert booking["cancellation_reason"] == "Salon closed"

    resp = client.post(f"{API}/payments/{payment['id']}/refund", headers=admin_headers)
    assert resp.status_code == 400


def test_vendor_revenue(client, customer, vendor, make_booking):
    booking = make_booking()
    pay(client, customer, booking["id"], **GOOD_CARD)
    revenue = client.get(f"{API}/vendor/revenue", params={"range": "week"}, headers=vendor["headers"]).json()
    assert revenue["range"] == "week"
    assert revenue["total_revenue"] == 55.0
    assert revenue["total_bookings"] == 1
    assert revenue["average_booking_value"] == 55.0

    resp = client.get(f"{API}/vendor/revenue", params={"range": "decade"}, headers=vendor["headers"])
    assert resp.status_code == 400
