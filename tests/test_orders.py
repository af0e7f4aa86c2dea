import pytest

from bonzenga_api.app.core.config import settings

from .conftest import API


@pytest.fixture
def product(client, vendor):
    payload = {"name": "Shea Butter Hair Mask", "price": 25.0, "stock": 10, "category": "Hair Styling"}
    resp = client.post(f"{API}/vendor/products", json=payload, headers=vendor["headers"])
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.fixture
def address(client, customer):
    payload = {"street": "12 Avenue Kasa-Vubu", "city": "Kinshasa", "name": "Home"}
    resp = client.post(f"{API}/customer/addresses", json=payload, headers=customer["headers"])
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.fixture
def place_order(client, customer, address, product):
    def _place(items=None, headers=None, **overrides) -> dict:
        payload = {"items": items or [{"product_id": product["id"], "quantity": 2}], "address_id": address["id"]}
        payload.update(overrides)
        resp = client.post(f"{API}/orders", json=payload, headers=headers or customer["headers"])
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _place


def stock_of(client, vendor, product_id):
    products = client.get(f"{API}/vendor/products", headers=vendor["headers"]).json()["products"]
    return next(p["stock"] for p in products if p["id"] == product_id)


def test_place_order_prices_on_server(client, customer, vendor, product, address, place_order):
    order = place_order(
        items=[{"product_id": product["id"], "quantity": 1}, {"product_id": product["id"], "quantity": 1}],
        payment_method="mobile_money",
    )
    assert order["status"] == "PENDING"
    assert (order["subtotal"], order["tax"], order["total"]) == (50.0, 5.0, 55.0)
    assert order["currency"] == settings.currency
    assert order["payment_method"] == "mobile_money"
    assert order["phone"] == "+243810000000"
    assert order["delivery_status"] == "PENDING"
    assert [(i["product_id"], i["quantity"], i["unit_price"], i["total_price"]) for i in order["items"]] == [
        (product["id"], 2, 25.0, 50.0)
    ]
    assert order["items"][0]["vendor_name"] == product["vendor_name"]
    assert stock_of(client, vendor, product["id"]) == 8

    # The shipping address is a snapshot and survives edits of the address book.
    client.put(f"{API}/customer/addresses/{address['id']}", json={"street": "1 Boulevard du 30 Juin"},
               headers=customer["headers"])
    again = client.get(f"{API}/orders/{order['id']}", headers=customer["headers"]).json()
    assert again["shipping_address"]["street"] == "12 Avenue Kasa-Vubu"
    assert again["shipping_address"]["address_id"] == address["id"]


def test_order_validation(client, customer, vendor, product, address, register):
    headers = customer["headers"]

    def attempt(items, address_id=address["id"], as_headers=headers):
        return client.post(f"{API}/orders", json={"items": items, "address_id": address_id}, headers=as_headers)

    resp = attempt([{"product_id": product["id"], "quantity": 11}])
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Insufficient stock for Shea Butter Hair Mask: 10 left"

    assert attempt([{"product_id": 999, "quantity": 1}]).json()["detail"] == "Product 999 is not available"
    assert attempt([]).status_code == 422
    assert attempt([{"product_id": product["id"], "quantity": 1}], address_id=999).status_code == 404

    other = register("customer")
    assert attempt([{"product_id": product["id"], "quantity": 1}], as_headers=other["headers"]).status_code == 404
    assert attempt([{"product_id": product["id"], "quantity": 1}], as_headers=vendor["headers"]).status_code == 403

    client.put(f"{API}/vendor/products/{product['id']}", json={"is_active": False}, headers=vendor["headers"])
    resp = attempt([{"product_id": product["id"], "quantity": 1}])
    assert resp.json()["detail"] == f"Product {product['id']} is not available"
    # A refused order leaves the stock alone.
    assert stock_of(client, vendor, product["id"]) == 10


def test_order_visibility(client, customer, vendor, product, place_order, register, manager_headers, admin_headers):
    other_vendor = register("vendor")
    client.patch(f"{API}/manager/vendors/{other_vendor['id']}/approve", headers=manager_headers)
    resp = client.post(
        f"{API}/vendor/products",
        json={"name": "Argan Oil", "price": 15.0, "stock": 5},
        headers=other_vendor["headers"],
    )
    oil = resp.json()
    order = place_order(items=[{"product_id": product["id"], "quantity": 1}, {"product_id": oil["id"], "quantity": 1}])
    assert len(order["items"]) == 2

    seen = client.get(f"{API}/orders/{order['id']}", headers=vendor["headers"]).json()
    assert [i["product_id"] for i in seen["items"]] == [product["id"]]
    listing = client.get(f"{API}/orders", headers=other_vendor["headers"]).json()
    assert [i["product_id"] for i in listing["orders"][0]["items"]] == [oil["id"]]

    stranger = register("customer")
    assert client.get(f"{API}/orders/{order['id']}", headers=stranger["headers"]).status_code == 404
    assert client.get(f"{API}/orders", headers=stranger["headers"]).json()["pagination"]["total"] == 0
    assert client.get(f"{API}/orders", headers=customer["headers"]).json()["pagination"]["total"] == 1

    by_vendor = client.get(f"{API}/orders", params={"vendor_id": oil["vendor_id"]}, headers=admin_headers).json()
    assert [o["id"] for o in by_vendor["orders"]] == [order["id"]]
    assert client.get(f"{API}/orders", params={"status": "LOST"}, headers=admin_headers).status_code == 400


def test_delivery_flow_and_timeline(client, customer, vendor, place_order):
    order = place_order()
    url = f"{API}/orders/{order['id']}"

    resp = client.patch(f"{url}/delivery-status", json={"status": "PACKED"}, headers=vendor["headers"])
    assert resp.status_code == 200
    body = resp.json()
    assert body["order"]["status"] == "PROCESSING"
    assert body["delivery_event"]["status"] == "PACKED"
    assert body["delivery_event"]["note"] == "Delivery status updated to PACKED"

    client.patch(f"{url}/delivery-status", json={"status": "out_for_delivery", "note": "Rider on the way"},
                 headers=vendor["headers"])
    assert client.get(url, headers=customer["headers"]).json()["status"] == "SHIPPED"

    resp = client.patch(f"{url}/delivery-status", json={"status": "TELEPORTED"}, headers=vendor["headers"])
    assert resp.status_code == 400
    assert resp.json()["detail"].startswith("Invalid delivery status")
    assert client.patch(f"{url}/delivery-status", json={"status": "SHIPPED"},
                        headers=customer["headers"]).status_code == 403

    client.patch(f"{url}/delivery-status", json={"status": "DELIVERED"}, headers=vendor["headers"])
    timeline = client.get(f"{url}/delivery-timeline", headers=customer["headers"]).json()
    assert timeline["current_status"] == "DELIVERED"
    assert [e["status"] for e in timeline["timeline"]] == ["PENDING", "PACKED", "OUT_FOR_DELIVERY", "DELIVERED"]
    assert timeline["timeline"][0]["note"] == "Order created and pending payment"
    assert timeline["timeline"][2]["note"] == "Rider on the way"

    resp = client.patch(f"{url}/delivery-status", json={"status": "FAILED"}, headers=vendor["headers"])
    assert resp.json()["detail"] == "Cannot update delivery of delivered order"
    resp = client.patch(f"{url}/cancel", json={}, headers=customer["headers"])
    assert resp.json()["detail"] == "Cannot cancel delivered order"


def test_cancel_restores_stock(client, customer, vendor, product, place_order, admin_headers):
    order = place_order()
    assert stock_of(client, vendor, product["id"]) == 8

    resp = client.patch(f"{API}/orders/{order['id']}/cancel", json={"reason": "Changed my mind"},
                        headers=customer["headers"])
    assert resp.status_code == 200
    assert resp.json()["status"] == "CANCELLED"
    assert resp.json()["cancellation_reason"] == "Changed my mind"
    assert stock_of(client, vendor, product["id"]) == 10

    timeline = client.get(f"{API}/orders/{order['id']}/delivery-timeline", headers=customer["headers"]).json()
    assert timeline["timeline"][-1]["note"] == "Order cancelled: Changed my mind"

    resp = client.patch(f"{API}/orders/{order['id']}/cancel", json={}, headers=customer["headers"])
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Order is already cancelled"

    second = place_order()
    resp = client.patch(f"{API}/orders/{second['id']}/cancel", json={}, headers=vendor["headers"])
    assert resp.status_code == 403

    logs = client.get(
        f"{API}/admin/audit-logs", params={"object_type": "order", "object_id": order["id"]}, headers=admin_headers
    ).json()
    assert [log["action"] for log in logs] == ["cancel", "create"]


def test_admin_order_status(client, customer, vendor, product, place_order, admin_headers):
    order = place_order()
    url = f"{API}/orders/{order['id']}/status"

    resp = client.patch(url, json={"status": "CONFIRMED"}, headers=admin_headers)
    assert resp.json()["status"] == "CONFIRMED"
    resp = client.patch(url, json={"status": "SHIPPED", "note": "DHL 123"}, headers=admin_headers)
    assert resp.json()["delivery_status"] == "SHIPPED"

    timeline = client.get(f"{API}/orders/{order['id']}/delivery-timeline", headers=admin_headers).json()
    # Confirming writes no delivery step.
    assert [e["status"] for e in timeline["timeline"]] == ["PENDING", "SHIPPED"]

    assert client.patch(url, json={"status": "LOST"}, headers=admin_headers).status_code == 400
    assert client.patch(url, json={"status": "DELIVERED"}, headers=vendor["headers"]).status_code == 403

    resp = client.patch(url, json={"status": "CANCELLED", "note": "Out of stock at warehouse"}, headers=admin_headers)
    assert resp.json()["cancellation_reason"] == "Out of stock at warehouse"
    assert stock_of(client, vendor, product["id"]) == 10
    assert client.patch(url, json={"status": "PENDING"}, headers=admin_headers).status_code == 400
    assert client.patch(f"{API}/orders/999/status", json={"status": "PENDING"}, headers=admin_headers).status_code == 404


def test_product_review_requires_delivered_order(client, customer, vendor, product, place_order):
    review_url = f"{API}/products/{product['id']}/reviews"
    order = place_order()
    resp = client.post(review_url, json={"rating": 5}, headers=customer["headers"])
    assert resp.status_code == 400
    assert resp.json()["detail"] == "You can only review products from your delivered orders"

    client.patch(f"{API}/orders/{order['id']}/delivery-status", json={"status": "DELIVERED"},
                 headers=vendor["headers"])
    resp = client.post(review_url, json={"rating": 5, "comment": "<b>Silky</b>"}, headers=customer["headers"])
    assert resp.status_code == 201
    assert resp.json()["comment"] == "&lt;b&gt;Silky&lt;/b&gt;"

    resp = client.post(review_url, json={"rating": 4}, headers=customer["headers"])
    assert resp.json()["detail"] == "You have already reviewed this product"
    assert client.post(review_url, json={"rating": 6}, headers=customer["headers"]).status_code == 422

    detail = client.get(f"{API}/products/{product['id']}").json()
    assert (detail["rating"], detail["review_count"]) == (5.0, 1)
    assert [r["rating"] for r in detail["recent_reviews"]] == [5]
    reviews = client.get(review_url).json()
    assert reviews["pagination"]["total"] == 1

    # Reviewed products are kept and only deactivated.
    resp = client.delete(f"{API}/vendor/products/{product['id']}", headers=vendor["headers"])
    assert resp.json()["deleted"] is False


def test_vendor_with_open_order_cannot_be_deleted(client, customer, vendor, product, place_order, admin_headers):
    order = place_order()
    resp = client.delete(f"{API}/admin/vendors/{vendor['id']}", headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Vendor has 1 open order(s) and cannot be deleted"

    client.patch(f"{API}/orders/{order['id']}/cancel", json={}, headers=customer["headers"])
    resp = client.delete(f"{API}/admin/vendors/{vendor['id']}", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["deleted"] is False
    assert resp.json()["products_deleted"] == 0
    # The order still lists what was bought.
    kept = client.get(f"{API}/orders/{order['id']}", headers=customer["headers"]).json()
    assert [i["name"] for i in kept["items"]] == ["Shea Butter Hair Mask"]
