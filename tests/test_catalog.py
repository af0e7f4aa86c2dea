from .conftest import API


def test_public_directory_lists_approved_vendors(client, vendor):
    resp = client.get(f"{API}/vendors")
    assert resp.status_code == 200
    vendors = resp.json()
    assert [v["id"] for v in vendors] == [vendor["id"]]
    assert vendors[0]["service_count"] == 2
    assert sorted(vendors[0]["categories"]) == ["Facial Treatments", "Hair Styling"]
    assert vendors[0]["rating"] is None

    assert client.get(f"{API}/vendors", params={"city": "kinshasa"}).json()[0]["id"] == vendor["id"]
    assert client.get(f"{API}/vendors", params={"city": "Lubumbashi"}).json() == []
    assert len(client.get(f"{API}/vendors", params={"category": "Nail Care"}).json()) == 0


def test_vendor_detail_hides_unapproved(client, vendor, register):
    resp = client.get(f"{API}/vendors/{vendor['id']}")
    assert resp.status_code == 200
    assert {s["name"] for s in resp.json()["services"]} == {"Hair Cut & Style", "Facial Treatment"}

    pending = register("vendor")
    assert client.get(f"{API}/vendors/{pending['id']}").status_code == 404
    assert client.get(f"{API}/vendors/9999").status_code == 404


def test_service_filters(client, vendor):
    data = client.get(f"{API}/services").json()
    assert data["pagination"]["total"] == 2

    data = client.get(f"{API}/services", params={"category": "hair styling"}).json()
    assert [s["name"] for s in data["services"]] == ["Hair Cut & Style"]

    data = client.get(f"{API}/services", params={"min_price": 60}).json()
    assert [s["name"] for s in data["services"]] == ["Facial Treatment"]

    data = client.get(f"{API}/services", params={"search": "Facial"}).json()
    assert data["pagination"]["total"] == 1

    data = client.get(f"{API}/services", params={"limit": 1, "page": 2}).json()
    assert len(data["services"]) == 1
    assert data["pagination"]["pages"] == 2

    resp = client.get(f"{API}/services", params={"min_price": 100, "max_price": 10})
    assert resp.status_code == 400


def test_categories_count_bookable_services(client, vendor):
    categories = {c["name"]: c["service_count"] for c in client.get(f"{API}/services/categories").json()}
    assert categories["Hair Styling"] == 1
    assert categories["Facial Treatments"] == 1
    assert categories["Makeup"] == 0


def test_get_service_and_inactive_service(client, vendor):
    service_id = vendor["services"][0]["id"]
    resp = client.get(f"{API}/services/{service_id}")
    assert resp.status_code == 200
    detail = resp.json()
    assert detail["vendor_id"] == vendor["id"]
    assert detail["vendor"]["id"] == vendor["id"]
    assert detail["vendor"]["shop_name"] == detail["vendor_name"]
    assert detail["vendor"]["city"] == "Kinshasa"
    assert detail["vendor"]["rating"] is None
    assert detail["vendor"]["review_count"] == 0
    assert detail["recent_reviews"] == []

    resp = client.put(f"{API}/vendor/services/{service_id}", json={"is_active": False}, headers=vendor["headers"])
    assert resp.status_code == 200
    assert client.get(f"{API}/services/{service_id}").status_code == 404


def test_vendor_service_management(client, vendor):
    headers = vendor["headers"]
    resp = client.post(
        f"{API}/vendor/services",
        json={"name": "Hair Cut & Style", "price": 10, "duration": 30, "category": "Hair Styling"},
        headers=headers,
    )
    assert resp.status_code == 400
    assert "already exists" in resp.json()["detail"]

    resp = client.post(
        f"{API}/vendor/services",
        json={"name": "Gel Nails", "price": 25, "duration": 45, "category": "Unknown Category"},
        headers=headers,
    )
    assert resp.status_code == 400

    resp = client.put(
        f"{API}/vendor/services/{vendor['services'][1]['id']}", json={"price": 95.5}, headers=headers
    )
    assert resp.json()["price"] == 95.5

    resp = client.delete(f"{API}/vendor/services/{vendor['services'][1]['id']}", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["deleted"] is True
    assert len(client.get(f"{API}/vendor/services", headers=headers).json()) == 1


def test_vendor_cannot_touch_other_vendors_services(client, vendor, register, manager_headers):
    other = register("vendor")
    client.patch(f"{API}/manager/vendors/{other['id']}/approve", headers=manager_headers)
    service_id = vendor["services"][0]["id"]
    resp = client.put(f"{API}/vendor/services/{service_id}", json={"price": 1}, headers=other["headers"])
    assert resp.status_code == 404


def test_vendor_routes_require_vendor_role(client, customer):
    resp = client.get(f"{API}/vendor/services", headers=customer["headers"])
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Insufficient permissions"


def test_vendor_profile_update(client, vendor):
    headers = vendor["headers"]
    resp = client.put(
        f"{API}/vendor/profile",
        json={"description": "Full service salon", "operating_hours": {"monday": "09:00-18:00"}},
        headers=headers,
    )
    assert resp.status_code == 200
    profile = client.get(f"{API}/vendor/profile", headers=headers).json()
    assert profile["vendor"]["description"] == "Full service salon"
    assert profile["vendor"]["operating_hours"] == {"monday": "09:00-18:00"}
    assert profile["vendor"]["status"] == "APPROVED"


def test_vendor_profile_rejects_null_shop_name(client, vendor):
    resp = client.put(f"{API}/vendor/profile", json={"shop_name": None, "city": "Goma"}, headers=vendor["headers"])
    assert resp.status_code == 400
    assert resp.json()["detail"] == "shop_name cannot be empty"
    profile = client.get(f"{API}/vendor/profile", headers=vendor["headers"]).json()
    assert profile["vendor"]["city"] == "Kinshasa"

    resp = client.put(f"{API}/vendor/profile", json={"description": None}, headers=vendor["headers"])
    assert resp.status_code == 200
    assert resp.json()["description"] is None


def test_reviews_require_completed_booking(client, customer, vendor, make_booking, manager_headers):
    service_id = vendor["services"][0]["id"]
    review = {"rating": 5, "comment": "  Lovely work  "}
    resp = client.post(f"{API}/services/{service_id}/reviews", json=review, headers=customer["headers"])
    assert resp.status_code == 400
    assert resp.json()["detail"] == "You can only review services from your completed bookings"

    booking = make_booking()
    for new_status in ("CONFIRMED", "IN_PROGRESS", "COMPLETED"):
        resp = client.patch(
            f"{API}/bookings/{booking['id']}/status", json={"status": new_status}, headers=manager_headers
        )
        assert resp.status_code == 200, resp.text

    resp = client.post(f"{API}/services/{service_id}/reviews", json=review, headers=customer["headers"])
    assert resp.status_code == 201
    assert resp.json()["comment"] == "Lovely work"

    resp = client.post(f"{API}/services/{service_id}/reviews", json=review, headers=customer["headers"])
    assert resp.status_code == 400
    assert resp.json()["detail"] == "You have already reviewed this service"

    reviews = client.get(f"{API}/services/{service_id}/reviews").json()
    assert len(reviews) == 1
    detail = client.get(f"{API}/services/{service_id}").json()
    assert detail["rating"] == 5.0
    assert detail["vendor"]["rating"] == 5.0
    assert [r["comment"] for r in detail["recent_reviews"]] == ["Lovely work"]
    assert client.get(f"{API}/vendors/{vendor['id']}").json()["review_count"] == 1


def test_review_rating_bounds(client, customer, vendor):
    resp = client.post(
        f"{API}/services/{vendor['services'][0]['id']}/reviews", json={"rating": 6}, headers=customer["headers"]
    )
    assert resp.status_code == 422
