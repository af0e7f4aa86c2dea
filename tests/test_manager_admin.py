from bonzenga_api.app.core.config import settings

from .conftest import API, GOOD_CARD, PASSWORD, login


def test_staff_routes_reject_other_roles(client, customer, manager_headers):
    assert client.get(f"{API}/manager/dashboard", headers=customer["headers"]).status_code == 403
    assert client.get(f"{API}/admin/dashboard", headers=manager_headers).status_code == 403
    assert client.get(f"{API}/admin/dashboard").status_code == 401


def test_vendor_moderation(client, register, manager_headers):
    pending = register("vendor")
    rejected = register("vendor")

    resp = client.patch(
        f"{API}/manager/vendors/{rejected['id']}/reject",
        json={"reason": "Incomplete business documents"},
        headers=manager_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "REJECTED"
    assert resp.json()["rejection_reason"] == "Incomplete business documents"

    # Only pending applications can be rejected.
    resp = client.patch(f"{API}/manager/vendors/{rejected['id']}/reject", headers=manager_headers)
    assert resp.status_code == 400

    resp = client.patch(f"{API}/manager/vendors/{pending['id']}/reject", headers=manager_headers)
    assert resp.json()["rejection_reason"] == "Application rejected"

    resp = client.patch(f"{API}/manager/vendors/{rejected['id']}/approve", headers=manager_headers)
    assert resp.status_code == 200
    assert resp.json()["is_verified"] is True

    resp = client.patch(f"{API}/manager/vendors/{rejected['id']}/approve", headers=manager_headers)
    assert resp.status_code == 400

    assert client.patch(f"{API}/manager/vendors/9999/approve", headers=manager_headers).status_code == 404
    assert client.get(f"{API}/manager/vendors", params={"status": "nope"}, headers=manager_headers).status_code == 400

    statuses = {v["id"]: v["status"] for v in client.get(f"{API}/manager/vendors", headers=manager_headers).json()}
    assert statuses == {pending["id"]: "REJECTED", rejected["id"]: "APPROVED"}


def test_beautician_moderation_and_assignment(client, register, vendor, customer, make_booking, manager_headers):
    candidate = register("beautician", vendor_id=vendor["id"])
    assert [b["id"] for b in client.get(f"{API}/manager/beauticians/pending", headers=manager_headers).json()] == [
        candidate["id"]
    ]
    booking = make_booking()

    resp = client.patch(
        f"{API}/manager/bookings/{booking['id']}/assign-beautician",
        json={"beautician_id": candidate["id"]},
        headers=manager_headers,
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Beautician is not approved"

    resp = client.patch(f"{API}/manager/beauticians/{candidate['id']}/approve", headers=manager_headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "APPROVED"
    assert resp.json()["vendor_name"]

    resp = client.patch(
        f"{API}/manager/bookings/{booking['id']}/assign-beautician",
        json={"beautician_id": candidate["id"]},
        headers=manager_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "CONFIRMED"
    assert resp.json()["beautician_id"] == candidate["id"]
    assert resp.json()["beautician_name"] == f"Beautician {candidate['user']['last_name']}"

    events = client.get(f"{API}/bookings/{booking['id']}/events", headers=customer["headers"]).json()
    assert [e["type"] for e in events] == ["CREATED", "STATUS_CHANGED", "BEAUTICIAN_ASSIGNED"]


def test_manager_dashboard_and_reports(client, customer, vendor, make_booking, manager_headers):
    booking = make_booking()
    client.post(f"{API}/payments/process", json={"booking_id": booking["id"], **GOOD_CARD}, headers=customer["headers"])
    make_booking()

    dashboard = client.get(f"{API}/manager/dashboard", headers=manager_headers).json()
    assert dashboard["approved_vendors"] == 1
    assert dashboard["total_bookings"] == 2
    assert dashboard["active_bookings"] == 2
    assert dashboard["total_revenue"] == 55.0
    assert len(dashboard["recent_bookings"]) == 2

    appointments = client.get(
        f"{API}/manager/appointments", params={"status": "CONFIRMED"}, headers=manager_headers
    ).json()
    assert [b["id"] for b in appointments["bookings"]] == [booking["id"]]

    report = client.get(f"{API}/manager/reports", params={"range": "quarter"}, headers=manager_headers).json()
    assert report["bookings_by_status"]["CONFIRMED"] == 1
    assert report["bookings_by_status"]["PENDING"] == 1
    assert report["vendor_performance"][0]["vendor_id"] == vendor["id"]

    assert client.get(f"{API}/manager/reports", params={"range": "eon"}, headers=manager_headers).status_code == 400


def test_admin_dashboard_and_users(client, customer, vendor, admin_headers):
    dashboard = client.get(f"{API}/admin/dashboard", headers=admin_headers).json()
    assert dashboard["total_customers"] == 1
    assert dashboard["total_vendors"] == 1
    assert dashboard["total_managers"] == 1
    assert dashboard["pending_vendor_approvals"] == 0

    users = client.get(f"{API}/admin/users", params={"role": "customer"}, headers=admin_headers).json()
    assert [u["id"] for u in users] == [customer["id"]]
    assert users[0]["total_bookings"] == 0

    users = client.get(f"{API}/admin/users", params={"search": customer["user"]["email"]}, headers=admin_headers).json()
    assert len(users) == 1


def test_suspended_user_loses_access(client, customer, admin_headers):
    resp = client.patch(
        f"{API}/admin/users/{customer['id']}/status", json={"status": "suspended"}, headers=admin_headers
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "SUSPENDED"

    resp = client.get(f"{API}/auth/me", headers=customer["headers"])
    assert resp.status_code == 401
    resp = client.post(f"{API}/auth/login", json={"email": customer["user"]["email"], "password": PASSWORD})
    assert resp.status_code == 401

    resp = client.patch(
        f"{API}/admin/users/{customer['id']}/status", json={"status": "ACTIVE"}, headers=admin_headers
    )
    assert resp.status_code == 200
    assert client.get(f"{API}/auth/me", headers=customer["headers"]).status_code == 200


def test_user_status_guards(client, customer, admin_headers):
    admin = login(client, settings.admin_email, settings.admin_password)["user"]
    resp = client.patch(f"{API}/admin/users/{admin['id']}/status", json={"status": "SUSPENDED"}, headers=admin_headers)
    assert resp.status_code == 403

    resp = client.patch(f"{API}/admin/users/{customer['id']}/status", json={"status": "GONE"}, headers=admin_headers)
    assert resp.status_code == 400

    resp = client.patch(f"{API}/admin/users/9999/status", json={"status": "ACTIVE"}, headers=admin_headers)
    assert resp.status_code == 404


def test_manager_accounts(client, customer, admin_headers):
    resp = client.post(
        f"{API}/admin/managers",
        json={"email": "ops@example.com", "password": "Manage@1", "first_name": "Ops", "last_name": "Lead"},
        headers=admin_headers,
    )
    assert resp.status_code == 201
    manager = resp.json()
    assert manager["role"] == "MANAGER"
    assert len(client.get(f"{API}/admin/managers", headers=admin_headers).json()) == 2

    resp = client.post(
        f"{API}/admin/managers",
        json={"email": "ops@example.com", "password": "Manage@1", "first_name": "Ops", "last_name": "Lead"},
        headers=admin_headers,
    )
    assert resp.status_code == 400

    resp = client.patch(
        f"{API}/admin/managers/{manager['id']}/status", json={"status": "SUSPENDED"}, headers=admin_headers
    )
    assert resp.json()["status"] == "SUSPENDED"

    # A customer is not a manager.
    resp = client.patch(
        f"{API}/admin/managers/{customer['id']}/status", json={"status": "SUSPENDED"}, headers=admin_headers
    )
    assert resp.status_code == 404


def test_commission_and_financials(client, customer, vendor, make_booking, admin_headers):
    booking = make_booking()
    client.post(f"{API}/payments/process", json={"booking_id": booking["id"], **GOOD_CARD}, headers=customer["headers"])

    resp = client.put(f"{API}/admin/commission", json={"rate": 20}, headers=admin_headers)
    assert resp.json() == {"commission_rate": 20.0}
    assert client.put(f"{API}/admin/commission", json={"rate": 120}, headers=admin_headers).status_code == 422

    financials = client.get(f"{API}/admin/financials", headers=admin_headers).json()
    assert financials["range"] == "month"
    assert financials["commission_rate"] == 20.0
    assert financials["total_revenue"] == 55.0
    assert financials["total_commissions"] == 11.0
    payout = financials["vendor_payouts"][0]
    assert len(financials["vendor_payouts"]) == 1
    assert payout["vendor_id"] == vendor["id"]
    assert payout["vendor_status"] == "APPROVED"
    assert (payout["revenue"], payout["commission"], payout["payout"]) == (55.0, 11.0, 44.0)
    assert len(financials["recent_transactions"]) == 1

    report = client.get(f"{API}/admin/reports", params={"range": "week"}, headers=admin_headers).json()
    assert report["top_vendors"][0]["revenue"] == 55.0
    assert client.get(f"{API}/admin/financials", params={"range": "eon"}, headers=admin_headers).status_code == 400


def test_payouts_keep_suspended_vendors(client, customer, vendor, make_booking, admin_headers):
    booking = make_booking()
    client.post(f"{API}/payments/process", json={"booking_id": booking["id"], **GOOD_CARD}, headers=customer["headers"])
    resp = client.patch(
        f"{API}/admin/vendors/{vendor['id']}/status", json={"status": "SUSPENDED"}, headers=admin_headers
    )
    assert resp.status_code == 200

    financials = client.get(f"{API}/admin/financials", headers=admin_headers).json()
    assert [p["vendor_id"] for p in financials["vendor_payouts"]] == [vendor["id"]]
    assert financials["vendor_payouts"][0]["vendor_status"] == "SUSPENDED"
    assert sum(p["revenue"] for p in financials["vendor_payouts"]) == financials["total_revenue"] == 55.0


def test_platform_settings(client, customer, vendor, admin_headers):
    current = client.get(f"{API}/admin/settings", headers=admin_headers).json()
    assert current["tax_rate"] == 0.1
    assert current["require_vendor_approval"] is True

    resp = client.put(f"{API}/admin/settings", json={"tax_rate": "0.16"}, headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["tax_rate"] == 0.16
    assert client.get(f"{API}/admin/settings/tax_rate", headers=admin_headers).json() == {
        "key": "tax_rate", "value": 0.16, "type": "float"
    }

    quote = client.post(
        f"{API}/bookings/quote",
        json={"vendor_id": vendor["id"], "items": [{"service_id": vendor["services"][0]["id"]}]},
    ).json()
    assert quote["tax"] == 8.0

    resp = client.put(f"{API}/admin/settings", json={"no_such_key": 1}, headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Unknown setting: no_such_key"

    resp = client.put(f"{API}/admin/settings", json={"payout_processing_days": "soon"}, headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Invalid value for setting payout_processing_days: expected int"

    assert client.get(f"{API}/admin/settings/no_such_key", headers=admin_headers).status_code == 404


def test_registration_switch(client, admin_headers):
    client.put(f"{API}/admin/settings", json={"allow_user_registration": False}, headers=admin_headers)
    resp = client.post(
        f"{API}/auth/register-customer",
        json={"email": "late@example.com", "password": PASSWORD, "first_name": "A", "last_name": "B"},
    )
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Registration is currently disabled"


def test_vendor_auto_approval_setting(client, register, admin_headers):
    client.put(f"{API}/admin/settings", json={"require_vendor_approval": "false"}, headers=admin_headers)
    data = register("vendor")
    assert [v["id"] for v in client.get(f"{API}/vendors").json()] == [data["id"]]


def test_delete_vendor(client, register, vendor, customer, make_booking, admin_headers):
    booking = make_booking()
    resp = client.delete(f"{API}/admin/vendors/{vendor['id']}", headers=admin_headers)
    assert resp.status_code == 400

    client.patch(f"{API}/bookings/{booking['id']}/cancel", headers=customer["headers"])
    resp = client.delete(f"{API}/admin/vendors/{vendor['id']}", headers=admin_headers)
    assert resp.status_code == 200
    data = resp.json()
    # The cancelled booking still references the profile and its first service.
    assert data["deleted"] is False
    assert data["services_deleted"] == 1
    assert client.get(f"{API}/vendors/{vendor['id']}").status_code == 404
    assert client.get(f"{API}/vendor/profile", headers=vendor["headers"]).status_code == 401

    unused = register("vendor")
    resp = client.delete(f"{API}/admin/vendors/{unused['id']}", headers=admin_headers)
    assert resp.json() == {"vendor_id": unused["id"], "deleted": True, "services_deleted": 0, "products_deleted": 0}
    assert client.delete(f"{API}/admin/vendors/{unused['id']}", headers=admin_headers).status_code == 404


def test_admin_vendor_status(client, vendor, admin_headers):
    resp = client.patch(
        f"{API}/admin/vendors/{vendor['id']}/status", json={"status": "SUSPENDED"}, headers=admin_headers
    )
    assert resp.status_code == 200
    assert client.get(f"{API}/vendors").json() == []


def test_audit_trail(client, vendor, admin_headers):
    logs = client.get(
        f"{API}/admin/audit-logs", params={"object_type": "vendor", "action": "set_status"}, headers=admin_headers
    ).json()
    assert len(logs) == 1
    assert logs[0]["object_id"] == vendor["id"]
    assert logs[0]["details"]["to"] == "APPROVED"

    registrations = client.get(f"{API}/admin/audit-logs", params={"action": "register"}, headers=admin_headers).json()
    assert [log["user_id"] for log in registrations] == [vendor["id"]]


def test_audit_trail_of_one_booking(client, make_booking, manager_headers, admin_headers):
    booking = make_booking()
    other = make_booking(scheduled_time="15:00")
    client.patch(f"{API}/bookings/{booking['id']}/status", json={"status": "CONFIRMED"}, headers=manager_headers)

    trail = client.get(
        f"{API}/admin/audit-logs", params={"object_type": "BOOKING", "object_id": booking["id"]}, headers=admin_headers
    ).json()
    assert [log["action"] for log in trail] == ["update_status", "create"]
    assert all(log["object_id"] != other["id"] for log in trail)

    resp = client.get(f"{API}/admin/audit-logs", params={"object_type": "spaceship"}, headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Unknown object type: spaceship"
