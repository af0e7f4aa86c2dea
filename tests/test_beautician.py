from .conftest import API, future_date


def assign(client, booking, beautician, manager_headers):
    resp = client.patch(
        f"{API}/manager/bookings/{booking['id']}/assign-beautician",
        json={"beautician_id": beautician["id"]},
        headers=manager_headers,
    )
    assert resp.status_code == 200, resp.text
    return resp.json()


def test_profile(client, beautician):
    profile = client.get(f"{API}/beautician/profile", headers=beautician["headers"]).json()
    assert profile["skills"] == ["Hair Styling"]
    assert profile["experience"] == 3
    assert profile["status"] == "APPROVED"

    resp = client.put(
        f"{API}/beautician/profile",
        json={"bio": "Braids and natural hair", "skills": ["Hair Styling", "Makeup"], "phone": "+243820000000"},
        headers=beautician["headers"],
    )
    assert resp.status_code == 200
    assert resp.json()["skills"] == ["Hair Styling", "Makeup"]
    assert resp.json()["phone"] == "+243820000000"


def test_profile_rejects_null_experience(client, beautician):
    resp = client.put(f"{API}/beautician/profile", json={"experience": None}, headers=beautician["headers"])
    assert resp.status_code == 400
    assert resp.json()["detail"] == "experience cannot be empty"
    resp = client.put(f"{API}/beautician/profile", json={"last_name": None}, headers=beautician["headers"])
    assert resp.status_code == 400
    assert client.get(f"{API}/beautician/profile", headers=beautician["headers"]).json()["experience"] == 3


def test_appointment_flow_and_earnings(client, beautician, make_booking, manager_headers):
    booking = assign(client, make_booking(scheduled_date=future_date(2)), beautician, manager_headers)
    headers = beautician["headers"]

    appointments = client.get(f"{API}/beautician/appointments", headers=headers).json()
    assert [b["id"] for b in appointments["bookings"]] == [booking["id"]]

    dashboard = client.get(f"{API}/beautician/dashboard", headers=headers).json()
    assert dashboard["upcoming_appointments"] == 1
    assert dashboard["total_earnings"] == 0

    url = f"{API}/beautician/appointments/{booking['id']}/status"
    resp = client.patch(url, json={"status": "CANCELLED"}, headers=headers)
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Beauticians can only start or complete appointments"

    assert client.patch(url, json={"status": "IN_PROGRESS"}, headers=headers).status_code == 200
    resp = client.patch(url, json={"status": "COMPLETED"}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "COMPLETED"

    earnings = client.get(f"{API}/beautician/earnings", headers=headers).json()
    assert earnings["share"] == 0.4
    assert earnings["total_earnings"] == 22.0
    assert earnings["completed_jobs"] == 1
    assert earnings["monthly"][0]["month"] == booking["scheduled_date"][:7]

    window = client.get(
        f"{API}/beautician/earnings",
        params={"start_date": "2000-01-01", "end_date": "2000-12-31"},
        headers=headers,
    ).json()
    assert window["total_earnings"] == 0

    dashboard = client.get(f"{API}/beautician/dashboard", headers=headers).json()
    assert dashboard["completed_appointments"] == 1
    assert dashboard["total_earnings"] == 22.0


def test_earnings_date_validation(client, beautician):
    headers = beautician["headers"]
    resp = client.get(f"{API}/beautician/earnings", params={"start_date": "01/02/2026"}, headers=headers)
    assert resp.status_code == 400
    resp = client.get(f"{API}/beautician/earnings", params={"start_date": "20260105"}, headers=headers)
    assert resp.status_code == 400

    window = client.get(
        f"{API}/beautician/earnings", params={"start_date": "2026-1-5", "end_date": "2026-12-31"}, headers=headers
    ).json()
    assert window["start_date"] == "2026-01-05"
    assert window["end_date"] == "2026-12-31"

    resp = client.get(
        f"{API}/beautician/earnings", params={"start_date": "2026-02-01", "end_date": "2026-01-01"}, headers=headers
    )
    assert resp.status_code == 400


def test_unassigned_booking_is_invisible(client, beautician, make_booking):
    booking = make_booking()
    resp = client.patch(
        f"{API}/beautician/appointments/{booking['id']}/status",
        json={"status": "IN_PROGRESS"},
        headers=beautician["headers"],
    )
    assert resp.status_code == 404
    assert client.get(f"{API}/beautician/appointments", headers=beautician["headers"]).json()["bookings"] == []


def test_beautician_rejection(client, register, vendor, manager_headers):
    candidate = register("beautician", vendor_id=vendor["id"])
    resp = client.patch(f"{API}/manager/beauticians/{candidate['id']}/reject", headers=manager_headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "REJECTED"
    resp = client.patch(f"{API}/manager/beauticians/{candidate['id']}/reject", headers=manager_headers)
    assert resp.status_code == 400
