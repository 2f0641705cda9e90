"""Two workers take one appointment from booking to a customer rating over HTTP."""
from helpers import JPEG, auth_header


def _status(client, appointment_id):
    return client.get(f"/public/appointments/{appointment_id}").json()["status"]


def _workers(client, appointment_id):
    return {w["worker_id"]: w for w in client.get(f"/public/appointments/{appointment_id}").json()["workers"]}


def _upload(client, appointment_id, worker_id, name="done.jpg"):
    return client.post(
        f"/public/appointments/{appointment_id}/workers/{worker_id}/photos",
        files={"photo": (name, JPEG, "image/jpeg")},
    )


def test_two_workers_through_review_to_rating(client, staff, customer):
    alice, bob = staff["alice"].id, staff["bob"].id
    r = client.post(
        "/appointments",
        json={
            "customer_id": customer.id,
            "title": "Aircon servicing",
            "appointment_date": "2026-11-02",
            "start_time": "09:00",
            "end_time": "11:00",
            "worker_ids": [alice, bob],
        },
        headers=auth_header(staff["dispatcher"]),
    )
    assert r.status_code == 200, r.text
    appt_id = r.json()["id"]
    assert r.json()["public_url"].endswith(f"/a/{appt_id}")

    # both assigned, nobody started
    assert _status(client, appt_id) == "Confirmed"

    # A starts; B is untouched
    r = client.post(f"/public/appointments/{appt_id}/workers/{alice}/start")
    assert r.status_code == 200
    assert r.json()["status"] == "In Progress"
    assert r.json()["worker"]["has_started"]
    assert not _workers(client, appt_id)[bob]["has_started"]

    # A stages a photo and submits; B is not done yet
    r = _upload(client, appt_id, alice)
    assert r.status_code == 200
    assert len(r.json()) == 1
    r = client.post(f"/public/appointments/{appt_id}/workers/{alice}/submit", json={"note": "Cleaned coils"})
    assert r.status_code == 200, r.text
    assert r.json()["worker"]["has_completed"]
    assert r.json()["status"] == "In Progress"

    # B finishes too; the fresh derivation sees everyone done
    assert client.post(f"/public/appointments/{appt_id}/workers/{bob}/start").status_code == 200
    assert _upload(client, appt_id, bob).status_code == 200
    r = client.post(f"/public/appointments/{appt_id}/workers/{bob}/submit")
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "Pending Review"

    snapshot = client.get(f"/public/appointments/{appt_id}").json()
    assert len(snapshot["photos"]) == 2
    assert snapshot["workers"][0]["note"] == "Cleaned coils"
    assert not snapshot["can_rate"]

    # admin closes it; the customer rates exactly once
    r = client.post(
        f"/appointments/{appt_id}/status",
        json={"status": "Completed"},
        headers=auth_header(staff["admin"]),
    )
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "Completed"
    assert client.get(f"/public/appointments/{appt_id}").json()["can_rate"]

    r = client.post(f"/public/appointments/{appt_id}/rating", json={"rating": 5, "comment": "Great work"})
    assert r.status_code == 200, r.text
    assert r.json()["rating"] == 5

    r = client.post(f"/public/appointments/{appt_id}/rating", json={"rating": 4})
    assert r.status_code == 409
    assert r.json()["code"] == "AlreadyRated"

    snapshot = client.get(f"/public/appointments/{appt_id}").json()
    assert snapshot["rating"]["comment"] == "Great work"
    assert not snapshot["can_rate"]


def test_submit_without_photos_is_rejected(client, staff, make_appointment):
    appt = make_appointment("alice")
    alice = staff["alice"].id
    client.post(f"/public/appointments/{appt.id}/workers/{alice}/start")

    r = client.post(f"/public/appointments/{appt.id}/workers/{alice}/submit")
    assert r.status_code == 422
    assert r.json()["code"] == "NoEvidence"
    assert _status(client, appt.id) == "In Progress"
    assert not _workers(client, appt.id)[alice]["has_completed"]


def test_staged_photos_can_be_removed_before_submit(client, staff, make_appointment):
    appt = make_appointment("alice")
    alice = staff["alice"].id
    _upload(client, appt.id, alice, "one.jpg")
    _upload(client, appt.id, alice, "two.jpg")

    r = client.delete(f"/public/appointments/{appt.id}/workers/{alice}/photos/0")
    assert r.status_code == 200
    assert [p["index"] for p in r.json()] == [0]

    staged = client.get(f"/public/appointments/{appt.id}/workers/{alice}/photos").json()
    assert len(staged) == 1
    # staged photos are not evidence yet
    assert client.get(f"/public/appointments/{appt.id}").json()["photos"] == []

    r = client.delete(f"/public/appointments/{appt.id}/workers/{alice}/photos/3")
    assert r.status_code == 404


def test_committed_photo_is_downloadable(client, staff, make_appointment):
    appt = make_appointment("alice")
    alice = staff["alice"].id
    client.post(f"/public/appointments/{appt.id}/workers/{alice}/start")
    _upload(client, appt.id, alice)
    client.post(f"/public/appointments/{appt.id}/workers/{alice}/submit")

    url = client.get(f"/public/appointments/{appt.id}").json()["photos"][0]["url"]
    r = client.get(url)
    assert r.status_code == 200
    assert r.content == JPEG


def test_upload_rejects_non_images(client, staff, make_appointment):
    appt = make_appointment("alice")
    r = client.post(
        f"/public/appointments/{appt.id}/workers/{staff['alice'].id}/photos",
        files={"photo": ("notes.txt", b"hello", "text/plain")},
    )
    assert r.status_code == 400


def test_upload_by_unassigned_worker_is_rejected(client, staff, make_appointment):
    appt = make_appointment("alice")
    r = _upload(client, appt.id, staff["bob"].id)
    assert r.status_code == 404
    assert r.json()["code"] == "NotAssigned"


def test_customer_page_renders(client, make_appointment):
    appt = make_appointment("alice")
    r = client.get(f"/a/{appt.id}")
    assert r.status_code == 200
    assert "Aircon servicing" in r.text

    assert client.get("/a/missing").status_code == 404
