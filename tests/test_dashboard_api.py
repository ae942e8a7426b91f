from tests.conftest import auth_headers, make_user


def start(client, headers, name):
    r = client.post("/api/onboarding/start", json={"villa_name": name}, headers=headers)
    assert r.status_code == 201
    return r.json()["villa_id"]


def test_stats_for_owner(client, owner_headers):
    villa_id = start(client, owner_headers, "Villa Sunset")
    start(client, owner_headers, "Villa Moon")
    client.put(
        f"/api/onboarding/{villa_id}/step",
        json={"step": 5, "data": {"skipped": True}, "completed": True},
        headers=owner_headers,
    )
    client.post(
        f"/api/villas/{villa_id}/documents",
        files={"file": ("contract.pdf", b"%PDF", "application/pdf")},
        headers=owner_headers,
    )

    stats = client.get("/api/dashboard/stats", headers=owner_headers).json()
    assert stats["total_villas"] == 2
    assert stats["villas_by_status"]["DRAFT"] == 2
    assert stats["onboarding_in_progress"] == 2
    assert stats["onboarding_completed"] == 0
    # steps 5 and 6 done on one villa, none on the other
    assert stats["average_completion_percentage"] == 10
    assert stats["pending_uploads"] == 0


def test_staff_see_pending_uploads(client, owner_headers, admin_headers):
    villa_id = start(client, owner_headers, "Villa Sunset")
    client.post(
        f"/api/villas/{villa_id}/documents",
        files={"file": ("contract.pdf", b"%PDF", "application/pdf")},
        headers=owner_headers,
    )
    assert client.get("/api/dashboard/stats", headers=admin_headers).json()["pending_uploads"] == 1


def test_activity_is_scoped_to_own_villas(client, owner_headers, admin_headers, db):
    mine = start(client, owner_headers, "Villa Mine")
    other_headers = auth_headers(make_user(db, "other@villas.test"))
    theirs = start(client, other_headers, "Villa Theirs")

    entries = client.get("/api/dashboard/activity", headers=owner_headers).json()
    assert {e["villa_id"] for e in entries} == {mine}
    assert entries[0]["title"] == "Onboarding started"

    everything = client.get("/api/dashboard/activity", headers=admin_headers).json()
    assert {e["villa_id"] for e in everything} == {mine, theirs}

    r = client.get("/api/dashboard/activity", params={"villa_id": theirs}, headers=owner_headers)
    assert r.status_code == 403
    r = client.get("/api/dashboard/activity", params={"villa_id": "missing"}, headers=owner_headers)
    assert r.status_code == 404


def test_activity_is_newest_first_and_limited(client, owner_headers):
    villa_id = start(client, owner_headers, "Villa Sunset")
    for step in (5, 6):
        client.put(
            f"/api/onboarding/{villa_id}/step",
            json={"step": step, "data": {"skipped": True}, "completed": True},
            headers=owner_headers,
        )
    entries = client.get(
        "/api/dashboard/activity", params={"villa_id": villa_id, "limit": 2}, headers=owner_headers
    ).json()
    assert len(entries) == 2
    assert [e["meta"]["step"] for e in entries] == [6, 5]
