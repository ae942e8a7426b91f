from app.models.activity_log import ActivityLog
from tests.conftest import auth_headers, make_user


def create(client, headers, name, **fields):
    r = client.post("/api/villas", json={"villa_name": name, **fields}, headers=headers)
    assert r.status_code == 201
    return r.json()


def test_create_assigns_sequential_codes(client, owner_headers, owner):
    first = create(client, owner_headers, "Villa Sunset", city="Seminyak", bedrooms=3)
    second = create(client, owner_headers, "Villa Moon")
    assert first["villa_code"] == "VIL0001"
    assert second["villa_code"] == "VIL0002"
    assert first["status"] == "DRAFT"
    assert first["owner_user_id"] == owner.id
    assert first["bedrooms"] == 3


def test_create_validates_room_counts(client, owner_headers):
    r = client.post("/api/villas", json={"villa_name": "Villa X", "bedrooms": 0}, headers=owner_headers)
    assert r.status_code == 422


def test_owners_only_see_their_villas(client, owner_headers, admin_headers, db):
    create(client, owner_headers, "Villa Mine")
    other = auth_headers(make_user(db, "other@villas.test"))
    create(client, other, "Villa Theirs")

    mine = client.get("/api/villas", headers=owner_headers).json()
    assert [v["villa_name"] for v in mine] == ["Villa Mine"]
    everything = client.get("/api/villas", headers=admin_headers).json()
    assert {v["villa_name"] for v in everything} == {"Villa Mine", "Villa Theirs"}


def test_search_and_status_filters(client, owner_headers):
    create(client, owner_headers, "Villa Sunset", city="Seminyak")
    moon = create(client, owner_headers, "Villa Moon", city="Ubud")

    r = client.get("/api/villas", params={"search": "ubud"}, headers=owner_headers)
    assert [v["id"] for v in r.json()] == [moon["id"]]
    r = client.get("/api/villas", params={"search": "VIL0001"}, headers=owner_headers)
    assert [v["villa_name"] for v in r.json()] == ["Villa Sunset"]

    client.delete(f"/api/villas/{moon['id']}", headers=owner_headers)
    r = client.get("/api/villas", params={"status": "ARCHIVED"}, headers=owner_headers)
    assert [v["id"] for v in r.json()] == [moon["id"]]
    r = client.get("/api/villas", params={"status": "DRAFT"}, headers=owner_headers)
    assert [v["villa_name"] for v in r.json()] == ["Villa Sunset"]


def test_pagination(client, owner_headers):
    for i in range(3):
        create(client, owner_headers, f"Villa {i}")
    r = client.get("/api/villas", params={"skip": 1, "limit": 1}, headers=owner_headers)
    assert len(r.json()) == 1
    assert client.get("/api/villas", params={"limit": 0}, headers=owner_headers).status_code == 422


def test_update_only_changes_given_fields(client, owner_headers):
    villa = create(client, owner_headers, "Villa Sunset", city="Seminyak")
    r = client.put(f"/api/villas/{villa['id']}", json={"bedrooms": 5, "villa_style": "Balinese"}, headers=owner_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["bedrooms"] == 5
    assert body["villa_style"] == "Balinese"
    assert body["city"] == "Seminyak"
    assert body["villa_name"] == "Villa Sunset"


def test_update_cannot_activate_a_draft(client, owner_headers):
    villa = create(client, owner_headers, "Villa Sunset")
    r = client.put(f"/api/villas/{villa['id']}", json={"status": "ACTIVE"}, headers=owner_headers)
    assert r.status_code == 422
    r = client.put(f"/api/villas/{villa['id']}", json={"status": "ACTIVE", "bedrooms": 4}, headers=owner_headers)
    assert r.status_code == 422
    body = client.get(f"/api/villas/{villa['id']}", headers=owner_headers).json()
    assert body["status"] == "DRAFT"
    assert body["bedrooms"] is None


def test_archive_keeps_the_villa(client, owner_headers, db):
    villa = create(client, owner_headers, "Villa Sunset")
    r = client.delete(f"/api/villas/{villa['id']}", headers=owner_headers)
    assert r.status_code == 200
    assert r.json()["status"] == "ARCHIVED"
    assert r.json()["is_active"] is False
    assert client.get(f"/api/villas/{villa['id']}", headers=owner_headers).status_code == 200
    titles = [e.title for e in db.query(ActivityLog).filter(ActivityLog.villa_id == villa["id"]).order_by(ActivityLog.id)]
    assert titles == ["Villa created", "Villa archived"]


def test_access_rules(client, owner_headers, manager_headers, db):
    villa = create(client, owner_headers, "Villa Sunset")
    stranger = auth_headers(make_user(db, "stranger@villas.test"))
    assert client.get(f"/api/villas/{villa['id']}", headers=stranger).status_code == 403
    assert client.put(f"/api/villas/{villa['id']}", json={"bedrooms": 2}, headers=stranger).status_code == 403
    assert client.get(f"/api/villas/{villa['id']}", headers=manager_headers).status_code == 200
    assert client.get("/api/villas/missing", headers=owner_headers).status_code == 404
    assert client.get("/api/villas").status_code == 401
