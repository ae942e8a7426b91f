import pytest
from sqlalchemy import text

from tests.conftest import auth_headers, make_user

VILLA = {
    "villa_name": "Villa Sunset",
    "villa_address": "Jl. Pantai 1",
    "villa_city": "Seminyak",
    "bedrooms": 4,
    "bathrooms": 3,
    "max_guests": 8,
    "property_type": "VILLA",
    "description": "Beachfront",
    "google_coordinates": "-8.69,115.16",
}
OWNER = {
    "owner_first_name": "Olive",
    "owner_last_name": "Owner",
    "owner_email": "olive@example.com",
    "owner_phone": "+62 812 3456 7890",
    "owner_address": "1 Road",
    "owner_city": "Denpasar",
    "owner_country": "Indonesia",
}
CONTRACT = {
    "contract_start_date": "2026-01-01",
    "contract_type": "EXCLUSIVE",
    "commission_rate": 20,
    "check_in_time": "15:00",
    "check_out_time": "11:00",
    "payout_day1": 5,
    "payout_day2": 20,
}
BANK = {
    "bank_name": "Bank Central",
    "account_holder_name": "Olive Owner",
    "account_number": "1234567890",
    "currency": "USD",
    "swift_code": "DEUTDEFF",
    "iban": "GB82WEST12345698765432",
}
STEP_DATA = {
    1: VILLA,
    2: OWNER,
    3: CONTRACT,
    4: BANK,
    5: {"ota_credentials": [{"platform": "AIRBNB", "username": "sunset", "password": "hunter22"}]},
    6: {},
    7: {"staff": [{"first_name": "Ketut", "last_name": "Garden", "position": "GARDENER"}]},
    8: {"facilities": [{"category": "Kitchen_Dining", "item_name": "Oven", "quantity": 1}]},
    9: {"photos": []},
    10: {"agreed_to_terms": True},
}


@pytest.fixture
def villa_id(client, owner_headers):
    r = client.post("/api/onboarding/start", json={"villa_name": "Villa Sunset"}, headers=owner_headers)
    assert r.status_code == 201
    return r.json()["villa_id"]


def put_step(client, headers, villa_id, step, data, completed=True):
    return client.put(
        f"/api/onboarding/{villa_id}/step",
        json={"step": step, "data": data, "completed": completed},
        headers=headers,
    )


def test_steps_are_listed(client, owner_headers):
    r = client.get("/api/onboarding/steps", headers=owner_headers)
    assert r.status_code == 200
    steps = r.json()
    assert [s["step"] for s in steps] == list(range(1, 11))
    assert steps[-1]["key"] == "review"


def test_start_creates_draft_villa_and_progress(client, owner_headers):
    r = client.post("/api/onboarding/start", json={"villa_name": "Villa Sunset"}, headers=owner_headers)
    assert r.status_code == 201
    body = r.json()
    assert body["villa_code"] == "VIL0001"
    assert body["current_step"] == 1
    assert body["status"] == "IN_PROGRESS"
    assert body["completed_steps"] == []
    assert body["completion_percentage"] == 0
    assert body["progress_status"] == "NOT_STARTED"
    assert len(body["step_details"]) == 10


def test_start_requires_token(client):
    assert client.post("/api/onboarding/start", json={}).status_code == 401


def test_completed_valid_step_advances(client, owner_headers, villa_id):
    r = put_step(client, owner_headers, villa_id, 1, VILLA)
    assert r.status_code == 200
    body = r.json()
    assert body["current_step"] == 2
    assert body["completed_steps"] == [1]
    assert body["completion_percentage"] == 10
    assert body["saved_data"]["1"]["villa_city"] == "Seminyak"
    assert body["saved_data"]["1"]["latitude"] == pytest.approx(-8.69)

    villa = client.get(f"/api/villas/{villa_id}", headers=owner_headers).json()
    assert villa["bedrooms"] == 4
    assert villa["address"] == "Jl. Pantai 1"


def test_completed_invalid_step_is_rejected(client, owner_headers, villa_id):
    r = put_step(client, owner_headers, villa_id, 1, {**VILLA, "bedrooms": 0})
    assert r.status_code == 422
    detail = r.json()["detail"]
    assert detail["errors"] == {"bedrooms": "At least 1 bedroom is required"}
    assert "validation failed" in detail["message"]

    progress = client.get(f"/api/onboarding/{villa_id}", headers=owner_headers).json()
    assert progress["completed_steps"] == []


def test_invalid_draft_is_saved(client, owner_headers, villa_id):
    r = put_step(client, owner_headers, villa_id, 1, {"villa_city": "Ubud", "bedrooms": 0}, completed=False)
    assert r.status_code == 200
    body = r.json()
    assert body["current_step"] == 1
    assert body["completed_steps"] == []
    assert body["field_progress"]["1"]["villa_city"] == "Ubud"
    assert body["current_step_validation"]["is_valid"] is False


@pytest.mark.parametrize("step", [0, 11])
def test_step_out_of_range(client, owner_headers, villa_id, step):
    r = put_step(client, owner_headers, villa_id, step, {})
    assert r.status_code == 400
    assert r.json()["detail"] == "Invalid step number"


def test_unknown_enum_value_is_a_bad_request(client, owner_headers, villa_id):
    r = put_step(client, owner_headers, villa_id, 1, {**VILLA, "property_type": "CASTLE"})
    assert r.status_code == 400
    assert "property type" in r.json()["detail"]


def test_draft_keeps_unknown_enum_value_as_field_progress(client, owner_headers, villa_id):
    r = put_step(client, owner_headers, villa_id, 1, {"villa_city": "Ubud", "property_type": "CASTLE"}, completed=False)
    assert r.status_code == 200
    body = r.json()
    assert body["field_progress"]["1"]["property_type"] == "CASTLE"
    assert body["saved_data"]["1"]["property_type"] is None
    assert body["saved_data"]["1"]["villa_city"] == "Ubud"


def test_draft_with_bad_staff_entry_keeps_other_records(client, owner_headers, villa_id):
    staff = [{"first_name": "Ketut", "last_name": "Garden", "position": "PILOT"}]
    r = put_step(client, owner_headers, villa_id, 7, {"staff": staff}, completed=False)
    assert r.status_code == 200
    assert r.json()["saved_data"]["7"]["staff"] == []
    assert r.json()["field_progress"]["7"]["staff"] == staff


def test_skipped_step_counts_as_completed(client, owner_headers, villa_id):
    r = put_step(client, owner_headers, villa_id, 5, {"skipped": True})
    assert r.status_code == 200
    assert r.json()["completed_steps"] == [5]


def test_bank_details_are_masked(client, owner_headers, villa_id):
    r = put_step(client, owner_headers, villa_id, 4, BANK)
    assert r.status_code == 200
    saved = r.json()["saved_data"]["4"]
    assert saved["account_number"] == "****7890"
    assert saved["iban"] == "****5432"
    assert saved["bank_name"] == "Bank Central"
    assert r.json()["field_progress"]["4"]["account_number"] == "****"

    # Echoing the masked values back keeps the stored ones
    r = put_step(client, owner_headers, villa_id, 4, {**BANK, "account_number": "****7890", "iban": "****5432"})
    assert r.status_code == 200
    assert r.json()["saved_data"]["4"]["account_number"] == "****7890"


def test_validate_saved_step(client, owner_headers, villa_id):
    r = client.get(f"/api/onboarding/{villa_id}/validate/2", headers=owner_headers)
    assert r.status_code == 200
    assert r.json()["is_valid"] is False
    assert "owner_email" in r.json()["errors"]

    put_step(client, owner_headers, villa_id, 2, OWNER)
    r = client.get(f"/api/onboarding/{villa_id}/validate/2", headers=owner_headers)
    assert r.json()["is_valid"] is True

    assert client.get(f"/api/onboarding/{villa_id}/validate/12", headers=owner_headers).status_code == 400


def test_complete_requires_required_steps(client, owner_headers, villa_id):
    put_step(client, owner_headers, villa_id, 1, VILLA)
    r = client.post(f"/api/onboarding/{villa_id}/complete", headers=owner_headers)
    assert r.status_code == 400
    assert r.json()["detail"] == "Required steps not completed: 2, 3, 4, 10"


def test_complete_after_required_steps(client, owner_headers, villa_id):
    for step in (1, 2, 3, 4, 10):
        assert put_step(client, owner_headers, villa_id, step, STEP_DATA[step]).status_code == 200
    r = client.post(f"/api/onboarding/{villa_id}/complete", headers=owner_headers)
    assert r.status_code == 200
    assert r.json()["status"] == "COMPLETED"
    assert r.json()["completed_at"] is not None


def test_full_wizard_completes_and_activates_villa(client, owner_headers, villa_id):
    for step in range(1, 11):
        r = put_step(client, owner_headers, villa_id, step, STEP_DATA[step])
        assert r.status_code == 200, (step, r.json())
    body = r.json()
    assert body["status"] == "COMPLETED"
    assert body["completion_percentage"] == 100
    assert body["progress_status"] == "COMPLETED"
    assert body["saved_data"]["5"]["ota_credentials"][0]["password"] == "****er22"
    assert body["saved_data"]["7"]["staff"][0]["department"] == "MAINTENANCE"
    assert body["saved_data"]["8"]["facilities"][0]["category"] == "kitchen_dining"

    villa = client.get(f"/api/villas/{villa_id}", headers=owner_headers).json()
    assert villa["status"] == "ACTIVE"
    assert villa["villa_name"] == "Villa Sunset"


def test_last_document_upload_completes_onboarding(client, owner_headers, villa_id):
    for step in (1, 2, 3, 4, 5, 7, 8, 9, 10):
        assert put_step(client, owner_headers, villa_id, step, STEP_DATA[step]).status_code == 200
    assert client.get(f"/api/villas/{villa_id}", headers=owner_headers).json()["status"] == "DRAFT"

    r = client.post(
        f"/api/villas/{villa_id}/documents",
        files={"file": ("contract.pdf", b"%PDF-1.4 test", "application/pdf")},
        data={"document_type": "PROPERTY_CONTRACT"},
        headers=owner_headers,
    )
    assert r.status_code == 201
    assert client.get(f"/api/villas/{villa_id}", headers=owner_headers).json()["status"] == "ACTIVE"
    body = client.get(f"/api/onboarding/{villa_id}", headers=owner_headers).json()
    assert body["status"] == "COMPLETED"
    assert body["completed_at"] is not None


def test_last_photo_upload_completes_onboarding(client, owner_headers, villa_id):
    for step in (1, 2, 3, 4, 5, 6, 7, 8, 10):
        assert put_step(client, owner_headers, villa_id, step, STEP_DATA[step]).status_code == 200

    r = client.post(
        f"/api/villas/{villa_id}/photos",
        files=[("files", ("pool.jpg", b"\xff\xd8\xffpool", "image/jpeg"))],
        headers=owner_headers,
    )
    assert r.status_code == 201
    assert client.get(f"/api/villas/{villa_id}", headers=owner_headers).json()["status"] == "ACTIVE"


def test_bank_and_ota_secrets_are_encrypted_at_rest(client, owner_headers, villa_id, db):
    put_step(client, owner_headers, villa_id, 4, BANK)
    put_step(client, owner_headers, villa_id, 5, STEP_DATA[5])

    account_number, iban = db.execute(text("SELECT account_number, iban FROM bank_details")).one()
    assert account_number.startswith("v1:") and "1234567890" not in account_number
    assert iban.startswith("v1:") and "GB82WEST" not in iban
    username, password = db.execute(text("SELECT username, password FROM ota_credentials")).one()
    assert "sunset" not in username
    assert "hunter22" not in password

    saved = client.get(f"/api/onboarding/{villa_id}", headers=owner_headers).json()["saved_data"]
    assert saved["4"]["account_number"] == "****7890"
    assert saved["5"]["ota_credentials"][0]["username"] == "sunset"
    assert saved["5"]["ota_credentials"][0]["password"] == "****er22"


def test_unavailable_facility_is_removed(client, owner_headers, villa_id):
    oven = {"category": "kitchen_dining", "item_name": "Oven", "quantity": 1}
    pool = {"category": "outdoor_pool", "item_name": "Pool", "quantity": 1}
    put_step(client, owner_headers, villa_id, 8, {"facilities": [oven, pool]})

    r = put_step(client, owner_headers, villa_id, 8, {"facilities": [{**oven, "is_available": False}]})
    assert r.status_code == 200
    assert [f["item_name"] for f in r.json()["saved_data"]["8"]["facilities"]] == ["Pool"]


def test_owner_full_name_is_split(client, owner_headers, villa_id):
    data = {"owner_full_name": "Olive May Owner", "owner_email": "olive@example.com"}
    r = put_step(client, owner_headers, villa_id, 2, data, completed=False)
    assert r.status_code == 200
    saved = r.json()["saved_data"]["2"]
    assert saved["owner_first_name"] == "Olive"
    assert saved["owner_last_name"] == "May Owner"
    assert saved["owner_email"] == "olive@example.com"

    # An explicit first name wins over the split one
    r = put_step(client, owner_headers, villa_id, 2, {**data, "owner_first_name": "Liv"}, completed=False)
    saved = r.json()["saved_data"]["2"]
    assert (saved["owner_first_name"], saved["owner_last_name"]) == ("Liv", "May Owner")


def test_resubmitting_staff_deactivates_missing_members(client, owner_headers, villa_id):
    staff = [
        {"first_name": "Ketut", "last_name": "Garden", "position": "GARDENER"},
        {"first_name": "Made", "last_name": "Chef", "position": "CHEF", "email": "made@example.com"},
    ]
    put_step(client, owner_headers, villa_id, 7, {"staff": staff})
    r = put_step(client, owner_headers, villa_id, 7, {"staff": staff[1:]})
    names = [s["first_name"] for s in r.json()["saved_data"]["7"]["staff"]]
    assert names == ["Made"]


def test_field_progress_roundtrip(client, owner_headers, villa_id):
    url = f"/api/onboarding/{villa_id}/field-progress/1"
    r = client.put(f"{url}/villa_city", json={"value": "Canggu"}, headers=owner_headers)
    assert r.status_code == 200
    assert r.json() == {"villa_id": villa_id, "step": 1, "fields": {"villa_city": "Canggu"}}

    client.put(f"{url}/bedrooms", json={"value": 3}, headers=owner_headers)
    r = client.get(url, headers=owner_headers)
    assert r.json()["fields"] == {"villa_city": "Canggu", "bedrooms": 3}


def test_field_progress_never_stores_secrets(client, owner_headers, villa_id):
    r = client.put(
        f"/api/onboarding/{villa_id}/field-progress/4/account_number",
        json={"value": "1234567890"},
        headers=owner_headers,
    )
    assert r.json()["fields"] == {"account_number": "****"}


def test_field_progress_rejects_bad_step(client, owner_headers, villa_id):
    r = client.get(f"/api/onboarding/{villa_id}/field-progress/0", headers=owner_headers)
    assert r.status_code == 400


@pytest.mark.parametrize("action", ["submit-review", "approve", "reject"])
def test_approval_endpoints_are_gone(client, owner_headers, villa_id, action):
    r = client.post(f"/api/onboarding/{villa_id}/{action}", headers=owner_headers)
    assert r.status_code == 410
    assert r.json()["detail"] == "Admin approval system has been removed"


def test_other_owner_cannot_touch_villa(client, db, villa_id):
    stranger = make_user(db, "stranger@villas.test")
    headers = auth_headers(stranger)
    assert client.get(f"/api/onboarding/{villa_id}", headers=headers).status_code == 403
    assert put_step(client, headers, villa_id, 1, VILLA).status_code == 403


def test_manager_can_work_on_any_villa(client, manager_headers, villa_id):
    r = put_step(client, manager_headers, villa_id, 1, VILLA)
    assert r.status_code == 200


def test_unknown_villa(client, owner_headers):
    assert client.get("/api/onboarding/does-not-exist", headers=owner_headers).status_code == 404
