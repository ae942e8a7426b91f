"""
Onboarding smoke test - in-process via TestClient (no separate server).
Uses the configured DATABASE_URL; SharePoint and Clerk are used only if configured.
Run: python scripts/smoke_test_inprocess.py
"""
import sys
import os
import uuid
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from fastapi.testclient import TestClient
from app.database import SessionLocal, engine, Base
from app.main import app
from app.models.user import User, UserRole
from app.services.auth import get_password_hash

# Ensure DB and tables
Base.metadata.create_all(bind=engine)

client = TestClient(app)
passed = failed = 0
owner_token = admin_token = None
villa_id = None
RUN = uuid.uuid4().hex[:8]
OWNER_EMAIL = f"owner-{RUN}@smoke.villas.demo"
ADMIN_EMAIL = f"admin-{RUN}@smoke.villas.demo"
PASSWORD = "testpass123"

STEP1 = {
    "villa_name": f"Smoke Villa {RUN}", "villa_address": "Jl. Smoke 1", "villa_city": "Seminyak",
    "villa_country": "Indonesia", "bedrooms": 4, "bathrooms": 3, "max_guests": 8, "property_type": "VILLA",
    "google_coordinates": "-8.69,115.16",
}
STEP2 = {
    "owner_first_name": "Sam", "owner_last_name": "Owner", "owner_email": "sam@smoke.villas.demo",
    "owner_phone": "+62 812 3456 7890", "owner_address": "1 Owner Rd", "owner_city": "Denpasar",
    "owner_country": "Indonesia",
}
STEP3 = {
    "contract_start_date": "2026-01-01", "contract_type": "EXCLUSIVE", "commission_rate": 20,
    "payout_day1": 15, "check_in_time": "15:00", "check_out_time": "11:00",
}
STEP4 = {
    "account_holder_name": "Sam Owner", "bank_name": "Smoke Bank", "account_number": "1234567890",
    "iban": "GB82WEST12345698765432", "swift_code": "DEUTDEFF", "currency": "USD",
}


def req(method, path, body=None, token=None, files=None, data=None):
    kwargs = {"headers": {"Accept": "application/json"}}
    if token:
        kwargs["headers"]["Authorization"] = f"Bearer {token}"
    if body is not None:
        kwargs["json"] = body
    if files is not None:
        kwargs["files"] = files
        kwargs["data"] = data or {}
    r = client.request(method, path, **kwargs)
    if r.status_code >= 400:
        raise RuntimeError(f"HTTP {r.status_code}: {r.text}")
    return r.json() if r.content else {}


def test(name, fn):
    global passed, failed
    try:
        fn()
        print(f"  OK  {name}")
        passed += 1
    except Exception as e:
        print(f"  FAIL {name}: {e}")
        failed += 1


def _make_admin():
    db = SessionLocal()
    try:
        db.add(User(email=ADMIN_EMAIL, hashed_password=get_password_hash(PASSWORD), role=UserRole.admin))
        db.commit()
    finally:
        db.close()


def step(n, data, completed=True):
    return req("PUT", f"/api/onboarding/{villa_id}/step", {"step": n, "data": data, "completed": completed}, token=owner_token)


def main():
    global owner_token, admin_token, villa_id
    print("Villa Onboarding smoke test (in-process)\n" + "=" * 50)

    test("GET /", lambda: req("GET", "/"))
    test("GET /health", lambda: req("GET", "/health"))
    test("GET /api/config", lambda: req("GET", "/api/config"))

    print("\n--- Auth ---")
    r = req("POST", "/api/auth/register", {"email": OWNER_EMAIL, "password": PASSWORD, "first_name": "Smoke"})
    owner_token = (r.get("access_token") or "").strip()
    test("POST /api/auth/register (owner)", lambda: None if owner_token else 1 / 0)
    _make_admin()
    r = req("POST", "/api/auth/login", {"email": ADMIN_EMAIL, "password": PASSWORD})
    admin_token = (r.get("access_token") or "").strip()
    test("POST /api/auth/login (admin)", lambda: None if admin_token else 1 / 0)
    test("GET /api/auth/me", lambda: req("GET", "/api/auth/me", token=owner_token))

    print("\n--- Onboarding ---")
    test("GET /api/onboarding/steps", lambda: req("GET", "/api/onboarding/steps"))
    r = req("POST", "/api/onboarding/start", {"villa_name": f"Smoke Villa {RUN}"}, token=owner_token)
    villa_id = r["villa_id"]
    test("POST /api/onboarding/start", lambda: None)
    test("step 1 villa info", lambda: step(1, STEP1))
    test("step 2 owner", lambda: step(2, STEP2))
    test("step 3 contract", lambda: step(3, STEP3))
    test("step 4 bank", lambda: step(4, STEP4))
    test("step 5 skipped", lambda: step(5, {"skipped": True}))
    test("GET /api/onboarding/{id}/validate/4", lambda: req("GET", f"/api/onboarding/{villa_id}/validate/4", token=owner_token))
    test("POST /api/villas/{id}/photos", lambda: req(
        "POST", f"/api/villas/{villa_id}/photos", token=owner_token,
        files=[("files", ("pool.jpg", b"\xff\xd8\xff smoke", "image/jpeg"))], data={"category": "POOL_OUTDOOR_AREAS"}))
    test("GET /api/onboarding/{id}", lambda: req("GET", f"/api/onboarding/{villa_id}", token=owner_token))
    test("step 10 review", lambda: step(10, {"agreed_to_terms": True}))
    test("POST /api/onboarding/{id}/complete", lambda: req("POST", f"/api/onboarding/{villa_id}/complete", token=owner_token))

    print("\n--- Admin ---")
    test("GET /api/users", lambda: req("GET", "/api/users?role=all", token=admin_token))
    test("GET /api/dashboard/stats", lambda: req("GET", "/api/dashboard/stats", token=admin_token))
    test("GET /api/dashboard/activity", lambda: req("GET", f"/api/dashboard/activity?villa_id={villa_id}", token=admin_token))

    print("\n" + "=" * 50)
    print(f"Passed: {passed}  Failed: {failed}  Total: {passed + failed}")
    sys.exit(0 if failed == 0 else 1)


if __name__ == "__main__":
    main()
