"""Test setup: in-memory SQLite and no vendor integrations, configured before the app is imported."""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["ENCRYPTION_KEY"] = "test-encryption-passphrase"
for _key in (
    "ADMIN_EMAIL",
    "ADMIN_PASSWORD",
    "CLERK_SECRET_KEY",
    "SHAREPOINT_TENANT_ID",
    "SHAREPOINT_CLIENT_ID",
    "SHAREPOINT_CLIENT_SECRET",
    "SHAREPOINT_SITE_HOSTNAME",
    "SHAREPOINT_SITE_PATH",
    "SHAREPOINT_SITE_ID",
    "SHAREPOINT_DRIVE_ID",
    "SHAREPOINT_BASE_FOLDER",
):
    os.environ[_key] = ""

import pytest
from fastapi.testclient import TestClient

from app.database import Base, SessionLocal, engine
from app.main import app
from app.models.user import User, UserRole
from app.services.auth import create_access_token, get_password_hash

PASSWORD = "password123"


@pytest.fixture(autouse=True)
def _tables():
    Base.metadata.create_all(bind=engine)
    yield
    app.dependency_overrides.clear()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


def make_user(db, email: str, role: UserRole = UserRole.owner, **fields) -> User:
    user = User(email=email, hashed_password=get_password_hash(PASSWORD), role=role, **fields)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.email, user.role)}"}


@pytest.fixture
def owner(db):
    return make_user(db, "owner@villas.test", first_name="Olive", last_name="Owner")


@pytest.fixture
def admin(db):
    return make_user(db, "admin@villas.test", UserRole.admin, first_name="Ada", last_name="Admin")


@pytest.fixture
def manager(db):
    return make_user(db, "manager@villas.test", UserRole.manager, first_name="Max", last_name="Manager")


@pytest.fixture
def owner_headers(owner):
    return auth_headers(owner)


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture
def manager_headers(manager):
    return auth_headers(manager)
