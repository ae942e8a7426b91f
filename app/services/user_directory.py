"""Module E: Admin user directory (Clerk Backend API, local users as fallback)."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

import httpx
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.models.user import User, UserRole
from app.models.villa import Villa
from app.schemas.users import DirectoryUser

log = logging.getLogger(__name__)

VALID_ROLES = tuple(r.value for r in UserRole)
DEFAULT_ROLE = UserRole.owner.value


class UserDirectoryError(Exception):
    pass


def _from_epoch_ms(value: Any) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)
    except (TypeError, ValueError, OverflowError):
        return None


def _clerk_role(data: dict) -> str:
    for key in ("public_metadata", "unsafe_metadata"):
        role = (data.get(key) or {}).get("role")
        if role in VALID_ROLES:
            return role
    return DEFAULT_ROLE


def _primary_email(data: dict) -> str | None:
    addresses = data.get("email_addresses") or []
    primary_id = data.get("primary_email_address_id")
    for a in addresses:
        if primary_id and a.get("id") == primary_id:
            return a.get("email_address")
    return addresses[0].get("email_address") if addresses else None


def clerk_user_to_directory(data: dict) -> DirectoryUser:
    created = _from_epoch_ms(data.get("created_at"))
    return DirectoryUser(
        id=str(data.get("id")),
        first_name=data.get("first_name") or "",
        last_name=data.get("last_name") or "",
        email=_primary_email(data) or "",
        role=_clerk_role(data),
        created_at=created,
        last_sign_in=_from_epoch_ms(data.get("last_sign_in_at")) or created,
        profile_image_url=data.get("image_url") or data.get("profile_image_url"),
    )


def local_user_to_directory(user: User) -> DirectoryUser:
    return DirectoryUser(
        id=user.clerk_user_id or str(user.id),
        first_name=user.first_name or "",
        last_name=user.last_name or "",
        email=user.email,
        role=user.role.value if user.role else DEFAULT_ROLE,
        created_at=user.created_at,
        last_sign_in=user.last_sign_in_at or user.created_at,
        profile_image_url=user.profile_image_url,
    )


class ClerkDirectory:
    """Thin client over the Clerk Backend API; every failure raises UserDirectoryError."""

    def __init__(self, settings: Settings | None = None, transport: httpx.BaseTransport | None = None):
        self.settings = settings or get_settings()
        self.base_url = self.settings.clerk_api_url.rstrip("/")
        self._transport = transport

    def _request(self, method: str, path: str, **kwargs) -> Any:
        headers = {"Authorization": f"Bearer {self.settings.clerk_secret_key}"}
        try:
            with httpx.Client(timeout=10.0, transport=self._transport) as client:
                r = client.request(method, f"{self.base_url}{path}", headers=headers, **kwargs)
        except httpx.HTTPError as e:
            raise UserDirectoryError(f"Clerk request failed: {e}") from e
        if r.status_code >= 400:
            raise UserDirectoryError(f"Clerk {method} {path} returned {r.status_code}: {r.text[:200]}")
        return r.json()

    def list_users(self, limit: int = 100) -> list[DirectoryUser]:
        body = self._request("GET", "/users", params={"limit": limit, "order_by": "-created_at"})
        # Older API versions wrap the list in {"data": [...]}
        items = body.get("data", []) if isinstance(body, dict) else body
        return [clerk_user_to_directory(u) for u in items]

    def update_role(self, user_id: str, role: str) -> DirectoryUser:
        body = self._request("PATCH", f"/users/{user_id}/metadata", json={"public_metadata": {"role": role}})
        return clerk_user_to_directory(body)


def get_directory() -> ClerkDirectory | None:
    settings = get_settings()
    return ClerkDirectory(settings) if settings.clerk_configured else None


def filter_users(users: list[DirectoryUser], search: str | None = None, role: str | None = None) -> list[DirectoryUser]:
    term = (search or "").strip().lower()
    wanted = (role or "all").strip().lower()
    out = []
    for u in users:
        if wanted != "all" and u.role != wanted:
            continue
        if term and not any(term in (v or "").lower() for v in (u.first_name, u.last_name, u.email)):
            continue
        out.append(u)
    return out


def find_local_user(db: Session, user_id: str) -> User | None:
    """Local user by Clerk id or by numeric local id."""
    conds = [User.clerk_user_id == user_id]
    if user_id.isdigit():
        conds.append(User.id == int(user_id))
    return db.query(User).filter(or_(*conds)).first()


def villa_count(db: Session, user_id: str | None = None, email: str | None = None) -> int:
    """Villas owned by the local user matching the Clerk id, local id or email."""
    user = find_local_user(db, user_id) if user_id else None
    if user is None and email:
        user = db.query(User).filter(func.lower(User.email) == email.strip().lower()).first()
    if user is None:
        return 0
    return db.query(func.count(Villa.id)).filter(Villa.owner_user_id == user.id).scalar() or 0


def with_villa_counts(db: Session, users: list[DirectoryUser]) -> list[DirectoryUser]:
    for u in users:
        u.villa_count = villa_count(db, u.id, u.email)
    return users


def list_directory_users(db: Session, directory: ClerkDirectory | None = None) -> tuple[list[DirectoryUser], str]:
    """(users, source). Clerk when it answers, otherwise the local users table."""
    if directory is not None:
        try:
            return with_villa_counts(db, directory.list_users()), "clerk"
        except UserDirectoryError as e:
            log.warning("Clerk user list unavailable, using local users: %s", e)
    users = db.query(User).order_by(User.created_at.desc(), User.id.desc()).all()
    return with_villa_counts(db, [local_user_to_directory(u) for u in users]), "local"


def update_user_role(
    db: Session,
    user_id: str,
    role: str,
    directory: ClerkDirectory | None = None,
) -> tuple[str, User | None]:
    """Apply the role in Clerk when possible, and to the matching local user.

    Returns (mode, local user). mode is "clerk" when Clerk accepted it and
    "local_only" otherwise. Raises LookupError when neither knows the user.
    """
    mode = "local_only"
    if directory is not None:
        try:
            directory.update_role(user_id, role)
            mode = "clerk"
        except UserDirectoryError as e:
            log.warning("Clerk role update failed for %s, applying locally: %s", user_id, e)
    local = find_local_user(db, user_id)
    if local is not None:
        local.role = UserRole(role)
        db.flush()
    elif mode == "local_only":
        raise LookupError(user_id)
    return mode, local
