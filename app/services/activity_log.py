"""Villa activity log: who did what to which villa, and from where.

Entries are only ever appended. Functions flush; the caller commits.
"""
from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from app.models.activity_log import ActivityLog

CATEGORY_ONBOARDING = "onboarding"
CATEGORY_ROLE_CHANGE = "role_change"
CATEGORY_DOCUMENT = "document"
CATEGORY_SHAREPOINT = "sharepoint"
CATEGORY_AUTH = "auth"
CATEGORY_VILLA_RECORDS = "villa_records"

# message is a Text column
MESSAGE_MAX_LEN = 10_000


def _fit(value: str | None, column: str) -> str | None:
    """Strip and cut to the String column's length; empty becomes None."""
    if not value:
        return None
    limit = ActivityLog.__table__.c[column].type.length
    return str(value).strip()[:limit] or None


def request_context(request: Request | None) -> dict[str, str | None]:
    """ip_address / user_agent keyword arguments for create_log."""
    if request is None:
        return {"ip_address": None, "user_agent": None}
    return {
        "ip_address": request.client.host if request.client else None,
        "user_agent": request.headers.get("user-agent"),
    }


def create_log(
    db: Session,
    category: str,
    title: str,
    message: str,
    *,
    villa_id: str | None = None,
    actor_user_id: int | None = None,
    actor_email: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    meta: dict[str, Any] | None = None,
) -> ActivityLog:
    """Append one entry. meta may hold enums, dates or sets; it is stored as plain JSON."""
    entry = ActivityLog(
        villa_id=villa_id,
        category=_fit(category, "category") or CATEGORY_ONBOARDING,
        title=_fit(title, "title") or "-",
        message=(message or "").strip()[:MESSAGE_MAX_LEN] or "-",
        meta=jsonable_encoder(meta) if meta is not None else None,
        actor_user_id=actor_user_id,
        actor_email=_fit(actor_email, "actor_email"),
        ip_address=_fit(ip_address, "ip_address"),
        user_agent=_fit(user_agent, "user_agent"),
    )
    db.add(entry)
    db.flush()
    return entry
