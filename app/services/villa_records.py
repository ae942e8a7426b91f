"""Villa records kept up to date after onboarding: staff, facility checklist,
OTA credentials and bank details.

Writes go through the same helpers the wizard uses, so defaults, masking and
matching rules are identical. Functions flush; the caller commits.
"""
from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.orm import Session

from app.models.ota import OTACredentials
from app.models.staff import FacilityChecklist, Staff
from app.models.user import User
from app.models.villa import Villa
from app.services.activity_log import CATEGORY_VILLA_RECORDS, create_log
from app.services.onboarding import (
    OTA_SECRET_FIELDS,
    OTA_TEXT_FIELDS,
    OnboardingError,
    apply_staff_entry,
    is_masked,
    mask_secret,
    save_bank_details,
    saved_step_data,
    upsert_facility,
)
from app.services.validation import ValidationResult, validate_bank_details, validate_staff

log = logging.getLogger(__name__)

STAFF_FIELDS = (
    "first_name",
    "last_name",
    "email",
    "phone",
    "position",
    "department",
    "employment_type",
    "nationality",
    "id_number",
    "start_date",
    "salary",
    "currency",
    "has_accommodation",
    "has_meals",
    "has_transport",
    "has_health_insurance",
    "emergency_contact",
    "emergency_phone",
    "notes",
)
FACILITY_FIELDS = ("category", "subcategory", "item_name", "quantity", "condition", "notes", "specifications", "checked_by")


class RecordValidationError(OnboardingError):
    def __init__(self, record: str, result: ValidationResult):
        self.result = result
        super().__init__(f"{record} validation failed: {', '.join(result.errors.values())}")


def _log(
    db: Session,
    villa_id: str,
    title: str,
    message: str,
    actor: User | None,
    log_ctx: dict | None,
    meta: dict | None = None,
) -> None:
    create_log(
        db,
        CATEGORY_VILLA_RECORDS,
        title,
        message,
        villa_id=villa_id,
        actor_user_id=actor.id if actor else None,
        actor_email=actor.email if actor else None,
        meta=meta,
        **(log_ctx or {}),
    )


# -- staff --------------------------------------------------------------------


def list_staff(db: Session, villa: Villa, include_inactive: bool = False) -> list[Staff]:
    q = db.query(Staff).filter(Staff.villa_id == villa.id)
    if not include_inactive:
        q = q.filter(Staff.is_active.is_(True))
    return q.order_by(Staff.last_name, Staff.first_name, Staff.id).all()


def update_staff(
    db: Session,
    member: Staff,
    changes: dict[str, Any],
    *,
    actor: User | None = None,
    log_ctx: dict | None = None,
) -> Staff:
    entry = {key: getattr(member, key) for key in STAFF_FIELDS}
    entry.update(changes)
    result = validate_staff({"staff": [entry]})
    if not result.is_valid:
        raise RecordValidationError("Staff", result)
    apply_staff_entry(db, member, entry)
    _log(
        db,
        member.villa_id,
        "Staff updated",
        f"Staff member {member.first_name} {member.last_name} updated.",
        actor,
        log_ctx,
        meta={"staff_id": member.id, "fields": sorted(changes)},
    )
    return member


def set_staff_active(
    db: Session,
    member: Staff,
    active: bool,
    *,
    actor: User | None = None,
    log_ctx: dict | None = None,
) -> Staff:
    if member.is_active != active:
        member.is_active = active
        _log(
            db,
            member.villa_id,
            "Staff activated" if active else "Staff deactivated",
            f"Staff member {member.first_name} {member.last_name} {'activated' if active else 'deactivated'}.",
            actor,
            log_ctx,
            meta={"staff_id": member.id},
        )
    db.flush()
    return member


# -- facilities ---------------------------------------------------------------


def list_facilities(db: Session, villa: Villa, category: str | None = None) -> list[FacilityChecklist]:
    q = db.query(FacilityChecklist).filter(FacilityChecklist.villa_id == villa.id)
    if category:
        q = q.filter(FacilityChecklist.category == category.strip().lower())
    return q.order_by(FacilityChecklist.category, FacilityChecklist.subcategory, FacilityChecklist.item_name).all()


def save_facility(
    db: Session,
    villa: Villa,
    entry: dict[str, Any],
    *,
    actor: User | None = None,
    log_ctx: dict | None = None,
) -> FacilityChecklist:
    """Create the item, or update it when the villa already lists one with the same name."""
    row = upsert_facility(db, villa, {**entry, "is_available": True})
    if row is None:
        raise OnboardingError("Facility category and item name are required")
    _log(
        db,
        villa.id,
        "Facility saved",
        f"Facility {row.item_name} ({row.category}) saved for {villa.villa_name}.",
        actor,
        log_ctx,
        meta={"facility_id": row.id},
    )
    return row


def update_facility(
    db: Session,
    villa: Villa,
    row: FacilityChecklist,
    changes: dict[str, Any],
    *,
    actor: User | None = None,
    log_ctx: dict | None = None,
) -> FacilityChecklist:
    entry = {key: getattr(row, key) for key in FACILITY_FIELDS}
    # category / subcategory / item_name identify the row and are not changed here
    entry.update({k: v for k, v in changes.items() if k not in ("category", "subcategory", "item_name")})
    return save_facility(db, villa, entry, actor=actor, log_ctx=log_ctx)


def delete_facility(
    db: Session,
    row: FacilityChecklist,
    *,
    actor: User | None = None,
    log_ctx: dict | None = None,
) -> None:
    _log(
        db,
        row.villa_id,
        "Facility removed",
        f"Facility {row.item_name} ({row.category}) removed.",
        actor,
        log_ctx,
        meta={"facility_id": row.id},
    )
    db.delete(row)
    db.flush()


# -- OTA credentials ----------------------------------------------------------


def ota_view(cred: OTACredentials) -> dict[str, Any]:
    """Credentials as shown to clients: secrets masked to their last four characters."""
    out = {key: getattr(cred, key) for key in OTA_TEXT_FIELDS}
    out.update({key: mask_secret(getattr(cred, key)) for key in OTA_SECRET_FIELDS})
    out.update(
        id=cred.id,
        villa_id=cred.villa_id,
        platform=cred.platform,
        is_active=cred.is_active,
        sync_status=cred.sync_status,
        last_sync_at=cred.last_sync_at,
    )
    return out


def list_ota_credentials(db: Session, villa: Villa) -> list[OTACredentials]:
    return db.query(OTACredentials).filter(OTACredentials.villa_id == villa.id).order_by(OTACredentials.id).all()


def set_ota_active(
    db: Session,
    cred: OTACredentials,
    active: bool,
    *,
    actor: User | None = None,
    log_ctx: dict | None = None,
) -> OTACredentials:
    if cred.is_active != active:
        cred.is_active = active
        _log(
            db,
            cred.villa_id,
            "OTA credentials activated" if active else "OTA credentials deactivated",
            f"{cred.platform.value} credentials {'activated' if active else 'deactivated'}.",
            actor,
            log_ctx,
            meta={"platform": cred.platform},
        )
    db.flush()
    return cred


def delete_ota_credentials(
    db: Session,
    cred: OTACredentials,
    *,
    actor: User | None = None,
    log_ctx: dict | None = None,
) -> None:
    _log(
        db,
        cred.villa_id,
        "OTA credentials deleted",
        f"{cred.platform.value} credentials deleted.",
        actor,
        log_ctx,
        meta={"platform": cred.platform},
    )
    db.delete(cred)
    db.flush()


# -- bank details -------------------------------------------------------------


def bank_view(db: Session, villa: Villa) -> dict[str, Any] | None:
    """Stored bank details with the account number and IBAN masked; None when there are none."""
    if villa.bank_details is None:
        return None
    return saved_step_data(db, villa, 4)


def update_bank_details(
    db: Session,
    villa: Villa,
    changes: dict[str, Any],
    *,
    actor: User | None = None,
    log_ctx: dict | None = None,
) -> dict[str, Any]:
    """Merge changes into the stored details and save. Masked values echoed back keep the stored ones."""
    current = saved_step_data(db, villa, 4, mask=False)
    merged = {**current, **{k: v for k, v in changes.items() if not is_masked(v)}}
    result = validate_bank_details(merged)
    if not result.is_valid:
        raise RecordValidationError("Bank details", result)
    save_bank_details(db, villa, merged)
    db.flush()
    _log(
        db,
        villa.id,
        "Bank details updated",
        f"Bank details updated for {villa.villa_name}.",
        actor,
        log_ctx,
        meta={"fields": sorted(changes)},
    )
    return saved_step_data(db, villa, 4)
