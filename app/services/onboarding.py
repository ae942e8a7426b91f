"""Module C: Onboarding wizard service.

Ten fixed steps (app.services.steps). Each step update validates the submitted
form data, saves it onto the villa's records, records per-field progress for
autosave, sets the step's completion flag and advances current_step. When all
ten flags are set the onboarding completes and the villa becomes ACTIVE.
Functions flush; the caller commits.
"""
from __future__ import annotations

import enum
import logging
from datetime import date, datetime, timezone
from typing import Any

from sqlalchemy.orm import Session

from app.models.media import Document, Photo
from app.models.onboarding import FieldStatus, OnboardingProgress, OnboardingStatus, StepFieldProgress
from app.models.ota import OTACredentials, OTAPlatform
from app.models.owner import (
    BankDetails,
    CancellationPolicy,
    ContractType,
    ContractualDetails,
    Owner,
    OwnerType,
    PaymentSchedule,
)
from app.models.staff import EmploymentType, FacilityChecklist, Staff, StaffDepartment, StaffPosition
from app.models.user import User
from app.models.villa import PropertyType, Villa, VillaStatus
from app.services.activity_log import CATEGORY_ONBOARDING, create_log
from app.services.steps import STEPS, TOTAL_STEPS, completed_steps, get_step, progress_status, step_progress
from app.services.validation import ValidationResult, parse_float, parse_int, validate_step
from app.services.villas import create_villa

log = logging.getLogger(__name__)

MASK_PREFIX = "****"
FIELD_NAME_MAX_LEN = 100

# position -> (department, employment type)
STAFF_DEFAULTS: dict[StaffPosition, tuple[StaffDepartment, EmploymentType]] = {
    StaffPosition.VILLA_MANAGER: (StaffDepartment.MANAGEMENT, EmploymentType.FULL_TIME),
    StaffPosition.HOUSEKEEPER: (StaffDepartment.HOUSEKEEPING, EmploymentType.FULL_TIME),
    StaffPosition.GARDENER: (StaffDepartment.MAINTENANCE, EmploymentType.PART_TIME),
    StaffPosition.POOL_MAINTENANCE: (StaffDepartment.MAINTENANCE, EmploymentType.CONTRACT),
    StaffPosition.SECURITY: (StaffDepartment.SECURITY, EmploymentType.FULL_TIME),
    StaffPosition.CHEF: (StaffDepartment.HOSPITALITY, EmploymentType.FULL_TIME),
    StaffPosition.DRIVER: (StaffDepartment.HOSPITALITY, EmploymentType.PART_TIME),
    StaffPosition.CONCIERGE: (StaffDepartment.HOSPITALITY, EmploymentType.FULL_TIME),
    StaffPosition.MAINTENANCE: (StaffDepartment.MAINTENANCE, EmploymentType.CONTRACT),
    StaffPosition.OTHER: (StaffDepartment.ADMINISTRATION, EmploymentType.FULL_TIME),
}

# Step 1 form key -> Villa column
VILLA_TEXT_FIELDS = {
    "villa_name": "villa_name",
    "villa_address": "address",
    "villa_city": "city",
    "villa_country": "country",
    "villa_postal_code": "zip_code",
    "location": "location",
    "villa_style": "villa_style",
    "description": "description",
    "short_description": "short_description",
    "google_maps_link": "google_maps_link",
    "old_rates_card_link": "old_rates_card_link",
    "ical_calendar_link": "ical_calendar_link",
}
VILLA_INT_FIELDS = ("bedrooms", "bathrooms", "max_guests", "year_built", "renovation_year")
VILLA_FLOAT_FIELDS = ("property_size", "plot_size", "latitude", "longitude")

# Step 2 form key -> Owner column
OWNER_TEXT_FIELDS = {
    "owner_email": "email",
    "owner_phone": "phone",
    "owner_address": "address",
    "owner_city": "city",
    "owner_country": "country",
    "owner_zip_code": "zip_code",
    "owner_nationality": "nationality",
    "passport_number": "passport_number",
    "id_number": "id_number",
    "alternative_phone": "alternative_phone",
    "phone_country_code": "phone_country_code",
    "phone_dial_code": "phone_dial_code",
    "company_name": "company_name",
    "company_address": "company_address",
    "company_tax_id": "company_tax_id",
    "company_vat": "company_vat",
    "manager_name": "manager_name",
    "manager_email": "manager_email",
    "manager_phone": "manager_phone",
    "preferred_language": "preferred_language",
    "communication_preference": "communication_preference",
    "owner_notes": "notes",
}

CONTRACT_TEXT_FIELDS = (
    "payment_terms",
    "check_in_time",
    "check_out_time",
    "vat_registration_number",
    "vat_payment_terms",
    "insurance_provider",
    "insurance_policy_number",
    "special_terms",
)
BANK_TEXT_FIELDS = (
    "branch_name",
    "branch_code",
    "branch_address",
    "bank_address",
    "bank_country",
    "account_type",
    "bank_notes",
)
OTA_TEXT_FIELDS = ("username", "property_id", "account_url", "listing_url", "property_url")
OTA_SECRET_FIELDS = ("password", "api_key", "api_secret")

# Typed form values. A draft keeps unparseable ones in field progress only.
STEP_TYPED_FIELDS: dict[int, dict[str, type]] = {
    1: {"property_type": PropertyType},
    2: {"owner_type": OwnerType},
    3: {
        "contract_type": ContractType,
        "payment_schedule": PaymentSchedule,
        "cancellation_policy": CancellationPolicy,
        "contract_start_date": date,
        "contract_end_date": date,
        "insurance_expiry": date,
    },
}
STEP_TYPED_LISTS: dict[int, tuple[str, dict[str, type]]] = {
    5: ("ota_credentials", {"platform": OTAPlatform}),
    7: (
        "staff",
        {
            "position": StaffPosition,
            "department": StaffDepartment,
            "employment_type": EmploymentType,
            "start_date": date,
        },
    ),
}


class OnboardingError(Exception):
    """Bad onboarding input that is not a per-field validation failure."""


class StepValidationError(OnboardingError):
    def __init__(self, step: int, result: ValidationResult):
        self.step = step
        self.result = result
        super().__init__(f"Step {step} validation failed: {', '.join(result.errors.values())}")


# ---------------------------------------------------------------------------
# Small coercion helpers
# ---------------------------------------------------------------------------


def mask_secret(value: str | None) -> str | None:
    """Show only the last four characters of a stored secret."""
    if not value:
        return value
    return MASK_PREFIX + value[-4:] if len(value) > 4 else MASK_PREFIX


def is_masked(value: Any) -> bool:
    return isinstance(value, str) and value.startswith(MASK_PREFIX)


def _clean(value: Any) -> str | None:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def _to_enum(enum_cls: type[enum.Enum], value: Any, label: str):
    if value is None or value == "":
        return None
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().upper())
    except ValueError:
        raise OnboardingError(f"Invalid {label}: {value}") from None


def _to_date(value: Any, label: str) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        raise OnboardingError(f"Invalid {label}: {value}") from None


def _parses(kind: type, value: Any) -> bool:
    try:
        if kind is date:
            _to_date(value, "date")
        else:
            _to_enum(kind, value, kind.__name__)
    except OnboardingError:
        return False
    return True


def _has_value(value: Any) -> bool:
    return value not in (None, "", [], {})


def _iso(value: Any) -> Any:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, enum.Enum):
        return value.value
    return value


def parse_coordinates(value: Any) -> tuple[float, float] | None:
    """Parse "lat,lng" into (lat, lng); None when it does not parse."""
    parts = str(value or "").split(",")
    if len(parts) != 2:
        return None
    lat, lng = parse_float(parts[0]), parse_float(parts[1])
    if lat is None or lng is None:
        return None
    return lat, lng


# ---------------------------------------------------------------------------
# Progress rows
# ---------------------------------------------------------------------------


def get_or_create_progress(db: Session, villa: Villa) -> OnboardingProgress:
    progress = db.query(OnboardingProgress).filter(OnboardingProgress.villa_id == villa.id).first()
    if progress is None:
        progress = OnboardingProgress(
            villa_id=villa.id,
            current_step=1,
            total_steps=TOTAL_STEPS,
            status=OnboardingStatus.IN_PROGRESS,
        )
        db.add(progress)
        db.flush()
    return progress


def start_onboarding(
    db: Session,
    user: User,
    villa_name: str = "New Villa",
    *,
    log_ctx: dict | None = None,
) -> tuple[Villa, OnboardingProgress]:
    villa = create_villa(db, user, villa_name)
    progress = get_or_create_progress(db, villa)
    create_log(
        db,
        CATEGORY_ONBOARDING,
        "Onboarding started",
        f"Onboarding started for {villa.villa_name} ({villa.villa_code}).",
        villa_id=villa.id,
        actor_user_id=user.id,
        actor_email=user.email,
        meta={"villa_code": villa.villa_code},
        **(log_ctx or {}),
    )
    log.info("Onboarding started for villa %s (%s)", villa.id, villa.villa_code)
    return villa, progress


# ---------------------------------------------------------------------------
# Field progress (autosave)
# ---------------------------------------------------------------------------


def save_field_progress(
    db: Session,
    villa: Villa,
    step: int,
    field_name: str,
    value: Any,
    *,
    status: FieldStatus | None = None,
) -> StepFieldProgress:
    get_step(step)
    name = (field_name or "").strip()
    if not name or len(name) > FIELD_NAME_MAX_LEN:
        raise OnboardingError("Invalid field name")
    value = _without_secrets(name, value)
    has_value = _has_value(value)
    if status is None:
        status = FieldStatus.COMPLETED if has_value else FieldStatus.IN_PROGRESS
    row = (
        db.query(StepFieldProgress)
        .filter(
            StepFieldProgress.villa_id == villa.id,
            StepFieldProgress.step == step,
            StepFieldProgress.field_name == name,
        )
        .first()
    )
    if row is None:
        row = StepFieldProgress(villa_id=villa.id, step=step, field_name=name)
        db.add(row)
    row.value = value
    row.status = status
    row.is_valid = has_value
    db.flush()
    return row


def get_field_progress(db: Session, villa: Villa, step: int) -> dict[str, Any]:
    get_step(step)
    rows = (
        db.query(StepFieldProgress)
        .filter(StepFieldProgress.villa_id == villa.id, StepFieldProgress.step == step)
        .all()
    )
    return {r.field_name: r.value for r in rows if r.value is not None}


def _all_field_progress(db: Session, villa: Villa) -> dict[int, dict[str, Any]]:
    out: dict[int, dict[str, Any]] = {}
    rows = db.query(StepFieldProgress).filter(StepFieldProgress.villa_id == villa.id).all()
    for r in rows:
        if r.value is not None:
            out.setdefault(r.step, {})[r.field_name] = r.value
    return out


def _without_secrets(key: str, value: Any) -> Any:
    """Secrets live only on their own records, never in field progress."""
    if key in ("account_number", "iban") or key in OTA_SECRET_FIELDS:
        return MASK_PREFIX if _has_value(value) else None
    if key == "ota_credentials" and isinstance(value, list):
        return [
            {k: v for k, v in c.items() if k not in OTA_SECRET_FIELDS}
            for c in value
            if isinstance(c, dict)
        ]
    return value


def _record_step_fields(db: Session, villa: Villa, step: int, data: dict, skipped: bool) -> None:
    for key, value in data.items():
        if key == "skipped" or not isinstance(key, str) or not key.strip() or len(key) > FIELD_NAME_MAX_LEN:
            continue
        save_field_progress(
            db, villa, step, key, value,
            status=FieldStatus.SKIPPED if skipped else None,
        )


# ---------------------------------------------------------------------------
# Per-step persistence
# ---------------------------------------------------------------------------


def _save_villa_info(db: Session, villa: Villa, data: dict) -> None:
    for key, column in VILLA_TEXT_FIELDS.items():
        if key in data:
            value = _clean(data[key])
            if column == "villa_name" and not value:
                continue
            setattr(villa, column, value)
    for key in VILLA_INT_FIELDS:
        if key in data:
            setattr(villa, key, parse_int(data[key]))
    for key in VILLA_FLOAT_FIELDS:
        if key in data:
            setattr(villa, key, parse_float(data[key]))
    if "property_type" in data:
        villa.property_type = _to_enum(PropertyType, data["property_type"], "property type")
    if _has_value(data.get("google_coordinates")):
        coords = parse_coordinates(data["google_coordinates"])
        if coords:
            villa.latitude, villa.longitude = coords


def _split_full_name(full_name: str | None) -> tuple[str | None, str | None]:
    parts = (full_name or "").split()
    if not parts:
        return None, None
    return parts[0], " ".join(parts[1:]) or None


def _save_owner(db: Session, villa: Villa, data: dict) -> None:
    first, last = _clean(data.get("owner_first_name")), _clean(data.get("owner_last_name"))
    if not (first and last) and _clean(data.get("owner_full_name")):
        split_first, split_last = _split_full_name(data["owner_full_name"])
        first, last = first or split_first, last or split_last
    email = _clean(data.get("owner_email"))
    if not (first and last and email):
        log.info("Owner details for villa %s incomplete; kept as field progress only", villa.id)
        return
    owner = villa.owner
    if owner is None:
        owner = Owner(villa_id=villa.id, first_name=first, last_name=last, email=email)
        db.add(owner)
        villa.owner = owner
    owner.first_name, owner.last_name = first, last
    for key, column in OWNER_TEXT_FIELDS.items():
        if key in data:
            setattr(owner, column, _clean(data[key]))
    if "owner_type" in data:
        owner.owner_type = _to_enum(OwnerType, data["owner_type"], "owner type") or OwnerType.INDIVIDUAL


def _save_contract(db: Session, villa: Villa, data: dict) -> None:
    contract = villa.contractual_details
    start = _to_date(data.get("contract_start_date"), "contract start date")
    ctype = _to_enum(ContractType, data.get("contract_type"), "contract type")
    if contract is None:
        if not (start and ctype):
            log.info("Contract for villa %s missing start date or type; kept as field progress only", villa.id)
            return
        contract = ContractualDetails(
            villa_id=villa.id,
            contract_start_date=start,
            contract_type=ctype,
            payment_schedule=PaymentSchedule.MONTHLY,
            minimum_stay_nights=1,
            cancellation_policy=CancellationPolicy.MODERATE,
            check_in_time="15:00",
            check_out_time="11:00",
        )
        db.add(contract)
        villa.contractual_details = contract
    if start:
        contract.contract_start_date = start
    if ctype:
        contract.contract_type = ctype
    if "contract_end_date" in data:
        contract.contract_end_date = _to_date(data["contract_end_date"], "contract end date")
    if "insurance_expiry" in data:
        contract.insurance_expiry = _to_date(data["insurance_expiry"], "insurance expiry")
    if "commission_rate" in data:
        contract.commission_rate = parse_float(data["commission_rate"]) or 0
    for key in ("management_fee", "marketing_fee"):
        if key in data:
            setattr(contract, key, parse_float(data[key]))
    for key in ("payout_day1", "payout_day2"):
        if key in data:
            setattr(contract, key, parse_int(data[key]))
    if "minimum_stay_nights" in data:
        contract.minimum_stay_nights = parse_int(data["minimum_stay_nights"]) or 1
    if _has_value(data.get("payment_schedule")):
        contract.payment_schedule = _to_enum(PaymentSchedule, data["payment_schedule"], "payment schedule")
    if _has_value(data.get("cancellation_policy")):
        contract.cancellation_policy = _to_enum(CancellationPolicy, data["cancellation_policy"], "cancellation policy")
    if "payment_through_ipl" in data:
        contract.payment_through_ipl = bool(data["payment_through_ipl"])
    for key in CONTRACT_TEXT_FIELDS:
        if key in data:
            value = _clean(data[key])
            if key in ("check_in_time", "check_out_time") and not value:
                continue
            setattr(contract, key, value)


def save_bank_details(db: Session, villa: Villa, data: dict) -> None:
    bank = villa.bank_details
    holder, bank_name = _clean(data.get("account_holder_name")), _clean(data.get("bank_name"))
    account = data.get("account_number")
    account = None if is_masked(account) else _clean(account)
    if bank is None:
        if not (holder and bank_name and account):
            log.info("Bank details for villa %s incomplete; kept as field progress only", villa.id)
            return
        bank = BankDetails(villa_id=villa.id, account_holder_name=holder, bank_name=bank_name, account_number=account)
        db.add(bank)
        villa.bank_details = bank
    if holder:
        bank.account_holder_name = holder
    if bank_name:
        bank.bank_name = bank_name
    if account:
        bank.account_number = account
    if "iban" in data and not is_masked(data["iban"]):
        iban = "".join(str(data["iban"] or "").split()).upper()
        bank.iban = iban or None
    if "swift_code" in data:
        bank.swift_code = (_clean(data["swift_code"]) or "").upper() or None
    bank.currency = (_clean(data.get("currency")) or bank.currency or "USD").upper()[:3]
    for key in BANK_TEXT_FIELDS:
        if key in data:
            setattr(bank, "notes" if key == "bank_notes" else key, _clean(data[key]))


def _save_ota_credentials(db: Session, villa: Villa, data: dict) -> None:
    creds = data.get("ota_credentials")
    if not isinstance(creds, list):
        return
    existing = {c.platform: c for c in villa.ota_credentials}
    for entry in creds:
        if not isinstance(entry, dict) or not entry.get("platform"):
            continue
        platform = _to_enum(OTAPlatform, entry["platform"], "OTA platform")
        row = existing.get(platform)
        if row is None:
            row = OTACredentials(villa_id=villa.id, platform=platform)
            db.add(row)
            villa.ota_credentials.append(row)
            existing[platform] = row
        for key in OTA_TEXT_FIELDS:
            if key in entry:
                setattr(row, key, _clean(entry[key]))
        for key in OTA_SECRET_FIELDS:
            if key in entry and not is_masked(entry[key]):
                setattr(row, key, _clean(entry[key]))
        if "is_active" in entry:
            row.is_active = bool(entry["is_active"])


def apply_staff_entry(db: Session, row: Staff, entry: dict) -> Staff:
    """Write one submitted staff entry onto its row; department and employment type default from position."""
    position = _to_enum(StaffPosition, entry.get("position"), "staff position") or StaffPosition.OTHER
    department, employment = STAFF_DEFAULTS[position]
    row.first_name = _clean(entry.get("first_name")) or row.first_name
    row.last_name = _clean(entry.get("last_name")) or row.last_name
    row.email = _clean(entry.get("email"))
    row.phone = _clean(entry.get("phone"))
    row.position = position
    row.department = _to_enum(StaffDepartment, entry.get("department"), "department") or department
    row.employment_type = _to_enum(EmploymentType, entry.get("employment_type"), "employment type") or employment
    row.nationality = _clean(entry.get("nationality"))
    row.id_number = _clean(entry.get("id_number"))
    row.start_date = _to_date(entry.get("start_date"), "staff start date")
    row.salary = parse_float(entry.get("salary"))
    if _has_value(entry.get("currency")):
        row.currency = str(entry["currency"]).upper()[:3]
    for flag in ("has_accommodation", "has_meals", "has_transport", "has_health_insurance"):
        if flag in entry:
            setattr(row, flag, bool(entry[flag]))
    row.emergency_contact = _clean(entry.get("emergency_contact"))
    row.emergency_phone = _clean(entry.get("emergency_phone"))
    row.notes = _clean(entry.get("notes"))
    db.flush()
    return row


def _save_staff(db: Session, villa: Villa, data: dict) -> None:
    members = data.get("staff")
    if not isinstance(members, list):
        return
    current = [s for s in villa.staff if s.is_active]
    by_email = {s.email.lower(): s for s in current if s.email}
    by_name = {(s.first_name.lower(), s.last_name.lower()): s for s in current}
    kept: set[int] = set()
    for entry in members:
        if not isinstance(entry, dict):
            continue
        first, last = _clean(entry.get("first_name")), _clean(entry.get("last_name"))
        if not (first and last):
            continue
        email = _clean(entry.get("email"))
        row = (by_email.get(email.lower()) if email else None) or by_name.get((first.lower(), last.lower()))
        if row is None:
            row = Staff(villa_id=villa.id, first_name=first, last_name=last)
            db.add(row)
            villa.staff.append(row)
        apply_staff_entry(db, row, entry)
        row.is_active = True
        kept.add(row.id)
    for member in current:
        if member.id not in kept:
            member.is_active = False


def upsert_facility(db: Session, villa: Villa, entry: dict) -> FacilityChecklist | None:
    """Create or update the checklist item named by (category, subcategory, item_name).

    An entry with is_available false removes the item; None is returned then,
    and also when the entry has no category or item name.
    """
    category = (_clean(entry.get("category")) or "").lower()
    item_name = _clean(entry.get("item_name"))
    if not category or not item_name:
        return None
    subcategory = _clean(entry.get("subcategory")) or ""
    row = (
        db.query(FacilityChecklist)
        .filter(
            FacilityChecklist.villa_id == villa.id,
            FacilityChecklist.category == category,
            FacilityChecklist.subcategory == subcategory,
            FacilityChecklist.item_name == item_name,
        )
        .first()
    )
    if not entry.get("is_available", True):
        if row is not None:
            db.delete(row)
            db.flush()
        return None
    if row is None:
        row = FacilityChecklist(villa_id=villa.id, category=category, subcategory=subcategory, item_name=item_name)
        db.add(row)
    row.is_available = True
    row.quantity = parse_int(entry.get("quantity"))
    row.condition = _clean(entry.get("condition"))
    row.notes = _clean(entry.get("notes"))
    row.specifications = _clean(entry.get("specifications"))
    row.checked_by = _clean(entry.get("checked_by"))
    row.last_checked_at = datetime.now(timezone.utc)
    db.flush()
    return row


def _save_facilities(db: Session, villa: Villa, data: dict) -> None:
    items = data.get("facilities")
    if not isinstance(items, list):
        return
    for entry in items:
        if isinstance(entry, dict):
            upsert_facility(db, villa, entry)


def _save_step_data(db: Session, villa: Villa, step: int, data: dict) -> None:
    if step == 1:
        _save_villa_info(db, villa, data)
    elif step == 2:
        _save_owner(db, villa, data)
    elif step == 3:
        _save_contract(db, villa, data)
    elif step == 4:
        save_bank_details(db, villa, data)
    elif step == 5:
        _save_ota_credentials(db, villa, data)
    elif step == 7:
        _save_staff(db, villa, data)
    elif step == 8:
        _save_facilities(db, villa, data)
    # Steps 6 and 9 upload through the documents endpoints; 9 and 10 keep their
    # form values (bedrooms_config, agreed_to_terms) as field progress only.
    db.flush()


# ---------------------------------------------------------------------------
# Reading saved data back in form shape
# ---------------------------------------------------------------------------


def saved_step_data(db: Session, villa: Villa, step: int, *, mask: bool = True) -> dict[str, Any]:
    """The villa's stored records for one step, keyed like the step's form data."""
    hide = mask_secret if mask else (lambda v: v)
    if step == 1:
        out = {key: getattr(villa, column) for key, column in VILLA_TEXT_FIELDS.items()}
        out.update({key: getattr(villa, key) for key in VILLA_INT_FIELDS + VILLA_FLOAT_FIELDS})
        out["property_type"] = _iso(villa.property_type)
        return out
    if step == 2:
        owner = villa.owner
        if owner is None:
            return {}
        out = {key: getattr(owner, column) for key, column in OWNER_TEXT_FIELDS.items()}
        out.update(owner_first_name=owner.first_name, owner_last_name=owner.last_name, owner_type=_iso(owner.owner_type))
        return out
    if step == 3:
        c = villa.contractual_details
        if c is None:
            return {}
        out = {key: getattr(c, key) for key in CONTRACT_TEXT_FIELDS}
        for key in (
            "contract_start_date", "contract_end_date", "insurance_expiry", "contract_type", "commission_rate",
            "management_fee", "marketing_fee", "payout_day1", "payout_day2", "minimum_stay_nights",
            "payment_schedule", "cancellation_policy", "payment_through_ipl",
        ):
            out[key] = _iso(getattr(c, key))
        return out
    if step == 4:
        b = villa.bank_details
        if b is None:
            return {}
        out = {key: getattr(b, "notes" if key == "bank_notes" else key) for key in BANK_TEXT_FIELDS}
        out.update(
            account_holder_name=b.account_holder_name,
            bank_name=b.bank_name,
            account_number=hide(b.account_number),
            iban=hide(b.iban),
            swift_code=b.swift_code,
            currency=b.currency,
        )
        return out
    if step == 5:
        creds = []
        for c in villa.ota_credentials:
            entry = {key: getattr(c, key) for key in OTA_TEXT_FIELDS}
            entry.update({key: hide(getattr(c, key)) for key in OTA_SECRET_FIELDS})
            entry.update(platform=c.platform.value, is_active=c.is_active, sync_status=c.sync_status.value)
            creds.append(entry)
        return {"ota_credentials": creds}
    if step == 6:
        docs = db.query(Document).filter(Document.villa_id == villa.id, Document.is_active.is_(True)).all()
        return {
            "documents": [
                {"id": d.id, "document_type": d.document_type.value, "file_name": d.file_name} for d in docs
            ]
        }
    if step == 7:
        return {
            "staff": [
                {
                    "id": s.id,
                    "first_name": s.first_name,
                    "last_name": s.last_name,
                    "email": s.email,
                    "phone": s.phone,
                    "position": s.position.value,
                    "department": s.department.value,
                    "employment_type": s.employment_type.value,
                }
                for s in villa.staff
                if s.is_active
            ]
        }
    if step == 8:
        return {
            "facilities": [
                {
                    "category": f.category,
                    "subcategory": f.subcategory,
                    "item_name": f.item_name,
                    "is_available": f.is_available,
                    "quantity": f.quantity,
                    "condition": f.condition,
                }
                for f in villa.facilities
            ]
        }
    if step == 9:
        photos = db.query(Photo).filter(Photo.villa_id == villa.id).order_by(Photo.sort_order).all()
        out = {
            "photos": [
                {"id": p.id, "category": p.category.value, "file_name": p.file_name, "is_main": p.is_main}
                for p in photos
            ]
        }
        bedrooms_config = get_field_progress(db, villa, 9).get("bedrooms_config")
        if bedrooms_config is not None:
            out["bedrooms_config"] = bedrooms_config
        return out
    if step == 10:
        return {"agreed_to_terms": bool(get_field_progress(db, villa, 10).get("agreed_to_terms"))}
    return {}


def validate_saved_step(db: Session, villa: Villa, step: int) -> ValidationResult:
    """Validate what is stored for a step, e.g. when resuming the wizard."""
    get_step(step)
    data = saved_step_data(db, villa, step, mask=False)
    result = validate_step(step, data)
    if step == 9 and data["photos"] and not any(p["is_main"] for p in data["photos"]):
        result.warnings.append("A main photo is recommended")
    return result


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------


def _refresh_upload_flags(db: Session, villa: Villa, progress: OnboardingProgress) -> None:
    """Documents/photos steps count as done once files exist."""
    if not progress.documents_uploaded:
        has_docs = db.query(Document.id).filter(Document.villa_id == villa.id, Document.is_active.is_(True)).first()
        if has_docs:
            progress.documents_uploaded = True
            log.info("Auto-marking documents as completed for villa %s", villa.id)
    if not progress.photos_uploaded:
        if db.query(Photo.id).filter(Photo.villa_id == villa.id).first():
            progress.photos_uploaded = True
            log.info("Auto-marking photos as completed for villa %s", villa.id)


def _drop_unparseable(villa: Villa, step: int, data: dict) -> dict:
    """Draft data minus the values no column can hold. A bad value inside a list drops the whole list."""
    bad = [key for key, kind in STEP_TYPED_FIELDS.get(step, {}).items() if key in data and not _parses(kind, data[key])]
    if step in STEP_TYPED_LISTS:
        key, fields = STEP_TYPED_LISTS[step]
        entries = data.get(key)
        if isinstance(entries, list) and any(
            isinstance(entry, dict) and not _parses(kind, entry.get(name))
            for entry in entries
            for name, kind in fields.items()
        ):
            bad.append(key)
    if not bad:
        return data
    log.info("Draft of step %s for villa %s not stored on records: %s", step, villa.id, ", ".join(bad))
    return {k: v for k, v in data.items() if k not in bad}


def _unmask_bank(villa: Villa, step: int, data: dict) -> dict:
    """Swap masked bank values echoed back by the wizard for the stored ones."""
    bank = villa.bank_details
    if step != 4 or bank is None:
        return data
    out = dict(data)
    for key in ("account_number", "iban"):
        if is_masked(out.get(key)):
            out[key] = getattr(bank, key)
    return out


def update_step(
    db: Session,
    villa: Villa,
    step: int,
    data: dict | None,
    completed: bool,
    *,
    actor: User | None = None,
    log_ctx: dict | None = None,
) -> OnboardingProgress:
    definition = get_step(step)
    data = data or {}
    skipped = data.get("skipped") is True

    if not skipped:
        result = validate_step(step, _unmask_bank(villa, step, data))
        if completed and not result.is_valid:
            raise StepValidationError(step, result)

    _save_step_data(db, villa, step, data if completed else _drop_unparseable(villa, step, data))
    _record_step_fields(db, villa, step, data, skipped)

    progress = get_or_create_progress(db, villa)
    setattr(progress, definition.completion_field, bool(completed))
    if completed:
        progress.current_step = min(step + 1, TOTAL_STEPS)
    if progress.status == OnboardingStatus.NOT_STARTED:
        progress.status = OnboardingStatus.IN_PROGRESS

    create_log(
        db,
        CATEGORY_ONBOARDING,
        "Step skipped" if skipped else "Step updated",
        f"{definition.title} ({'skipped' if skipped else 'completed' if completed else 'saved as draft'}) "
        f"for {villa.villa_name} ({villa.villa_code}).",
        villa_id=villa.id,
        actor_user_id=actor.id if actor else None,
        actor_email=actor.email if actor else None,
        meta={"step": step, "completed": bool(completed), "skipped": skipped, "fields": sorted(map(str, data))},
        **(log_ctx or {}),
    )
    db.flush()

    maybe_complete_onboarding(db, villa, progress, actor=actor, log_ctx=log_ctx)
    return progress


def maybe_complete_onboarding(
    db: Session,
    villa: Villa,
    progress: OnboardingProgress | None = None,
    *,
    actor: User | None = None,
    log_ctx: dict | None = None,
) -> bool:
    """Complete the onboarding once every step flag is set, whichever write set the last one.
    Returns True when this call completed it."""
    progress = progress or get_or_create_progress(db, villa)
    if progress.status == OnboardingStatus.COMPLETED or len(completed_steps(progress)) < TOTAL_STEPS:
        return False
    complete_onboarding(db, villa, actor=actor, log_ctx=log_ctx)
    return True


def complete_onboarding(
    db: Session,
    villa: Villa,
    *,
    actor: User | None = None,
    log_ctx: dict | None = None,
    require_steps: bool = False,
) -> OnboardingProgress:
    """Mark onboarding COMPLETED and the villa ACTIVE.
    With require_steps, every required step must be complete first."""
    progress = get_or_create_progress(db, villa)
    if require_steps:
        done = set(completed_steps(progress))
        missing = [s.number for s in STEPS if s.required and s.number not in done]
        if missing:
            raise OnboardingError(f"Required steps not completed: {', '.join(map(str, missing))}")
    progress.status = OnboardingStatus.COMPLETED
    progress.completed_at = datetime.now(timezone.utc)
    villa.status = VillaStatus.ACTIVE
    villa.is_active = True
    create_log(
        db,
        CATEGORY_ONBOARDING,
        "Onboarding completed",
        f"Onboarding completed for {villa.villa_name} ({villa.villa_code}); villa is now active.",
        villa_id=villa.id,
        actor_user_id=actor.id if actor else None,
        actor_email=actor.email if actor else None,
        meta={"completed_steps": completed_steps(progress)},
        **(log_ctx or {}),
    )
    db.flush()
    log.info("Villa %s onboarding completed", villa.id)
    return progress


def get_progress(db: Session, villa: Villa) -> dict[str, Any]:
    """Full wizard state for the villa, shaped for OnboardingProgressResponse."""
    progress = get_or_create_progress(db, villa)
    _refresh_upload_flags(db, villa, progress)
    maybe_complete_onboarding(db, villa, progress)
    db.flush()

    done = completed_steps(progress)
    count, total, percentage = step_progress(done)
    validation = validate_saved_step(db, villa, progress.current_step)
    return {
        "villa_id": villa.id,
        "villa_code": villa.villa_code,
        "villa_name": villa.villa_name,
        "current_step": progress.current_step,
        "total_steps": total,
        "status": progress.status,
        "completed_at": progress.completed_at,
        "completed_steps": done,
        "completed_steps_count": count,
        "completion_percentage": percentage,
        "progress_status": progress_status(percentage),
        "current_step_validation": {"step": progress.current_step, **validation.to_dict()},
        "step_details": [
            {
                "step": s.number,
                "key": s.key,
                "title": s.title,
                "required": s.required,
                "completed": s.number in done,
            }
            for s in STEPS
        ],
        "field_progress": _all_field_progress(db, villa),
        "saved_data": {
            s.number: {k: _iso(v) for k, v in saved_step_data(db, villa, s.number).items()} for s in STEPS
        },
    }
