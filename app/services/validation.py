"""Module C1: Onboarding step validation.

Pure functions, one per wizard step, keyed by step number. Each takes the step's
form data (snake_case keys) and returns a ValidationResult: blocking errors keyed
by field name plus non-blocking warnings.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Callable
from urllib.parse import urlparse

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
SWIFT_RE = re.compile(r"^[A-Z]{6}[A-Z0-9]{2}([A-Z0-9]{3})?$")
IBAN_RE = re.compile(r"^[A-Z]{2}[0-9]{2}[A-Z0-9]+$")
_INT_PREFIX_RE = re.compile(r"^\s*([+-]?\d+)")
_FLOAT_PREFIX_RE = re.compile(r"^\s*([+-]?(\d+\.?\d*|\.\d+))")

PHONE_MIN_DIGITS = 7
PHONE_MAX_DIGITS = 15

MIN_ROOMS, MAX_ROOMS = 1, 20
MIN_GUESTS, MAX_GUESTS = 1, 50
MIN_PAYOUT_DAY, MAX_PAYOUT_DAY = 1, 31
MAX_COMMISSION_RATE = 100

RECOMMENDED_FACILITY_CATEGORIES = ("kitchen_dining", "bathrooms", "safety_security")
MIN_RECOMMENDED_PHOTOS = 3


@dataclass
class ValidationResult:
    errors: dict[str, str] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        return {"is_valid": self.is_valid, "errors": dict(self.errors), "warnings": list(self.warnings)}


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def parse_int(value: Any) -> int | None:
    """Leading integer of value ("3 rooms" -> 3); None when nothing parses."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value == value else None  # NaN
    m = _INT_PREFIX_RE.match(str(value))
    return int(m.group(1)) if m else None


def parse_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if value == value else None
    m = _FLOAT_PREFIX_RE.match(str(value))
    return float(m.group(1)) if m else None


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email or ""))


def is_valid_phone(phone: str) -> bool:
    digits = re.sub(r"\D", "", phone or "")
    return PHONE_MIN_DIGITS <= len(digits) <= PHONE_MAX_DIGITS


def is_valid_url(url: str) -> bool:
    try:
        parsed = urlparse((url or "").strip())
    except ValueError:
        return False
    return bool(parsed.scheme and parsed.netloc)


def is_valid_swift(code: str) -> bool:
    """SWIFT/BIC: 8 or 11 characters, case-insensitive."""
    return bool(SWIFT_RE.match((code or "").strip().upper()))


def is_valid_iban(iban: str) -> bool:
    """Structural IBAN check: country letters, two check digits, alphanumeric BBAN."""
    return bool(IBAN_RE.match(re.sub(r"\s", "", iban or "").upper()))


def _check_count(errors: dict[str, str], data: dict, key: str, noun: str, low: int, high: int, missing: str) -> None:
    n = parse_int(data.get(key))
    if not n or n < low:
        errors[key] = missing
    elif n > high:
        errors[key] = f"Please enter a valid number of {noun}"


def validate_villa_information(data: dict) -> ValidationResult:
    result = ValidationResult()
    errors = result.errors
    if not _text(data.get("villa_name")):
        errors["villa_name"] = "Villa name is required"
    if not _text(data.get("villa_address")):
        errors["villa_address"] = "Villa address is required"
    if not _text(data.get("villa_city")):
        errors["villa_city"] = "City is required"

    _check_count(errors, data, "bedrooms", "bedrooms", MIN_ROOMS, MAX_ROOMS, "At least 1 bedroom is required")
    _check_count(errors, data, "bathrooms", "bathrooms", MIN_ROOMS, MAX_ROOMS, "At least 1 bathroom is required")
    _check_count(errors, data, "max_guests", "guests", MIN_GUESTS, MAX_GUESTS, "Maximum guests must be at least 1")

    if not data.get("property_type"):
        errors["property_type"] = "Property type is required"

    for key in ("google_maps_link", "old_rates_card_link", "ical_calendar_link"):
        value = data.get(key)
        if value and not is_valid_url(str(value)):
            errors[key] = "Please enter a valid URL"

    if not _text(data.get("description")):
        result.warnings.append("Description is recommended for better listing visibility")
    has_coords = data.get("latitude") is not None and data.get("longitude") is not None
    if not has_coords and not _text(data.get("google_coordinates")):
        result.warnings.append("GPS coordinates help with map display")
    return result


def validate_owner_details(data: dict) -> ValidationResult:
    result = ValidationResult()
    errors = result.errors
    if not _text(data.get("owner_first_name")):
        errors["owner_first_name"] = "First name is required"
    if not _text(data.get("owner_last_name")):
        errors["owner_last_name"] = "Last name is required"

    email = _text(data.get("owner_email"))
    if not email:
        errors["owner_email"] = "Email is required"
    elif not is_valid_email(email):
        errors["owner_email"] = "Please enter a valid email address"

    phone = _text(data.get("owner_phone"))
    if not phone:
        errors["owner_phone"] = "Phone number is required"
    elif not is_valid_phone(phone):
        errors["owner_phone"] = "Please enter a valid phone number"

    if not _text(data.get("owner_address")):
        errors["owner_address"] = "Address is required"
    if not _text(data.get("owner_city")):
        errors["owner_city"] = "City is required"
    if not _text(data.get("owner_country")):
        errors["owner_country"] = "Country is required"

    if not _text(data.get("passport_number")) and not _text(data.get("id_number")):
        result.warnings.append("ID document recommended for verification")
    return result


def validate_contractual_details(data: dict) -> ValidationResult:
    result = ValidationResult()
    errors = result.errors
    if not data.get("contract_start_date"):
        errors["contract_start_date"] = "Contract start date is required"
    if not data.get("contract_type"):
        errors["contract_type"] = "Contract type is required"

    rate = parse_float(data.get("commission_rate"))
    if rate is None or rate < 0:
        errors["commission_rate"] = "Commission rate is required"
    elif rate > MAX_COMMISSION_RATE:
        errors["commission_rate"] = "Commission rate cannot exceed 100%"

    for key in ("payout_day1", "payout_day2"):
        raw = data.get(key)
        if raw is None or raw == "":
            continue
        day = parse_int(raw)
        if day is None or day < MIN_PAYOUT_DAY or day > MAX_PAYOUT_DAY:
            errors[key] = "Payout day must be between 1 and 31"

    if not data.get("check_in_time"):
        errors["check_in_time"] = "Check-in time is required"
    if not data.get("check_out_time"):
        errors["check_out_time"] = "Check-out time is required"

    if not _text(data.get("insurance_provider")):
        result.warnings.append("Insurance information recommended")
    if not data.get("cancellation_policy"):
        result.warnings.append("Cancellation policy should be defined")
    return result


def validate_bank_details(data: dict) -> ValidationResult:
    result = ValidationResult()
    errors = result.errors
    if not _text(data.get("bank_name")):
        errors["bank_name"] = "Bank name is required"
    if not _text(data.get("account_holder_name")):
        errors["account_holder_name"] = "Account holder name is required"
    if not _text(data.get("account_number")):
        errors["account_number"] = "Account number is required"
    if not data.get("currency"):
        errors["currency"] = "Currency is required"

    swift = _text(data.get("swift_code"))
    if swift and not is_valid_swift(swift):
        errors["swift_code"] = "Please enter a valid SWIFT code"
    iban = _text(data.get("iban"))
    if iban and not is_valid_iban(iban):
        errors["iban"] = "Please enter a valid IBAN"

    if not swift:
        result.warnings.append("SWIFT code recommended for international transfers")
    return result


def validate_ota_credentials(data: dict) -> ValidationResult:
    result = ValidationResult()
    creds = data.get("ota_credentials")
    if not isinstance(creds, list):
        return result
    for i, cred in enumerate(creds):
        if not isinstance(cred, dict) or not cred.get("platform"):
            continue
        platform = cred["platform"]
        if not cred.get("username"):
            result.errors[f"ota_{i}_username"] = f"Username required for {platform}"
        if not cred.get("password"):
            result.errors[f"ota_{i}_password"] = f"Password required for {platform}"
        if not cred.get("property_id") and not cred.get("api_key"):
            result.warnings.append(f"Platform {i + 1}: Property ID or API key recommended for integration")
    return result


def validate_documents(data: dict) -> ValidationResult:
    result = ValidationResult()
    if not data.get("documents"):
        result.warnings.append("At least one document is recommended")
    return result


def validate_staff(data: dict) -> ValidationResult:
    result = ValidationResult()
    staff = data.get("staff")
    if not isinstance(staff, list) or not staff:
        result.warnings.append("At least one staff member recommended")
        return result
    for i, member in enumerate(staff):
        member = member if isinstance(member, dict) else {}
        if not _text(member.get("first_name")):
            result.errors[f"staff[{i}].first_name"] = "Staff first name is required"
        if not _text(member.get("last_name")):
            result.errors[f"staff[{i}].last_name"] = "Staff last name is required"
        if not member.get("position"):
            result.errors[f"staff[{i}].position"] = "Staff position is required"
        email = _text(member.get("email"))
        if email and not is_valid_email(email):
            result.errors[f"staff[{i}].email"] = "Staff email must be valid if provided"
    return result


def validate_facilities(data: dict) -> ValidationResult:
    result = ValidationResult()
    facilities = data.get("facilities")
    if not isinstance(facilities, list) or not facilities:
        return result
    categories = {str(f.get("category") or "").lower() for f in facilities if isinstance(f, dict)}
    for cat in RECOMMENDED_FACILITY_CATEGORIES:
        if cat not in categories:
            result.warnings.append(f"Facilities in category {cat} are recommended")
    return result


def validate_photos(data: dict) -> ValidationResult:
    result = ValidationResult()
    photos = data.get("photos")
    count = len(photos) if isinstance(photos, list) else parse_int(data.get("photo_count")) or 0
    if count < MIN_RECOMMENDED_PHOTOS:
        result.warnings.append("At least 3 photos are recommended for better listing visibility")
    return result


def validate_review_submit(data: dict) -> ValidationResult:
    result = ValidationResult()
    if not data.get("agreed_to_terms"):
        result.errors["agreed_to_terms"] = "You must agree to the terms and conditions"
    return result


STEP_VALIDATORS: dict[int, Callable[[dict], ValidationResult]] = {
    1: validate_villa_information,
    2: validate_owner_details,
    3: validate_contractual_details,
    4: validate_bank_details,
    5: validate_ota_credentials,
    6: validate_documents,
    7: validate_staff,
    8: validate_facilities,
    9: validate_photos,
    10: validate_review_submit,
}


def validate_step(step: int, data: dict | None) -> ValidationResult:
    """Validate one step's form data. Unknown steps are valid."""
    validator = STEP_VALIDATORS.get(step)
    if validator is None:
        return ValidationResult()
    return validator(data or {})
