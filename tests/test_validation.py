import pytest

from app.services.validation import (
    is_valid_email,
    is_valid_iban,
    is_valid_phone,
    is_valid_swift,
    is_valid_url,
    parse_int,
    validate_bank_details,
    validate_contractual_details,
    validate_facilities,
    validate_owner_details,
    validate_ota_credentials,
    validate_photos,
    validate_review_submit,
    validate_staff,
    validate_step,
    validate_villa_information,
)

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

CONTRACT = {
    "contract_start_date": "2026-01-01",
    "contract_type": "EXCLUSIVE",
    "commission_rate": 20,
    "check_in_time": "15:00",
    "check_out_time": "11:00",
    "insurance_provider": "Allianz",
    "cancellation_policy": "MODERATE",
}

BANK = {
    "bank_name": "Bank Central",
    "account_holder_name": "Olive Owner",
    "account_number": "1234567890",
    "currency": "USD",
    "swift_code": "DEUTDEFF",
    "iban": "GB82WEST12345698765432",
}


def test_valid_villa_information_has_no_errors_or_warnings():
    result = validate_villa_information(VILLA)
    assert result.is_valid
    assert result.warnings == []


def test_zero_bedrooms_is_an_error():
    result = validate_villa_information({**VILLA, "bedrooms": 0})
    assert result.errors["bedrooms"] == "At least 1 bedroom is required"


@pytest.mark.parametrize("field", ["bedrooms", "bathrooms"])
def test_more_than_twenty_rooms_is_an_error(field):
    result = validate_villa_information({**VILLA, field: 21})
    assert result.errors[field] == f"Please enter a valid number of {field}"


def test_bedroom_bounds_are_inclusive():
    assert validate_villa_information({**VILLA, "bedrooms": 1}).is_valid
    assert validate_villa_information({**VILLA, "bedrooms": 20}).is_valid


def test_villa_requires_name_address_city_and_type():
    result = validate_villa_information({"bedrooms": 2, "bathrooms": 1, "max_guests": 2})
    assert set(result.errors) == {"villa_name", "villa_address", "villa_city", "property_type"}


def test_villa_links_must_be_urls():
    result = validate_villa_information({**VILLA, "google_maps_link": "maps dot google", "ical_calendar_link": "https://cal.example.com/x.ics"})
    assert result.errors == {"google_maps_link": "Please enter a valid URL"}


def test_villa_warnings_for_missing_description_and_coordinates():
    data = {k: v for k, v in VILLA.items() if k not in ("description", "google_coordinates")}
    result = validate_villa_information(data)
    assert result.is_valid
    assert "Description is recommended for better listing visibility" in result.warnings
    assert "GPS coordinates help with map display" in result.warnings


def test_owner_details_email_and_phone_formats():
    data = {
        "owner_first_name": "Olive",
        "owner_last_name": "Owner",
        "owner_email": "olive.at.example.com",
        "owner_phone": "12-34",
        "owner_address": "1 Road",
        "owner_city": "Denpasar",
        "owner_country": "Indonesia",
    }
    result = validate_owner_details(data)
    assert result.errors == {
        "owner_email": "Please enter a valid email address",
        "owner_phone": "Please enter a valid phone number",
    }
    assert "ID document recommended for verification" in result.warnings


@pytest.mark.parametrize("day", [0, 32, "abc", -1])
def test_payout_day_outside_range_is_an_error(day):
    result = validate_contractual_details({**CONTRACT, "payout_day1": day})
    assert result.errors["payout_day1"] == "Payout day must be between 1 and 31"


@pytest.mark.parametrize("day", [1, 15, 31, "28"])
def test_payout_day_in_range(day):
    assert validate_contractual_details({**CONTRACT, "payout_day2": day}).is_valid


def test_payout_days_are_optional():
    assert validate_contractual_details(CONTRACT).is_valid


def test_commission_rate_limits():
    assert validate_contractual_details({**CONTRACT, "commission_rate": 101}).errors["commission_rate"] == (
        "Commission rate cannot exceed 100%"
    )
    assert "commission_rate" in validate_contractual_details({**CONTRACT, "commission_rate": None}).errors


def test_bank_details_valid():
    result = validate_bank_details(BANK)
    assert result.is_valid
    assert result.warnings == []


def test_iban_rejects_lowercase_without_country_prefix():
    result = validate_bank_details({**BANK, "iban": "12west12345698765432"})
    assert result.errors["iban"] == "Please enter a valid IBAN"


def test_swift_must_be_8_or_11_characters():
    assert validate_bank_details({**BANK, "swift_code": "DEUTDEFF500"}).is_valid
    assert validate_bank_details({**BANK, "swift_code": "DEUT"}).errors["swift_code"] == "Please enter a valid SWIFT code"


def test_missing_swift_is_only_a_warning():
    result = validate_bank_details({**BANK, "swift_code": ""})
    assert result.is_valid
    assert result.warnings == ["SWIFT code recommended for international transfers"]


def test_ota_credentials_need_username_and_password():
    result = validate_ota_credentials({"ota_credentials": [{"platform": "AIRBNB"}, {"username": "ignored"}]})
    assert result.errors == {
        "ota_0_username": "Username required for AIRBNB",
        "ota_0_password": "Password required for AIRBNB",
    }
    assert len(result.warnings) == 1


def test_staff_entries_are_checked():
    result = validate_staff({"staff": [{"first_name": "Ketut", "position": "GARDENER", "email": "nope"}]})
    assert result.errors == {
        "staff[0].last_name": "Staff last name is required",
        "staff[0].email": "Staff email must be valid if provided",
    }


def test_empty_staff_is_a_warning():
    result = validate_staff({})
    assert result.is_valid
    assert result.warnings == ["At least one staff member recommended"]


def test_facilities_warn_about_missing_recommended_categories():
    result = validate_facilities({"facilities": [{"category": "Kitchen_Dining", "item_name": "Oven"}]})
    assert result.is_valid
    assert len(result.warnings) == 2


def test_photos_recommend_three():
    assert validate_photos({"photos": [{}, {}]}).warnings
    assert validate_photos({"photos": [{}, {}, {}]}).warnings == []


def test_review_requires_terms():
    assert validate_review_submit({}).errors == {"agreed_to_terms": "You must agree to the terms and conditions"}
    assert validate_review_submit({"agreed_to_terms": True}).is_valid


def test_validate_step_dispatch_and_unknown_step():
    assert not validate_step(1, {}).is_valid
    assert validate_step(11, {"anything": 1}).is_valid
    assert validate_step(6, None).warnings == ["At least one document is recommended"]


@pytest.mark.parametrize(
    "value,expected",
    [("3 rooms", 3), ("  7", 7), (4.9, 4), ("x", None), (None, None), (True, None)],
)
def test_parse_int(value, expected):
    assert parse_int(value) == expected


def test_format_helpers():
    assert is_valid_email("a@b.co")
    assert not is_valid_email("a@b")
    assert is_valid_phone("+62 (812) 3456-7890")
    assert not is_valid_phone("123456")
    assert is_valid_url("https://example.com/path")
    assert not is_valid_url("example.com")
    assert is_valid_swift("deutdeff")
    assert is_valid_iban("gb82 west 1234 5698 7654 32")
