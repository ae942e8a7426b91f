"""Module E: Staff, facility, OTA credential and bank detail schemas."""
from datetime import date, datetime
from pydantic import BaseModel, Field
from app.models.ota import OTAPlatform, SyncStatus
from app.models.staff import EmploymentType, StaffDepartment, StaffPosition


class StaffResponse(BaseModel):
    id: int
    villa_id: str
    first_name: str
    last_name: str
    email: str | None
    phone: str | None
    position: StaffPosition
    department: StaffDepartment
    employment_type: EmploymentType
    nationality: str | None
    id_number: str | None
    start_date: date | None
    salary: float | None
    currency: str
    has_accommodation: bool
    has_meals: bool
    has_transport: bool
    has_health_insurance: bool
    emergency_contact: str | None
    emergency_phone: str | None
    notes: str | None
    is_active: bool

    class Config:
        from_attributes = True


class StaffUpdate(BaseModel):
    """Only provided fields change. Enum values are matched case-insensitively."""
    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = Field(default=None, min_length=1, max_length=100)
    email: str | None = None
    phone: str | None = None
    position: str | None = None
    department: str | None = None
    employment_type: str | None = None
    nationality: str | None = None
    id_number: str | None = None
    start_date: date | None = None
    salary: float | None = Field(default=None, ge=0)
    currency: str | None = Field(default=None, max_length=3)
    has_accommodation: bool | None = None
    has_meals: bool | None = None
    has_transport: bool | None = None
    has_health_insurance: bool | None = None
    emergency_contact: str | None = None
    emergency_phone: str | None = None
    notes: str | None = None

    class Config:
        extra = "forbid"


class FacilityCreate(BaseModel):
    category: str = Field(min_length=1, max_length=50)
    subcategory: str = Field(default="", max_length=100)
    item_name: str = Field(min_length=1, max_length=255)
    quantity: int | None = Field(default=None, ge=0)
    condition: str | None = Field(default=None, max_length=50)
    notes: str | None = None
    specifications: str | None = None
    checked_by: str | None = None


class FacilityUpdate(BaseModel):
    quantity: int | None = Field(default=None, ge=0)
    condition: str | None = Field(default=None, max_length=50)
    notes: str | None = None
    specifications: str | None = None
    checked_by: str | None = None

    class Config:
        extra = "forbid"


class FacilityResponse(BaseModel):
    id: int
    villa_id: str
    category: str
    subcategory: str
    item_name: str
    is_available: bool
    quantity: int | None
    condition: str | None
    notes: str | None
    specifications: str | None
    checked_by: str | None
    last_checked_at: datetime | None

    class Config:
        from_attributes = True


class OTACredentialResponse(BaseModel):
    """password, api_key and api_secret are masked."""
    id: int
    villa_id: str
    platform: OTAPlatform
    property_id: str | None
    username: str | None
    password: str | None
    api_key: str | None
    api_secret: str | None
    account_url: str | None
    listing_url: str | None
    property_url: str | None
    is_active: bool
    sync_status: SyncStatus
    last_sync_at: datetime | None


class BankDetailsResponse(BaseModel):
    """account_number and iban are masked."""
    account_holder_name: str
    bank_name: str
    account_number: str
    iban: str | None
    swift_code: str | None
    currency: str
    branch_name: str | None
    branch_code: str | None
    branch_address: str | None
    bank_address: str | None
    bank_country: str | None
    account_type: str | None
    bank_notes: str | None


class BankDetailsUpdate(BaseModel):
    """Only provided fields change; masked values sent back keep the stored ones."""
    account_holder_name: str | None = None
    bank_name: str | None = None
    account_number: str | None = None
    iban: str | None = None
    swift_code: str | None = None
    currency: str | None = None
    branch_name: str | None = None
    branch_code: str | None = None
    branch_address: str | None = None
    bank_address: str | None = None
    bank_country: str | None = None
    account_type: str | None = None
    bank_notes: str | None = None

    class Config:
        extra = "forbid"
