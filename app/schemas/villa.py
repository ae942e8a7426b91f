"""Module B: Villa schemas."""
from datetime import datetime
from pydantic import BaseModel, Field
from app.models.villa import PropertyType, VillaStatus


class VillaCreate(BaseModel):
    villa_name: str = Field(min_length=1, max_length=255)
    location: str | None = None
    address: str | None = None
    city: str | None = None
    country: str | None = None
    zip_code: str | None = None
    bedrooms: int | None = Field(default=None, ge=1, le=20)
    bathrooms: int | None = Field(default=None, ge=1, le=20)
    max_guests: int | None = Field(default=None, ge=1, le=50)
    property_type: PropertyType | None = None
    description: str | None = None


class VillaUpdate(BaseModel):
    """All optional; only provided fields are updated."""
    villa_name: str | None = Field(default=None, min_length=1, max_length=255)
    location: str | None = None
    address: str | None = None
    city: str | None = None
    country: str | None = None
    zip_code: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    bedrooms: int | None = Field(default=None, ge=1, le=20)
    bathrooms: int | None = Field(default=None, ge=1, le=20)
    max_guests: int | None = Field(default=None, ge=1, le=50)
    property_size: float | None = None
    plot_size: float | None = None
    year_built: int | None = None
    renovation_year: int | None = None
    property_type: PropertyType | None = None
    villa_style: str | None = None
    description: str | None = None
    short_description: str | None = None
    google_maps_link: str | None = None
    old_rates_card_link: str | None = None
    ical_calendar_link: str | None = None

    class Config:
        # status only changes through onboarding completion and archiving
        extra = "forbid"


class VillaResponse(BaseModel):
    id: str
    villa_code: str
    owner_user_id: int | None
    villa_name: str
    location: str | None
    address: str | None
    city: str | None
    country: str | None
    zip_code: str | None
    latitude: float | None
    longitude: float | None
    bedrooms: int | None
    bathrooms: int | None
    max_guests: int | None
    property_size: float | None
    plot_size: float | None
    year_built: int | None
    renovation_year: int | None
    property_type: PropertyType | None
    villa_style: str | None
    description: str | None
    short_description: str | None
    google_maps_link: str | None
    old_rates_card_link: str | None
    ical_calendar_link: str | None
    status: VillaStatus
    is_active: bool
    sharepoint_path: str | None
    documents_path: str | None
    photos_path: str | None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True
