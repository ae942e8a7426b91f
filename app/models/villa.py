"""Module B: Villas, the root entity of onboarding."""
import enum
import uuid

from sqlalchemy import Column, Integer, String, Text, Float, Boolean, ForeignKey, Enum as SQLEnum, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base


class PropertyType(str, enum.Enum):
    VILLA = "VILLA"
    APARTMENT = "APARTMENT"
    PENTHOUSE = "PENTHOUSE"
    TOWNHOUSE = "TOWNHOUSE"
    CHALET = "CHALET"
    BUNGALOW = "BUNGALOW"
    ESTATE = "ESTATE"
    HOUSE = "HOUSE"


class VillaStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    PENDING_REVIEW = "PENDING_REVIEW"
    APPROVED = "APPROVED"
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    ARCHIVED = "ARCHIVED"


def _new_villa_id() -> str:
    return str(uuid.uuid4())


class Villa(Base):
    __tablename__ = "villas"

    id = Column(String(36), primary_key=True, default=_new_villa_id)
    villa_code = Column(String(20), unique=True, nullable=False, index=True)  # VIL0001
    owner_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    villa_name = Column(String(255), nullable=False)
    location = Column(String(255), nullable=True)
    address = Column(String(500), nullable=True)
    city = Column(String(100), nullable=True)
    country = Column(String(100), nullable=True)
    zip_code = Column(String(20), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    bedrooms = Column(Integer, nullable=True)
    bathrooms = Column(Integer, nullable=True)
    max_guests = Column(Integer, nullable=True)
    property_size = Column(Float, nullable=True)  # m2
    plot_size = Column(Float, nullable=True)
    year_built = Column(Integer, nullable=True)
    renovation_year = Column(Integer, nullable=True)
    property_type = Column(SQLEnum(PropertyType), nullable=True)
    villa_style = Column(String(100), nullable=True)
    description = Column(Text, nullable=True)
    short_description = Column(String(500), nullable=True)

    google_maps_link = Column(String(1000), nullable=True)
    old_rates_card_link = Column(String(1000), nullable=True)
    ical_calendar_link = Column(String(1000), nullable=True)

    status = Column(SQLEnum(VillaStatus), nullable=False, default=VillaStatus.DRAFT)
    is_active = Column(Boolean, nullable=False, default=True)

    # Document storage locations, filled when the SharePoint folder tree is created
    sharepoint_path = Column(String(1000), nullable=True)
    documents_path = Column(String(1000), nullable=True)
    photos_path = Column(String(1000), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    owner_user = relationship("User", backref="villas")
    owner = relationship("Owner", back_populates="villa", uselist=False, cascade="all, delete-orphan")
    contractual_details = relationship(
        "ContractualDetails", back_populates="villa", uselist=False, cascade="all, delete-orphan"
    )
    bank_details = relationship("BankDetails", back_populates="villa", uselist=False, cascade="all, delete-orphan")
    ota_credentials = relationship("OTACredentials", back_populates="villa", cascade="all, delete-orphan")
    staff = relationship("Staff", back_populates="villa", cascade="all, delete-orphan")
    facilities = relationship("FacilityChecklist", back_populates="villa", cascade="all, delete-orphan")
    documents = relationship("Document", back_populates="villa", cascade="all, delete-orphan")
    photos = relationship("Photo", back_populates="villa", cascade="all, delete-orphan", order_by="Photo.sort_order")
    onboarding = relationship("OnboardingProgress", back_populates="villa", uselist=False, cascade="all, delete-orphan")
