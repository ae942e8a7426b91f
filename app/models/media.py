"""Module D: Villa documents and photos stored in SharePoint."""
from sqlalchemy import Column, Integer, String, Text, Boolean, ForeignKey, Enum as SQLEnum, DateTime, LargeBinary
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base
import enum


class DocumentType(str, enum.Enum):
    PROPERTY_CONTRACT = "PROPERTY_CONTRACT"
    INSURANCE_CERTIFICATE = "INSURANCE_CERTIFICATE"
    PROPERTY_TITLE = "PROPERTY_TITLE"
    TAX_DOCUMENTS = "TAX_DOCUMENTS"
    UTILITY_BILLS = "UTILITY_BILLS"
    MAINTENANCE_RECORDS = "MAINTENANCE_RECORDS"
    MAINTENANCE_CONTRACTS = "MAINTENANCE_CONTRACTS"
    INVENTORY_LIST = "INVENTORY_LIST"
    HOUSE_RULES = "HOUSE_RULES"
    EMERGENCY_CONTACTS = "EMERGENCY_CONTACTS"
    STAFF_CONTRACTS = "STAFF_CONTRACTS"
    LICENSES_PERMITS = "LICENSES_PERMITS"
    FLOOR_PLANS = "FLOOR_PLANS"
    OTHER = "OTHER"


class PhotoCategory(str, enum.Enum):
    EXTERIOR_VIEWS = "EXTERIOR_VIEWS"
    INTERIOR_LIVING_SPACES = "INTERIOR_LIVING_SPACES"
    BEDROOMS = "BEDROOMS"
    BATHROOMS = "BATHROOMS"
    KITCHEN = "KITCHEN"
    DINING_AREAS = "DINING_AREAS"
    POOL_OUTDOOR_AREAS = "POOL_OUTDOOR_AREAS"
    GARDEN_LANDSCAPING = "GARDEN_LANDSCAPING"
    AMENITIES_FACILITIES = "AMENITIES_FACILITIES"
    VIEWS_SURROUNDINGS = "VIEWS_SURROUNDINGS"
    STAFF_AREAS = "STAFF_AREAS"
    UTILITY_AREAS = "UTILITY_AREAS"
    ENTERTAINMENT = "ENTERTAINMENT"
    LOGO = "LOGO"
    FLOOR_PLAN = "FLOOR_PLAN"
    VIDEOS = "VIDEOS"
    DRONE_SHOTS = "DRONE_SHOTS"
    OTHER = "OTHER"


class StorageStatus(str, enum.Enum):
    pending = "pending"  # bytes held in the DB until SharePoint accepts them
    synced = "synced"
    failed = "failed"  # rejected by SharePoint with a non-retryable error


class Document(Base):
    __tablename__ = "documents"

    id = Column(Integer, primary_key=True, index=True)
    villa_id = Column(String(36), ForeignKey("villas.id", ondelete="CASCADE"), nullable=False, index=True)
    document_type = Column(SQLEnum(DocumentType), nullable=False)

    file_name = Column(String(255), nullable=False)
    file_url = Column(String(2000), nullable=True)
    file_size = Column(Integer, nullable=False, default=0)
    mime_type = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)

    storage_status = Column(SQLEnum(StorageStatus), nullable=False, default=StorageStatus.pending)
    storage_error = Column(String(500), nullable=True)
    content = Column(LargeBinary, nullable=True)
    sharepoint_file_id = Column(String(255), nullable=True)
    sharepoint_path = Column(String(1000), nullable=True)

    uploaded_by_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    villa = relationship("Villa", back_populates="documents")


class Photo(Base):
    __tablename__ = "photos"

    id = Column(Integer, primary_key=True, index=True)
    villa_id = Column(String(36), ForeignKey("villas.id", ondelete="CASCADE"), nullable=False, index=True)
    category = Column(SQLEnum(PhotoCategory), nullable=False, default=PhotoCategory.OTHER)
    subfolder = Column(String(100), nullable=True)  # e.g. bedroom name inside Bedrooms/

    file_name = Column(String(255), nullable=False)
    file_url = Column(String(2000), nullable=True)
    file_size = Column(Integer, nullable=False, default=0)
    mime_type = Column(String(100), nullable=False)
    caption = Column(String(500), nullable=True)
    alt_text = Column(String(500), nullable=True)
    is_main = Column(Boolean, nullable=False, default=False)
    sort_order = Column(Integer, nullable=False, default=0)

    storage_status = Column(SQLEnum(StorageStatus), nullable=False, default=StorageStatus.pending)
    storage_error = Column(String(500), nullable=True)
    content = Column(LargeBinary, nullable=True)
    sharepoint_file_id = Column(String(255), nullable=True)
    sharepoint_path = Column(String(1000), nullable=True)

    uploaded_by_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    villa = relationship("Villa", back_populates="photos")
