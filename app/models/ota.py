"""Module B3: OTA (online travel agency) listing credentials."""
from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, Enum as SQLEnum, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base, EncryptedString
import enum


class OTAPlatform(str, enum.Enum):
    BOOKING_COM = "BOOKING_COM"
    AIRBNB = "AIRBNB"
    VRBO = "VRBO"
    EXPEDIA = "EXPEDIA"
    AGODA = "AGODA"
    HOTELS_COM = "HOTELS_COM"
    TRIPADVISOR = "TRIPADVISOR"
    HOMEAWAY = "HOMEAWAY"
    FLIPKEY = "FLIPKEY"
    DIRECT = "DIRECT"


class SyncStatus(str, enum.Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    PARTIAL = "PARTIAL"


class OTACredentials(Base):
    __tablename__ = "ota_credentials"
    __table_args__ = (UniqueConstraint("villa_id", "platform", name="uq_ota_credentials_villa_platform"),)

    id = Column(Integer, primary_key=True, index=True)
    villa_id = Column(String(36), ForeignKey("villas.id", ondelete="CASCADE"), nullable=False, index=True)
    platform = Column(SQLEnum(OTAPlatform), nullable=False)

    property_id = Column(String(100), nullable=True)  # listing id on the platform
    username = Column(EncryptedString, nullable=True)
    password = Column(EncryptedString, nullable=True)
    api_key = Column(EncryptedString, nullable=True)
    api_secret = Column(EncryptedString, nullable=True)
    account_url = Column(String(1000), nullable=True)
    listing_url = Column(String(1000), nullable=True)
    property_url = Column(String(1000), nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)
    sync_status = Column(SQLEnum(SyncStatus), nullable=False, default=SyncStatus.PENDING)
    last_sync_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    villa = relationship("Villa", back_populates="ota_credentials")
