"""Module B4: Villa staff and facility checklist."""
from sqlalchemy import Column, Integer, String, Text, Float, Boolean, ForeignKey, Enum as SQLEnum, DateTime, Date, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base
import enum


class StaffPosition(str, enum.Enum):
    VILLA_MANAGER = "VILLA_MANAGER"
    HOUSEKEEPER = "HOUSEKEEPER"
    GARDENER = "GARDENER"
    POOL_MAINTENANCE = "POOL_MAINTENANCE"
    SECURITY = "SECURITY"
    CHEF = "CHEF"
    DRIVER = "DRIVER"
    CONCIERGE = "CONCIERGE"
    MAINTENANCE = "MAINTENANCE"
    OTHER = "OTHER"


class StaffDepartment(str, enum.Enum):
    MANAGEMENT = "MANAGEMENT"
    HOUSEKEEPING = "HOUSEKEEPING"
    MAINTENANCE = "MAINTENANCE"
    SECURITY = "SECURITY"
    HOSPITALITY = "HOSPITALITY"
    ADMINISTRATION = "ADMINISTRATION"


class EmploymentType(str, enum.Enum):
    FULL_TIME = "FULL_TIME"
    PART_TIME = "PART_TIME"
    CONTRACT = "CONTRACT"
    SEASONAL = "SEASONAL"
    FREELANCE = "FREELANCE"


class Staff(Base):
    __tablename__ = "staff"

    id = Column(Integer, primary_key=True, index=True)
    villa_id = Column(String(36), ForeignKey("villas.id", ondelete="CASCADE"), nullable=False, index=True)

    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    id_number = Column(String(50), nullable=True)
    nationality = Column(String(100), nullable=True)

    position = Column(SQLEnum(StaffPosition), nullable=False, default=StaffPosition.OTHER)
    department = Column(SQLEnum(StaffDepartment), nullable=False, default=StaffDepartment.ADMINISTRATION)
    employment_type = Column(SQLEnum(EmploymentType), nullable=False, default=EmploymentType.FULL_TIME)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    salary = Column(Float, nullable=True)
    salary_frequency = Column(String(20), nullable=False, default="MONTHLY")
    currency = Column(String(3), nullable=False, default="USD")

    has_accommodation = Column(Boolean, nullable=False, default=False)
    has_meals = Column(Boolean, nullable=False, default=False)
    has_transport = Column(Boolean, nullable=False, default=False)
    has_health_insurance = Column(Boolean, nullable=False, default=False)
    emergency_contact = Column(String(255), nullable=True)
    emergency_phone = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    villa = relationship("Villa", back_populates="staff")


class FacilityChecklist(Base):
    __tablename__ = "facility_checklist"
    __table_args__ = (
        UniqueConstraint("villa_id", "category", "subcategory", "item_name", name="uq_facility_villa_item"),
    )

    id = Column(Integer, primary_key=True, index=True)
    villa_id = Column(String(36), ForeignKey("villas.id", ondelete="CASCADE"), nullable=False, index=True)

    # Free-form: the checklist UI has grown new categories over time
    category = Column(String(50), nullable=False, index=True)
    subcategory = Column(String(100), nullable=False, default="")
    item_name = Column(String(255), nullable=False)
    is_available = Column(Boolean, nullable=False, default=True)
    quantity = Column(Integer, nullable=True)
    condition = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)
    specifications = Column(Text, nullable=True)
    checked_by = Column(String(255), nullable=True)
    last_checked_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    villa = relationship("Villa", back_populates="facilities")
