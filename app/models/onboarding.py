"""Module C: Onboarding progress (wizard state per villa, autosaved field values)."""
from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, Enum as SQLEnum, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base, JSONType
import enum


class OnboardingStatus(str, enum.Enum):
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class FieldStatus(str, enum.Enum):
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    SKIPPED = "SKIPPED"
    BLOCKED = "BLOCKED"
    ERROR = "ERROR"


class OnboardingProgress(Base):
    __tablename__ = "onboarding_progress"

    id = Column(Integer, primary_key=True, index=True)
    villa_id = Column(String(36), ForeignKey("villas.id", ondelete="CASCADE"), unique=True, nullable=False)

    current_step = Column(Integer, nullable=False, default=1)
    total_steps = Column(Integer, nullable=False, default=10)

    # One flag per wizard step, in step order (see app.services.steps)
    villa_info_completed = Column(Boolean, nullable=False, default=False)
    owner_details_completed = Column(Boolean, nullable=False, default=False)
    contractual_details_completed = Column(Boolean, nullable=False, default=False)
    bank_details_completed = Column(Boolean, nullable=False, default=False)
    ota_credentials_completed = Column(Boolean, nullable=False, default=False)
    documents_uploaded = Column(Boolean, nullable=False, default=False)
    staff_config_completed = Column(Boolean, nullable=False, default=False)
    facilities_completed = Column(Boolean, nullable=False, default=False)
    photos_uploaded = Column(Boolean, nullable=False, default=False)
    review_completed = Column(Boolean, nullable=False, default=False)

    status = Column(SQLEnum(OnboardingStatus), nullable=False, default=OnboardingStatus.NOT_STARTED)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    villa = relationship("Villa", back_populates="onboarding")


class StepFieldProgress(Base):
    __tablename__ = "step_field_progress"
    __table_args__ = (UniqueConstraint("villa_id", "step", "field_name", name="uq_step_field_progress"),)

    id = Column(Integer, primary_key=True, index=True)
    villa_id = Column(String(36), ForeignKey("villas.id", ondelete="CASCADE"), nullable=False, index=True)
    step = Column(Integer, nullable=False)
    field_name = Column(String(100), nullable=False)
    value = Column(JSONType, nullable=True)
    status = Column(SQLEnum(FieldStatus), nullable=False, default=FieldStatus.NOT_STARTED)
    is_valid = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
