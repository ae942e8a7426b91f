"""Module B2: Villa owner, contract and bank records (one of each per villa)."""
from sqlalchemy import Column, Integer, String, Text, Float, Boolean, ForeignKey, Enum as SQLEnum, DateTime, Date
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base, EncryptedString
import enum


class OwnerType(str, enum.Enum):
    INDIVIDUAL = "INDIVIDUAL"
    COMPANY = "COMPANY"


class ContractType(str, enum.Enum):
    EXCLUSIVE = "EXCLUSIVE"
    NON_EXCLUSIVE = "NON_EXCLUSIVE"
    SEASONAL = "SEASONAL"
    LONG_TERM = "LONG_TERM"


class PaymentSchedule(str, enum.Enum):
    WEEKLY = "WEEKLY"
    BIWEEKLY = "BIWEEKLY"
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    ANNUALLY = "ANNUALLY"


class CancellationPolicy(str, enum.Enum):
    FLEXIBLE = "FLEXIBLE"
    MODERATE = "MODERATE"
    STRICT = "STRICT"
    SUPER_STRICT = "SUPER_STRICT"
    NON_REFUNDABLE = "NON_REFUNDABLE"


class Owner(Base):
    __tablename__ = "owners"

    id = Column(Integer, primary_key=True, index=True)
    villa_id = Column(String(36), ForeignKey("villas.id", ondelete="CASCADE"), unique=True, nullable=False)

    owner_type = Column(SQLEnum(OwnerType), nullable=False, default=OwnerType.INDIVIDUAL)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)
    phone_country_code = Column(String(5), nullable=True)  # ISO, e.g. ID
    phone_dial_code = Column(String(8), nullable=True)  # e.g. +62
    alternative_phone = Column(String(50), nullable=True)
    nationality = Column(String(100), nullable=True)
    passport_number = Column(String(50), nullable=True)
    id_number = Column(String(50), nullable=True)
    address = Column(String(500), nullable=True)
    city = Column(String(100), nullable=True)
    country = Column(String(100), nullable=True)
    zip_code = Column(String(20), nullable=True)

    company_name = Column(String(255), nullable=True)
    company_address = Column(String(500), nullable=True)
    company_tax_id = Column(String(100), nullable=True)
    company_vat = Column(String(100), nullable=True)

    manager_name = Column(String(255), nullable=True)
    manager_email = Column(String(255), nullable=True)
    manager_phone = Column(String(50), nullable=True)

    preferred_language = Column(String(10), nullable=True, default="en")
    communication_preference = Column(String(20), nullable=True, default="EMAIL")
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    villa = relationship("Villa", back_populates="owner")


class ContractualDetails(Base):
    __tablename__ = "contractual_details"

    id = Column(Integer, primary_key=True, index=True)
    villa_id = Column(String(36), ForeignKey("villas.id", ondelete="CASCADE"), unique=True, nullable=False)

    contract_start_date = Column(Date, nullable=False)
    contract_end_date = Column(Date, nullable=True)
    contract_type = Column(SQLEnum(ContractType), nullable=False)
    commission_rate = Column(Float, nullable=False, default=0)  # percent
    management_fee = Column(Float, nullable=True)
    marketing_fee = Column(Float, nullable=True)
    payment_terms = Column(Text, nullable=True)
    payment_schedule = Column(SQLEnum(PaymentSchedule), nullable=False, default=PaymentSchedule.MONTHLY)
    minimum_stay_nights = Column(Integer, nullable=False, default=1)
    cancellation_policy = Column(SQLEnum(CancellationPolicy), nullable=False, default=CancellationPolicy.MODERATE)
    check_in_time = Column(String(5), nullable=False, default="15:00")
    check_out_time = Column(String(5), nullable=False, default="11:00")

    # Day of month (1-31) for owner payouts
    payout_day1 = Column(Integer, nullable=True)
    payout_day2 = Column(Integer, nullable=True)

    vat_registration_number = Column(String(100), nullable=True)
    vat_payment_terms = Column(String(255), nullable=True)
    payment_through_ipl = Column(Boolean, nullable=False, default=False)

    insurance_provider = Column(String(255), nullable=True)
    insurance_policy_number = Column(String(100), nullable=True)
    insurance_expiry = Column(Date, nullable=True)
    special_terms = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    villa = relationship("Villa", back_populates="contractual_details")


class BankDetails(Base):
    __tablename__ = "bank_details"

    id = Column(Integer, primary_key=True, index=True)
    villa_id = Column(String(36), ForeignKey("villas.id", ondelete="CASCADE"), unique=True, nullable=False)

    account_holder_name = Column(String(255), nullable=False)
    bank_name = Column(String(255), nullable=False)
    account_number = Column(EncryptedString, nullable=False)
    iban = Column(EncryptedString, nullable=True)
    swift_code = Column(String(11), nullable=True)
    branch_name = Column(String(255), nullable=True)
    branch_code = Column(String(50), nullable=True)
    branch_address = Column(String(500), nullable=True)
    bank_address = Column(String(500), nullable=True)
    bank_country = Column(String(100), nullable=True)
    currency = Column(String(3), nullable=False, default="USD")
    account_type = Column(String(20), nullable=True)  # CHECKING | SAVINGS | BUSINESS
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    villa = relationship("Villa", back_populates="bank_details")
