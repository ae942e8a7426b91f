"""
All SQLAlchemy models. Schema is the source of truth for new DBs.
Base.metadata.create_all() creates every table; no migration scripts needed for fresh installs.
"""
from app.models.user import User
from app.models.villa import Villa
from app.models.owner import Owner, ContractualDetails, BankDetails
from app.models.ota import OTACredentials
from app.models.staff import Staff, FacilityChecklist
from app.models.media import Document, Photo
from app.models.onboarding import OnboardingProgress, StepFieldProgress
from app.models.activity_log import ActivityLog

__all__ = [
    "User",
    "Villa",
    "Owner",
    "ContractualDetails",
    "BankDetails",
    "OTACredentials",
    "Staff",
    "FacilityChecklist",
    "Document",
    "Photo",
    "OnboardingProgress",
    "StepFieldProgress",
    "ActivityLog",
]
