from app.schemas.auth import Token, UserCreate, UserLogin, UserResponse
from app.schemas.villa import VillaCreate, VillaUpdate, VillaResponse
from app.schemas.onboarding import OnboardingProgressResponse, StepUpdateRequest, StepValidationResponse
from app.schemas.users import DirectoryUser, UserListResponse, RoleUpdateRequest, RoleUpdateResponse
from app.schemas.media import DocumentResponse, PhotoResponse, PhotoBatchResult, SharePointFile
from app.schemas.dashboard import ActivityLogEntry, DashboardStats
from app.schemas.villa_records import (
    StaffResponse, StaffUpdate, FacilityCreate, FacilityUpdate, FacilityResponse,
    OTACredentialResponse, BankDetailsResponse, BankDetailsUpdate,
)
