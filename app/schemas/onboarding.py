"""Module C: Onboarding wizard schemas."""
from datetime import datetime
from typing import Any
from pydantic import BaseModel, Field
from app.models.onboarding import OnboardingStatus


class StartOnboardingRequest(BaseModel):
    villa_name: str = Field(default="New Villa", max_length=255)


class StepUpdateRequest(BaseModel):
    """Step range is checked in the endpoint so callers get 400, not 422."""
    step: int
    data: dict[str, Any] = {}
    completed: bool = False


class FieldProgressUpdate(BaseModel):
    value: Any = None


class StepValidationResponse(BaseModel):
    step: int
    is_valid: bool
    errors: dict[str, str] = {}
    warnings: list[str] = []


class StepConfigView(BaseModel):
    step: int
    key: str
    title: str
    required: bool


class StepDetail(StepConfigView):
    completed: bool


class OnboardingProgressResponse(BaseModel):
    villa_id: str
    villa_code: str
    villa_name: str
    current_step: int
    total_steps: int
    status: OnboardingStatus
    completed_at: datetime | None = None
    completed_steps: list[int]
    completed_steps_count: int
    completion_percentage: int
    progress_status: str  # NOT_STARTED .. COMPLETED, from completion_percentage
    current_step_validation: StepValidationResponse
    step_details: list[StepDetail]
    field_progress: dict[int, dict[str, Any]] = {}
    # Saved records per step (secrets masked), used by the review step
    saved_data: dict[int, dict[str, Any]] = {}


class FieldProgressResponse(BaseModel):
    villa_id: str
    step: int
    fields: dict[str, Any]
