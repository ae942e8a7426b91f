"""Module C2: The ten onboarding wizard steps and progress arithmetic."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

TOTAL_STEPS = 10


@dataclass(frozen=True)
class StepDefinition:
    number: int
    key: str
    title: str
    required: bool
    completion_field: str  # boolean column on OnboardingProgress


STEPS: tuple[StepDefinition, ...] = (
    StepDefinition(1, "villa_info", "Villa Information", True, "villa_info_completed"),
    StepDefinition(2, "owner_details", "Owner Details", True, "owner_details_completed"),
    StepDefinition(3, "contractual_details", "Contractual Details", True, "contractual_details_completed"),
    StepDefinition(4, "bank_details", "Bank Details", True, "bank_details_completed"),
    StepDefinition(5, "ota_credentials", "OTA Credentials", False, "ota_credentials_completed"),
    StepDefinition(6, "documents", "Documents", False, "documents_uploaded"),
    StepDefinition(7, "staff", "Staff", False, "staff_config_completed"),
    StepDefinition(8, "facilities", "Facilities", False, "facilities_completed"),
    StepDefinition(9, "photos", "Photos", False, "photos_uploaded"),
    StepDefinition(10, "review", "Review & Submit", True, "review_completed"),
)

_BY_NUMBER = {s.number: s for s in STEPS}

# Lower bounds, checked in order
_STATUS_THRESHOLDS = (
    (100, "COMPLETED"),
    (90, "READY_FOR_REVIEW"),
    (70, "MOSTLY_COMPLETE"),
    (50, "IN_PROGRESS"),
    (20, "STARTED"),
)


def is_valid_step(step: int) -> bool:
    return step in _BY_NUMBER


def get_step(step: int) -> StepDefinition:
    try:
        return _BY_NUMBER[step]
    except KeyError:
        raise ValueError(f"Invalid step number: {step}. Must be between 1 and {TOTAL_STEPS}.") from None


def completed_steps(progress) -> list[int]:
    """Step numbers whose completion flag is set on an OnboardingProgress row."""
    return [s.number for s in STEPS if getattr(progress, s.completion_field, False)]


def step_progress(completed: Iterable[int]) -> tuple[int, int, int]:
    """(completed_count, total, percentage) for the given completed step numbers."""
    count = len({n for n in completed if n in _BY_NUMBER})
    return count, TOTAL_STEPS, round(count / TOTAL_STEPS * 100)


def progress_status(percentage: int) -> str:
    for floor, label in _STATUS_THRESHOLDS:
        if percentage >= floor:
            return label
    return "NOT_STARTED"
