"""Module C: Onboarding wizard endpoints (progress, per-step save, validation, completion)."""
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_accessible_villa, get_current_user
from app.models.user import User
from app.models.villa import Villa
from app.schemas.onboarding import (
    FieldProgressResponse,
    FieldProgressUpdate,
    OnboardingProgressResponse,
    StartOnboardingRequest,
    StepConfigView,
    StepUpdateRequest,
    StepValidationResponse,
)
from app.services.activity_log import request_context
from app.services.onboarding import (
    OnboardingError,
    StepValidationError,
    complete_onboarding,
    get_field_progress,
    get_progress,
    save_field_progress,
    start_onboarding,
    update_step,
    validate_saved_step,
)
from app.services.steps import STEPS, is_valid_step

router = APIRouter(prefix="/api/onboarding", tags=["onboarding"])

APPROVAL_REMOVED = "Admin approval system has been removed"


def _check_step(step: int) -> None:
    if not is_valid_step(step):
        raise HTTPException(status_code=400, detail="Invalid step number")


@router.get("/steps", response_model=list[StepConfigView])
def list_steps():
    return [StepConfigView(step=s.number, key=s.key, title=s.title, required=s.required) for s in STEPS]


@router.post("/start", response_model=OnboardingProgressResponse, status_code=201)
def start(
    request: Request,
    data: StartOnboardingRequest | None = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    villa_name = data.villa_name if data else "New Villa"
    villa, _ = start_onboarding(db, current_user, villa_name, log_ctx=request_context(request))
    db.commit()
    db.refresh(villa)
    progress = get_progress(db, villa)
    db.commit()
    return progress


@router.get("/{villa_id}", response_model=OnboardingProgressResponse)
def progress(villa: Villa = Depends(get_accessible_villa), db: Session = Depends(get_db)):
    out = get_progress(db, villa)
    db.commit()
    return out


@router.put("/{villa_id}/step", response_model=OnboardingProgressResponse)
def update(
    request: Request,
    data: StepUpdateRequest,
    villa: Villa = Depends(get_accessible_villa),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    _check_step(data.step)
    try:
        update_step(
            db,
            villa,
            data.step,
            data.data,
            data.completed,
            actor=current_user,
            log_ctx=request_context(request),
        )
    except StepValidationError as e:
        db.rollback()
        raise HTTPException(status_code=422, detail={"message": str(e), "errors": e.result.errors})
    except OnboardingError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))
    db.commit()
    db.refresh(villa)
    out = get_progress(db, villa)
    db.commit()
    return out


@router.get("/{villa_id}/validate/{step}", response_model=StepValidationResponse)
def validate(step: int, villa: Villa = Depends(get_accessible_villa), db: Session = Depends(get_db)):
    _check_step(step)
    result = validate_saved_step(db, villa, step)
    return StepValidationResponse(step=step, **result.to_dict())


@router.post("/{villa_id}/complete", response_model=OnboardingProgressResponse)
def complete(
    request: Request,
    villa: Villa = Depends(get_accessible_villa),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        complete_onboarding(db, villa, actor=current_user, log_ctx=request_context(request), require_steps=True)
    except OnboardingError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))
    db.commit()
    db.refresh(villa)
    out = get_progress(db, villa)
    db.commit()
    return out


@router.post("/{villa_id}/submit-review")
def submit_review(villa_id: str):
    raise HTTPException(status_code=410, detail=APPROVAL_REMOVED)


@router.post("/{villa_id}/approve")
def approve(villa_id: str):
    raise HTTPException(status_code=410, detail=APPROVAL_REMOVED)


@router.post("/{villa_id}/reject")
def reject(villa_id: str):
    raise HTTPException(status_code=410, detail=APPROVAL_REMOVED)


@router.put("/{villa_id}/field-progress/{step}/{field_name}", response_model=FieldProgressResponse)
def put_field_progress(
    step: int,
    field_name: str,
    data: FieldProgressUpdate,
    villa: Villa = Depends(get_accessible_villa),
    db: Session = Depends(get_db),
):
    _check_step(step)
    try:
        save_field_progress(db, villa, step, field_name, data.value)
    except OnboardingError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))
    db.commit()
    return FieldProgressResponse(villa_id=villa.id, step=step, fields=get_field_progress(db, villa, step))


@router.get("/{villa_id}/field-progress/{step}", response_model=FieldProgressResponse)
def read_field_progress(step: int, villa: Villa = Depends(get_accessible_villa), db: Session = Depends(get_db)):
    _check_step(step)
    return FieldProgressResponse(villa_id=villa.id, step=step, fields=get_field_progress(db, villa, step))
