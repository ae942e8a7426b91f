"""Module E: Villa staff, facilities, OTA credentials and bank details outside the wizard."""
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_accessible_villa, get_current_user
from app.models.ota import OTACredentials
from app.models.staff import FacilityChecklist, Staff
from app.models.user import User
from app.models.villa import Villa
from app.schemas.villa_records import (
    BankDetailsResponse,
    BankDetailsUpdate,
    FacilityCreate,
    FacilityResponse,
    FacilityUpdate,
    OTACredentialResponse,
    StaffResponse,
    StaffUpdate,
)
from app.services.activity_log import request_context
from app.services.onboarding import OnboardingError
from app.services.villa_records import (
    RecordValidationError,
    bank_view,
    delete_facility,
    delete_ota_credentials,
    list_facilities,
    list_ota_credentials,
    list_staff,
    ota_view,
    save_facility,
    set_ota_active,
    set_staff_active,
    update_bank_details,
    update_facility,
    update_staff,
)

router = APIRouter(prefix="/api/villas/{villa_id}", tags=["villa records"])


def _record_error(db: Session, e: OnboardingError) -> HTTPException:
    db.rollback()
    if isinstance(e, RecordValidationError):
        return HTTPException(status_code=422, detail={"message": str(e), "errors": e.result.errors})
    return HTTPException(status_code=400, detail=str(e))


def _villa_staff(db: Session, villa: Villa, staff_id: int) -> Staff:
    member = db.query(Staff).filter(Staff.id == staff_id, Staff.villa_id == villa.id).first()
    if not member:
        raise HTTPException(status_code=404, detail="Staff member not found")
    return member


def _villa_facility(db: Session, villa: Villa, facility_id: int) -> FacilityChecklist:
    row = (
        db.query(FacilityChecklist)
        .filter(FacilityChecklist.id == facility_id, FacilityChecklist.villa_id == villa.id)
        .first()
    )
    if not row:
        raise HTTPException(status_code=404, detail="Facility not found")
    return row


def _villa_ota(db: Session, villa: Villa, credential_id: int) -> OTACredentials:
    cred = (
        db.query(OTACredentials)
        .filter(OTACredentials.id == credential_id, OTACredentials.villa_id == villa.id)
        .first()
    )
    if not cred:
        raise HTTPException(status_code=404, detail="OTA credentials not found")
    return cred


# -- staff --------------------------------------------------------------------


@router.get("/staff", response_model=list[StaffResponse])
def get_staff(
    include_inactive: bool = False,
    villa: Villa = Depends(get_accessible_villa),
    db: Session = Depends(get_db),
):
    return list_staff(db, villa, include_inactive)


@router.put("/staff/{staff_id}", response_model=StaffResponse)
def edit_staff(
    request: Request,
    staff_id: int,
    data: StaffUpdate,
    villa: Villa = Depends(get_accessible_villa),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    member = _villa_staff(db, villa, staff_id)
    try:
        update_staff(
            db, member, data.model_dump(exclude_unset=True), actor=current_user, log_ctx=request_context(request)
        )
    except OnboardingError as e:
        raise _record_error(db, e)
    db.commit()
    db.refresh(member)
    return member


@router.post("/staff/{staff_id}/activate", response_model=StaffResponse)
def activate_staff(
    request: Request,
    staff_id: int,
    villa: Villa = Depends(get_accessible_villa),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    member = set_staff_active(
        db, _villa_staff(db, villa, staff_id), True, actor=current_user, log_ctx=request_context(request)
    )
    db.commit()
    db.refresh(member)
    return member


@router.delete("/staff/{staff_id}", response_model=StaffResponse)
def deactivate_staff(
    request: Request,
    staff_id: int,
    villa: Villa = Depends(get_accessible_villa),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Deactivate rather than delete; the wizard's staff step does the same."""
    member = set_staff_active(
        db, _villa_staff(db, villa, staff_id), False, actor=current_user, log_ctx=request_context(request)
    )
    db.commit()
    db.refresh(member)
    return member


# -- facilities ---------------------------------------------------------------


@router.get("/facilities", response_model=list[FacilityResponse])
def get_facilities(
    category: str | None = None,
    villa: Villa = Depends(get_accessible_villa),
    db: Session = Depends(get_db),
):
    return list_facilities(db, villa, category)


@router.post("/facilities", response_model=FacilityResponse, status_code=201)
def add_facility(
    request: Request,
    data: FacilityCreate,
    villa: Villa = Depends(get_accessible_villa),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        row = save_facility(db, villa, data.model_dump(), actor=current_user, log_ctx=request_context(request))
    except OnboardingError as e:
        raise _record_error(db, e)
    db.commit()
    db.refresh(row)
    return row


@router.put("/facilities/{facility_id}", response_model=FacilityResponse)
def edit_facility(
    request: Request,
    facility_id: int,
    data: FacilityUpdate,
    villa: Villa = Depends(get_accessible_villa),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    row = update_facility(
        db,
        villa,
        _villa_facility(db, villa, facility_id),
        data.model_dump(exclude_unset=True),
        actor=current_user,
        log_ctx=request_context(request),
    )
    db.commit()
    db.refresh(row)
    return row


@router.delete("/facilities/{facility_id}", status_code=204)
def remove_facility(
    request: Request,
    facility_id: int,
    villa: Villa = Depends(get_accessible_villa),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    delete_facility(db, _villa_facility(db, villa, facility_id), actor=current_user, log_ctx=request_context(request))
    db.commit()


# -- OTA credentials ----------------------------------------------------------


@router.get("/ota-credentials", response_model=list[OTACredentialResponse])
def get_ota_credentials(villa: Villa = Depends(get_accessible_villa), db: Session = Depends(get_db)):
    return [ota_view(c) for c in list_ota_credentials(db, villa)]


@router.post("/ota-credentials/{credential_id}/activate", response_model=OTACredentialResponse)
def activate_ota(
    request: Request,
    credential_id: int,
    villa: Villa = Depends(get_accessible_villa),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    cred = set_ota_active(
        db, _villa_ota(db, villa, credential_id), True, actor=current_user, log_ctx=request_context(request)
    )
    db.commit()
    db.refresh(cred)
    return ota_view(cred)


@router.post("/ota-credentials/{credential_id}/deactivate", response_model=OTACredentialResponse)
def deactivate_ota(
    request: Request,
    credential_id: int,
    villa: Villa = Depends(get_accessible_villa),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    cred = set_ota_active(
        db, _villa_ota(db, villa, credential_id), False, actor=current_user, log_ctx=request_context(request)
    )
    db.commit()
    db.refresh(cred)
    return ota_view(cred)


@router.delete("/ota-credentials/{credential_id}", status_code=204)
def remove_ota(
    request: Request,
    credential_id: int,
    villa: Villa = Depends(get_accessible_villa),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    delete_ota_credentials(
        db, _villa_ota(db, villa, credential_id), actor=current_user, log_ctx=request_context(request)
    )
    db.commit()


# -- bank details -------------------------------------------------------------


@router.get("/bank-details", response_model=BankDetailsResponse)
def get_bank_details(villa: Villa = Depends(get_accessible_villa), db: Session = Depends(get_db)):
    out = bank_view(db, villa)
    if out is None:
        raise HTTPException(status_code=404, detail="Bank details not found")
    return out


@router.put("/bank-details", response_model=BankDetailsResponse)
def edit_bank_details(
    request: Request,
    data: BankDetailsUpdate,
    villa: Villa = Depends(get_accessible_villa),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        out = update_bank_details(
            db, villa, data.model_dump(exclude_unset=True), actor=current_user, log_ctx=request_context(request)
        )
    except OnboardingError as e:
        raise _record_error(db, e)
    db.commit()
    return out
