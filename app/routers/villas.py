"""Module B: Villas (create, list, get, update, archive)."""
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_accessible_villa, get_current_user
from app.models.user import User
from app.models.villa import Villa, VillaStatus
from app.schemas.villa import VillaCreate, VillaResponse, VillaUpdate
from app.services.activity_log import CATEGORY_ONBOARDING, create_log, request_context
from app.services.villas import apply_villa_filters, create_villa, visible_villas

router = APIRouter(prefix="/api/villas", tags=["villas"])


@router.post("", response_model=VillaResponse, status_code=201)
def create(
    request: Request,
    data: VillaCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    fields = data.model_dump(exclude={"villa_name"}, exclude_none=True)
    villa = create_villa(db, current_user, data.villa_name, **fields)
    create_log(
        db,
        CATEGORY_ONBOARDING,
        "Villa created",
        f"Villa {villa.villa_name} ({villa.villa_code}) created.",
        villa_id=villa.id,
        actor_user_id=current_user.id,
        actor_email=current_user.email,
        **request_context(request),
    )
    db.commit()
    db.refresh(villa)
    return villa


@router.get("", response_model=list[VillaResponse])
def list_villas(
    status: VillaStatus | None = None,
    search: str | None = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    q = apply_villa_filters(visible_villas(db, current_user), status=status, search=search)
    return q.order_by(Villa.created_at.desc(), Villa.villa_code.desc()).offset(skip).limit(limit).all()


@router.get("/{villa_id}", response_model=VillaResponse)
def get_villa(villa: Villa = Depends(get_accessible_villa)):
    return villa


@router.put("/{villa_id}", response_model=VillaResponse)
def update_villa(
    data: VillaUpdate,
    villa: Villa = Depends(get_accessible_villa),
    db: Session = Depends(get_db),
):
    for key, value in data.model_dump(exclude_unset=True).items():
        if key == "villa_name" and not (value or "").strip():
            continue
        setattr(villa, key, value)
    db.commit()
    db.refresh(villa)
    return villa


@router.delete("/{villa_id}", response_model=VillaResponse)
def archive_villa(
    request: Request,
    villa: Villa = Depends(get_accessible_villa),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Archive rather than delete; documents and history stay attached."""
    villa.status = VillaStatus.ARCHIVED
    villa.is_active = False
    create_log(
        db,
        CATEGORY_ONBOARDING,
        "Villa archived",
        f"Villa {villa.villa_name} ({villa.villa_code}) archived.",
        villa_id=villa.id,
        actor_user_id=current_user.id,
        actor_email=current_user.email,
        **request_context(request),
    )
    db.commit()
    db.refresh(villa)
    return villa
