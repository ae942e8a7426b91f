"""Module F: Dashboard stats and activity feed."""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_user
from app.models.activity_log import ActivityLog
from app.models.onboarding import OnboardingProgress, OnboardingStatus
from app.models.user import User, STAFF_SIDE_ROLES
from app.models.villa import Villa, VillaStatus
from app.schemas.dashboard import ActivityLogEntry, DashboardStats
from app.services.media import pending_upload_count
from app.services.steps import completed_steps, step_progress
from app.services.villas import can_access_villa, visible_villas

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("/stats", response_model=DashboardStats)
def stats(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    villas = visible_villas(db, current_user).all()
    by_status = {s.value: 0 for s in VillaStatus}
    for v in villas:
        by_status[v.status.value] += 1

    ids = [v.id for v in villas]
    progresses = db.query(OnboardingProgress).filter(OnboardingProgress.villa_id.in_(ids)).all() if ids else []
    percentages = [step_progress(completed_steps(p))[2] for p in progresses]
    completed = sum(1 for p in progresses if p.status == OnboardingStatus.COMPLETED)
    in_progress = sum(1 for p in progresses if p.status == OnboardingStatus.IN_PROGRESS)

    return DashboardStats(
        total_villas=len(villas),
        villas_by_status=by_status,
        onboarding_completed=completed,
        onboarding_in_progress=in_progress,
        average_completion_percentage=round(sum(percentages) / len(percentages)) if percentages else 0,
        # Sync backlog is global; only staff-side users see it
        pending_uploads=pending_upload_count(db) if current_user.role in STAFF_SIDE_ROLES else 0,
    )


@router.get("/activity", response_model=list[ActivityLogEntry])
def activity(
    villa_id: str | None = None,
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Newest first. Owners see entries for their own villas only."""
    q = db.query(ActivityLog)
    if villa_id:
        villa = db.query(Villa).filter(Villa.id == villa_id).first()
        if not villa:
            raise HTTPException(status_code=404, detail="Villa not found")
        if not can_access_villa(current_user, villa):
            raise HTTPException(status_code=403, detail="You do not have access to this villa")
        q = q.filter(ActivityLog.villa_id == villa_id)
    elif current_user.role not in STAFF_SIDE_ROLES:
        q = q.filter(ActivityLog.villa_id.in_(select(Villa.id).where(Villa.owner_user_id == current_user.id)))
    return q.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc()).limit(limit).all()
