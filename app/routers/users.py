"""Module E: Admin user directory (list, filter, role edit)."""
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import require_admin, require_admin_or_manager
from app.models.user import User
from app.schemas.users import RoleUpdateRequest, RoleUpdateResponse, UserListResponse, VillaCountResponse
from app.services.activity_log import CATEGORY_ROLE_CHANGE, create_log, request_context
from app.services.user_directory import (
    VALID_ROLES,
    filter_users,
    get_directory,
    list_directory_users,
    update_user_role,
    villa_count,
)

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("", response_model=UserListResponse)
def list_users(
    search: str | None = None,
    role: str = "all",
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin_or_manager),
):
    users, source = list_directory_users(db, get_directory())
    users = filter_users(users, search=search, role=role)
    return UserListResponse(users=users, total=len(users), source=source)


@router.patch("/{user_id}/role", response_model=RoleUpdateResponse)
def update_role(
    request: Request,
    user_id: str,
    data: RoleUpdateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    role = (data.role or "").strip().lower()
    if role not in VALID_ROLES:
        raise HTTPException(status_code=400, detail="Invalid role specified")
    try:
        mode, local = update_user_role(db, user_id, role, get_directory())
    except LookupError:
        raise HTTPException(status_code=404, detail="User not found")
    message = (
        "User role updated successfully"
        if mode == "clerk"
        else "User role updated locally; the user directory could not be updated"
    )
    create_log(
        db,
        CATEGORY_ROLE_CHANGE,
        "User role changed",
        f"Role of user {local.email if local else user_id} set to {role} ({mode}).",
        actor_user_id=current_user.id,
        actor_email=current_user.email,
        meta={"user_id": user_id, "role": role, "mode": mode},
        **request_context(request),
    )
    db.commit()
    return RoleUpdateResponse(user_id=user_id, role=role, mode=mode, message=message)


@router.get("/{user_id}/villas/count", response_model=VillaCountResponse)
def user_villa_count(
    user_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin_or_manager),
):
    return VillaCountResponse(user_id=user_id, villa_count=villa_count(db, user_id))
