"""Shared dependencies: DB session, current user, role guards, villa access."""
from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from app.database import get_db
from app.models.user import User, UserRole, STAFF_SIDE_ROLES
from app.models.villa import Villa
from app.services.auth import decode_token_with_error
from app.services.villas import can_access_villa

security = HTTPBearer(auto_error=False)


def get_current_user(
    db: Session = Depends(get_db),
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> User:
    if not credentials:
        raise HTTPException(status_code=401, detail="Not authenticated")
    token_str = (credentials.credentials or "").strip()
    payload, _ = decode_token_with_error(token_str)
    if not payload:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid token")
    user = db.query(User).filter(User.id == user_id).first()
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found")
    return user


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != UserRole.admin:
        raise HTTPException(status_code=403, detail="Admin role required")
    return current_user


def require_admin_or_manager(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role not in STAFF_SIDE_ROLES:
        raise HTTPException(status_code=403, detail="Admin or manager role required")
    return current_user


def get_accessible_villa(
    villa_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Villa:
    """Villa from the path, if the caller owns it or is admin/manager."""
    villa = db.query(Villa).filter(Villa.id == villa_id).first()
    if not villa:
        raise HTTPException(status_code=404, detail="Villa not found")
    if not can_access_villa(current_user, villa):
        raise HTTPException(status_code=403, detail="You do not have access to this villa")
    return villa
