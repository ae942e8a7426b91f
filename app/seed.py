"""Module A: Seed the bootstrap admin account from ADMIN_EMAIL / ADMIN_PASSWORD."""
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.config import get_settings
from app.models.user import User, UserRole
from app.services.auth import get_password_hash


def seed_admin_user(db: Session) -> User | None:
    """Create the admin, or promote an existing account with that email. No-op when unset."""
    settings = get_settings()
    email = (settings.admin_email or "").strip().lower()
    if not email or not settings.admin_password:
        return None
    user = db.query(User).filter(func.lower(User.email) == email).first()
    if user is None:
        user = User(
            email=email,
            hashed_password=get_password_hash(settings.admin_password),
            role=UserRole.admin,
            first_name="Admin",
            is_active=True,
        )
        db.add(user)
    elif user.role != UserRole.admin:
        user.role = UserRole.admin
    else:
        return user
    db.commit()
    db.refresh(user)
    return user
