"""Module A: Authentication (local JWT accounts)."""
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_user
from app.models.user import User, UserRole
from app.schemas.auth import Token, UserCreate, UserLogin, UserResponse
from app.services.activity_log import CATEGORY_AUTH, create_log, request_context
from app.services.auth import create_access_token, get_password_hash, verify_password

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", response_model=Token)
def register(data: UserCreate, db: Session = Depends(get_db)):
    email = data.email.strip().lower()
    if db.query(User).filter(func.lower(User.email) == email).first():
        raise HTTPException(status_code=400, detail="An account with this email already exists")
    user = User(
        email=email,
        hashed_password=get_password_hash(data.password),
        role=UserRole.owner,
        first_name=(data.first_name or "").strip() or None,
        last_name=(data.last_name or "").strip() or None,
        phone=(data.phone or "").strip() or None,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    token = create_access_token(user.id, user.email, user.role)
    return Token(access_token=token, user=UserResponse.model_validate(user))


@router.post("/login", response_model=Token)
def login(request: Request, data: UserLogin, db: Session = Depends(get_db)):
    email = data.email.strip().lower()
    user = db.query(User).filter(func.lower(User.email) == email).first()
    if not user or not user.is_active or not verify_password(data.password, user.hashed_password):
        create_log(
            db,
            CATEGORY_AUTH,
            "Login failed",
            f"Failed login attempt for email: {email}.",
            actor_email=email,
            meta={"reason": "invalid_email_or_password"},
            **request_context(request),
        )
        db.commit()
        raise HTTPException(status_code=401, detail="Invalid email or password")
    user.last_sign_in_at = func.now()
    db.commit()
    db.refresh(user)
    token = create_access_token(user.id, user.email, user.role)
    return Token(access_token=token, user=UserResponse.model_validate(user))


@router.get("/me", response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)):
    return current_user
