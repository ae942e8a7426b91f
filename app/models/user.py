"""Module A: Users and roles."""
from sqlalchemy import Column, Integer, String, Enum as SQLEnum, DateTime, Boolean
from sqlalchemy.sql import func
from app.database import Base
import enum


class UserRole(str, enum.Enum):
    owner = "owner"
    manager = "manager"
    admin = "admin"
    staff = "staff"


# Roles that may see and edit every villa
STAFF_SIDE_ROLES = (UserRole.admin, UserRole.manager)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    role = Column(SQLEnum(UserRole), nullable=False, default=UserRole.owner)

    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    phone = Column(String(50), nullable=True)

    # Link to the auth provider's directory entry, when there is one
    clerk_user_id = Column(String(64), unique=True, nullable=True, index=True)
    profile_image_url = Column(String(500), nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)
    last_sign_in_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p).strip()
