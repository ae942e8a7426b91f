"""Module A: Auth schemas."""
from datetime import datetime
from pydantic import BaseModel, EmailStr, field_validator, model_validator
from app.models.user import UserRole

PASSWORD_MIN_LENGTH = 8


class UserCreate(BaseModel):
    email: EmailStr
    password: str
    confirm_password: str = ""
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None

    @field_validator("password")
    @classmethod
    def password_length(cls, v: str) -> str:
        if len(v or "") < PASSWORD_MIN_LENGTH:
            raise ValueError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters.")
        return v

    @model_validator(mode="after")
    def passwords_match(self):
        if self.confirm_password and self.confirm_password != self.password:
            raise ValueError("Passwords do not match")
        return self


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    id: int
    email: str
    role: UserRole
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse | None = None
