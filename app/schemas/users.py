"""Module E: Admin user directory schemas."""
from datetime import datetime
from typing import Literal
from pydantic import BaseModel


class DirectoryUser(BaseModel):
    id: str
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    role: str = "owner"
    created_at: datetime | None = None
    last_sign_in: datetime | None = None
    profile_image_url: str | None = None
    villa_count: int = 0


class UserListResponse(BaseModel):
    users: list[DirectoryUser]
    total: int
    source: Literal["clerk", "local"]


class RoleUpdateRequest(BaseModel):
    role: str  # checked in the endpoint: 400 "Invalid role specified"


class RoleUpdateResponse(BaseModel):
    user_id: str
    role: str
    mode: Literal["clerk", "local_only"]
    message: str


class VillaCountResponse(BaseModel):
    user_id: str
    villa_count: int
