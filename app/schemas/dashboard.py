"""Module F: Dashboard views."""
from datetime import datetime
from typing import Any
from pydantic import BaseModel


class ActivityLogEntry(BaseModel):
    id: int
    villa_id: str | None
    category: str
    title: str
    message: str
    meta: dict[str, Any] | None = None
    actor_email: str | None = None
    created_at: datetime

    class Config:
        from_attributes = True


class DashboardStats(BaseModel):
    total_villas: int
    villas_by_status: dict[str, int]
    onboarding_completed: int
    onboarding_in_progress: int
    average_completion_percentage: int
    pending_uploads: int
