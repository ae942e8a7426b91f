"""Append-only activity log for onboarding, admin and storage events.
No updates or deletes; entries outlive the villa they describe."""
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.sql import func
from app.database import Base, JSONType


class ActivityLog(Base):
    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True, index=True)

    # ON DELETE SET NULL so villa deletion does not fail; message/meta keep the villa name
    villa_id = Column(String(36), ForeignKey("villas.id", ondelete="SET NULL"), nullable=True, index=True)

    # category: onboarding | role_change | document | sharepoint | auth | villa_records
    category = Column(String(32), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)

    # Optional structured data (e.g. step, old_role, new_role)
    meta = Column(JSONType, nullable=True)

    actor_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    actor_email = Column(String(255), nullable=True)

    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(500), nullable=True)

    # UTC only - server_default
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
