"""Profile model definitions."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, String
from gradportal.database import Base


class Profile(Base):
    """One row per account; carries role and graduation status."""
    __tablename__ = "profiles"

    id = Column(String, ForeignKey("users.id"), primary_key=True)
    email = Column(String, nullable=False)
    full_name = Column(String, nullable=False)
    role = Column(String, nullable=False, default="student")  # student/admin
    student_id = Column(String, unique=True)
    graduation_status = Column(String, default="pending")
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
