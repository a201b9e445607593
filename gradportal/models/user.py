"""Account model definitions."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String
from gradportal.database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    """Represents a sign-in account."""
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=_new_id)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
