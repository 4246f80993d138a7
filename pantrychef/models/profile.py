"""
Profile model: display name for an authenticated user.
"""
from sqlalchemy import Column, DateTime, String, Uuid
from sqlalchemy.sql import func

from pantrychef.models.database import Base


class Profile(Base):
    __tablename__ = "profiles"

    # same id as the auth user
    id = Column(Uuid, primary_key=True)
    display_name = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Profile(id='{self.id}', display_name='{self.display_name}')>"
