"""
User model

Profile row bound one-to-one to a Credential. Ids only; no ORM
relationships, look-ups go through the stores.
"""
from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey

from app.core.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    credential_id = Column(Integer, ForeignKey("credentials.id", ondelete="CASCADE"), unique=True, nullable=False)

    first_name = Column(String(100), nullable=True)
    surname = Column(String(100), nullable=True)
    phone_number = Column(String(32), nullable=True)
    subscription_id = Column(Integer, nullable=True)

    active = Column(Boolean, nullable=False, default=True)
    banned = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    def __repr__(self):
        return f"<User(id={self.id}, credential_id={self.credential_id})>"

    @property
    def can_sign_in(self) -> bool:
        return bool(self.active) and not self.banned
