"""
Session token rows

A token is live only while its row exists with available = true; the
signature alone is never enough. Rows are never re-enabled.
"""
from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Index

from app.core.database import Base


class AccessToken(Base):
    __tablename__ = "access_tokens"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    token = Column(String(1024), unique=True, nullable=False)
    available = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("ix_access_tokens_user_available", "user_id", "available"),
    )

    def __repr__(self):
        return f"<AccessToken(id={self.id}, user_id={self.user_id}, available={self.available})>"


class AdminAccessToken(Base):
    __tablename__ = "admin_access_tokens"

    id = Column(Integer, primary_key=True, index=True)
    admin_id = Column(Integer, ForeignKey("admins.id", ondelete="CASCADE"), nullable=False)
    token = Column(String(1024), unique=True, nullable=False)
    available = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("ix_admin_access_tokens_admin_available", "admin_id", "available"),
    )

    def __repr__(self):
        return f"<AdminAccessToken(id={self.id}, admin_id={self.admin_id}, available={self.available})>"
