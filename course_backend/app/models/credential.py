"""
Credential model

One row per registration attempt: the (email, password hash) pair plus the
verification flag. Unverified duplicates of an email may coexist; at most one
verified row per email (case-insensitive) is allowed, enforced by a partial
unique index and collapsed at verification time.
"""
from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Index, func

from app.core.database import Base


class Credential(Base):
    __tablename__ = "credentials"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    verified = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index(
            "uq_credentials_verified_email",
            func.lower(email),
            unique=True,
            postgresql_where=verified.is_(True),
            sqlite_where=verified.is_(True),
        ),
    )

    def __repr__(self):
        return f"<Credential(id={self.id}, verified={self.verified})>"

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None
