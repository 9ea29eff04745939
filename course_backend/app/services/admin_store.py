"""
Admin Store

Persistence for administrator accounts. Flushes; never commits.
"""
import logging
from typing import List, Optional, Tuple

from sqlalchemy import select, delete, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    ConflictError,
    ErrorCode,
    InternalError,
    NotFoundError,
    MSG_ADMIN_LOGIN_BUSY,
    MSG_ADMIN_NOT_FOUND,
)
from app.core.security import PasswordHasher
from app.models.access_token import AdminAccessToken
from app.models.admin import Admin

logger = logging.getLogger(__name__)


def _admin_not_found() -> NotFoundError:
    return NotFoundError(MSG_ADMIN_NOT_FOUND, code=ErrorCode.ADMIN_NOT_FOUND)


class AdminStore:
    def __init__(self, db: AsyncSession, hasher: PasswordHasher):
        self.db = db
        self.hasher = hasher

    async def get_by_login(self, login: str) -> Optional[Admin]:
        result = await self.db.execute(select(Admin).where(Admin.login == login))
        return result.scalar_one_or_none()

    async def get_required(self, login: str) -> Admin:
        admin = await self.get_by_login(login)
        if admin is None:
            raise _admin_not_found()
        return admin

    async def login_taken(self, login: str) -> bool:
        return await self.get_by_login(login) is not None

    async def create(self, login: str, password: str, role: str, totp_secret: str) -> Admin:
        admin = Admin(
            login=login,
            password_hash=await self.hasher.hash(password),
            role=role,
            totp_secret=totp_secret,
            two_steps_auth_enabled=False,
        )
        self.db.add(admin)
        try:
            await self.db.flush()
        except IntegrityError as e:
            await self.db.rollback()
            raise ConflictError(MSG_ADMIN_LOGIN_BUSY, code=ErrorCode.ADMIN_LOGIN_BUSY, cause=e) from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise InternalError(code=ErrorCode.INSERT_FAILED, cause=e) from e
        logger.info(f"Admin {admin.id} ({role}) created")
        return admin

    async def check_password(self, login: str, password: str) -> Optional[Admin]:
        """Return the admin when the password matches, None otherwise (unknown login raises)."""
        admin = await self.get_by_login(login)
        if admin is None:
            await self.hasher.verify_dummy(password)
            raise _admin_not_found()
        if not await self.hasher.verify(password, admin.password_hash):
            return None
        return admin

    async def _flush(self) -> None:
        try:
            await self.db.flush()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise InternalError(code=ErrorCode.UPDATE_FAILED, cause=e) from e

    async def enable_two_step(self, admin: Admin) -> None:
        admin.two_steps_auth_enabled = True
        await self._flush()

    async def set_role(self, login: str, role: str) -> Admin:
        admin = await self.get_required(login)
        admin.role = role
        await self._flush()
        return admin

    async def set_password(self, login: str, password: str) -> Admin:
        admin = await self.get_required(login)
        admin.password_hash = await self.hasher.hash(password)
        await self._flush()
        return admin

    async def remove(self, login: str) -> int:
        admin = await self.get_required(login)
        admin_id = admin.id
        try:
            await self.db.execute(delete(AdminAccessToken).where(AdminAccessToken.admin_id == admin_id))
            await self.db.execute(delete(Admin).where(Admin.id == admin_id))
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise InternalError(code=ErrorCode.DELETE_FAILED, cause=e) from e
        return admin_id

    async def list(
        self,
        login: Optional[str] = None,
        role: Optional[str] = None,
        two_step: Optional[bool] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[Admin], int]:
        """Filtered page of admins, ordered by id, plus the filtered total."""
        filters = []
        if login:
            filters.append(Admin.login == login)
        if role:
            filters.append(Admin.role == role)
        if two_step is not None:
            filters.append(Admin.two_steps_auth_enabled.is_(two_step))

        try:
            total = await self.db.execute(select(func.count(Admin.id)).where(*filters))
            rows = await self.db.execute(
                select(Admin).where(*filters).order_by(Admin.id).offset(offset).limit(limit)
            )
        except SQLAlchemyError as e:
            raise InternalError(code=ErrorCode.READ_FAILED, cause=e) from e
        return list(rows.scalars().all()), total.scalar_one()
