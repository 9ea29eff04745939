"""
Session Store

Durable liveness of user and admin session tokens. A token is accepted only
while its row exists with available = true; disabling is one-way.
"""
import logging
from typing import Type, Union

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ErrorCode, ForbiddenError, InternalError, MSG_TOKEN_NOT_FOUND
from app.models.access_token import AccessToken, AdminAccessToken

logger = logging.getLogger(__name__)

TokenModel = Type[Union[AccessToken, AdminAccessToken]]


class SessionStore:
    """Token rows for both namespaces. Flushes; commits only when asked."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def commit(self) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise InternalError(code=ErrorCode.COMMIT_FAILED, cause=e) from e

    async def _store(self, row) -> None:
        self.db.add(row)
        try:
            await self.db.flush()
        except SQLAlchemyError as e:
            # A duplicate token is never overwritten
            await self.db.rollback()
            logger.error(f"Storing {type(row).__name__} failed: {type(e).__name__}")
            raise InternalError(code=ErrorCode.INSERT_FAILED, cause=e) from e

    async def _disable(self, model: TokenModel, *criteria) -> int:
        try:
            result = await self.db.execute(
                update(model)
                .where(*criteria, model.available.is_(True))
                .values(available=False)
            )
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise InternalError(code=ErrorCode.UPDATE_FAILED, cause=e) from e
        return result.rowcount or 0

    async def _check(self, model: TokenModel, token: str) -> None:
        result = await self.db.execute(
            select(model.id).where(model.token == token, model.available.is_(True))
        )
        if result.scalar_one_or_none() is None:
            raise ForbiddenError(MSG_TOKEN_NOT_FOUND, code=ErrorCode.TOKEN_NOT_FOUND)

    # =========================================================================
    # User tokens
    # =========================================================================

    async def store_token(self, user_id: int, token: str) -> None:
        await self._store(AccessToken(user_id=user_id, token=token, available=True))

    async def disable_token(self, token: str, commit: bool = False) -> None:
        """Idempotent: a missing or already disabled token is not an error."""
        await self._disable(AccessToken, AccessToken.token == token)
        if commit:
            await self.commit()

    async def disable_all_tokens_for(self, user_id: int) -> int:
        count = await self._disable(AccessToken, AccessToken.user_id == user_id)
        logger.info(f"Revoked {count} token(s) of user {user_id}")
        return count

    async def check_access_token(self, token: str) -> None:
        await self._check(AccessToken, token)

    # =========================================================================
    # Admin tokens
    # =========================================================================

    async def store_admin_token(self, admin_id: int, token: str) -> None:
        await self._store(AdminAccessToken(admin_id=admin_id, token=token, available=True))

    async def disable_admin_token(self, token: str, commit: bool = False) -> None:
        await self._disable(AdminAccessToken, AdminAccessToken.token == token)
        if commit:
            await self.commit()

    async def disable_all_admin_tokens_for(self, admin_id: int) -> int:
        count = await self._disable(AdminAccessToken, AdminAccessToken.admin_id == admin_id)
        logger.info(f"Revoked {count} token(s) of admin {admin_id}")
        return count

    async def check_admin_access_token(self, token: str) -> None:
        await self._check(AdminAccessToken, token)
