"""
Admin Auth Service

Administrator provisioning, TOTP two-step enrollment, sign-in and
management.

Provisioning flow:
1. A super_admin registers the admin and receives a QR PNG of the TOTP
   provisioning URI (the secret is never returned as text).
2. The new admin scans it and calls enroll_two_step with login, password
   and a fresh code; this enables two-step auth.
3. Only then may the admin sign in (login + password + code).
"""
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import two_factor
from app.core.exceptions import (
    ConflictError,
    ErrorCode,
    ForbiddenError,
    InternalError,
    ValidationFailed,
    MSG_ADMIN_BAD_CODE,
    MSG_ADMIN_BAD_CREDENTIALS,
    MSG_ADMIN_LOGIN_BUSY,
    MSG_ADMIN_ROLE_INSUFFICIENT,
    MSG_ADMIN_TWO_STEP_DISABLED,
)
from app.core.validation import (
    ERR_BAD_PAGINATION,
    SUPER_ADMIN_ROLE,
    validate_login,
    validate_password,
    validate_role,
)
from app.models.admin import Admin
from app.services.admin_store import AdminStore
from app.services.credential_store import CredentialStore
from app.services.session_store import SessionStore
from app.services.token_service import TokenService

logger = logging.getLogger(__name__)

USER_MODERATION_ROLES = (SUPER_ADMIN_ROLE, "admin")
MAX_PAGE_SIZE = 100


def require_role(caller_role: str, allowed: Iterable[str] = (SUPER_ADMIN_ROLE,)) -> None:
    if caller_role not in allowed:
        raise ForbiddenError(MSG_ADMIN_ROLE_INSUFFICIENT, code=ErrorCode.ADMIN_ROLE_INSUFFICIENT)


class AdminAuthService:
    def __init__(
        self,
        db: AsyncSession,
        admins: AdminStore,
        sessions: SessionStore,
        tokens: TokenService,
        credentials: CredentialStore,
    ):
        self.db = db
        self.admins = admins
        self.sessions = sessions
        self.tokens = tokens
        self.credentials = credentials

    async def _commit(self) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise InternalError(code=ErrorCode.COMMIT_FAILED, cause=e) from e

    async def _authenticate(self, login: str, password: str, code: str) -> Admin:
        """Password first, then TOTP against this admin's own secret."""
        if not login or not password:
            raise ForbiddenError(MSG_ADMIN_BAD_CREDENTIALS, code=ErrorCode.ADMIN_BAD_CREDENTIALS)
        admin = await self.admins.check_password(login, password)
        if admin is None:
            raise ForbiddenError(MSG_ADMIN_BAD_CREDENTIALS, code=ErrorCode.ADMIN_BAD_CREDENTIALS)
        if not two_factor.verify_totp(admin.totp_secret, code):
            raise ForbiddenError(MSG_ADMIN_BAD_CODE, code=ErrorCode.ADMIN_BAD_CODE)
        return admin

    # =========================================================================
    # Provisioning and sign-in
    # =========================================================================

    async def register_admin(self, caller_role: str, login: str, password: str, role: str) -> bytes:
        """
        Create an admin with two-step auth pending.

        Returns:
            PNG bytes of the TOTP provisioning QR code
        """
        require_role(caller_role)
        validate_login(login)
        validate_password(password)
        validate_role(role)

        if await self.admins.login_taken(login):
            raise ConflictError(MSG_ADMIN_LOGIN_BUSY, code=ErrorCode.ADMIN_LOGIN_BUSY)

        secret = two_factor.generate_totp_secret()
        qr_png = two_factor.provisioning_qr(secret, login)
        await self.admins.create(login, password, role, secret)
        await self._commit()
        return qr_png

    async def enroll_two_step(self, login: str, password: str, code: str) -> None:
        admin = await self._authenticate(login, password, code)
        if not admin.two_steps_auth_enabled:
            await self.admins.enable_two_step(admin)
            await self._commit()
            logger.info(f"Admin {admin.id} enabled two-step auth")

    async def sign_in_admin(self, login: str, password: str, code: str) -> str:
        admin = await self._authenticate(login, password, code)
        if not admin.two_steps_auth_enabled:
            raise ForbiddenError(MSG_ADMIN_TWO_STEP_DISABLED, code=ErrorCode.ADMIN_TWO_STEP_DISABLED)

        await self.sessions.disable_all_admin_tokens_for(admin.id)
        token = self.tokens.mint_admin_token(admin.id, admin.role)
        await self.sessions.store_admin_token(admin.id, token)
        await self._commit()
        logger.info(f"Admin {admin.id} signed in")
        return token

    async def sign_out_admin(self, token: str) -> None:
        await self.sessions.disable_admin_token(token)
        await self._commit()

    # =========================================================================
    # Management (super_admin)
    # =========================================================================

    async def remove_admin(self, caller_role: str, login: str) -> None:
        require_role(caller_role)
        validate_login(login)
        admin_id = await self.admins.remove(login)
        await self._commit()
        logger.info(f"Admin {admin_id} removed")

    async def list_admins(
        self,
        caller_role: str,
        login: Optional[str] = None,
        role: Optional[str] = None,
        two_step: Optional[bool] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[List[Admin], int]:
        """
        Page through admins, optionally filtered by exact login, role and
        two-step status. Pages start at 1.

        Returns:
            (admins on the page, total matching the filters)
        """
        require_role(caller_role)
        if login:
            validate_login(login)
        if role:
            validate_role(role)
        if page < 1 or not 1 <= page_size <= MAX_PAGE_SIZE:
            raise ValidationFailed(ERR_BAD_PAGINATION)

        return await self.admins.list(
            login=login,
            role=role,
            two_step=two_step,
            limit=page_size,
            offset=(page - 1) * page_size,
        )

    async def change_role(self, caller_role: str, login: str, role: str) -> None:
        require_role(caller_role)
        validate_login(login)
        validate_role(role)
        admin = await self.admins.set_role(login, role)
        # Existing tokens carry the old role claim
        await self.sessions.disable_all_admin_tokens_for(admin.id)
        await self._commit()
        logger.info(f"Admin {admin.id} role changed to {role}")

    async def reset_admin_password(self, caller_role: str, login: str, password: str) -> None:
        require_role(caller_role)
        validate_login(login)
        validate_password(password)
        admin = await self.admins.set_password(login, password)
        await self.sessions.disable_all_admin_tokens_for(admin.id)
        await self._commit()
        logger.info(f"Admin {admin.id} password reset")

    # =========================================================================
    # User moderation
    # =========================================================================

    async def ban_user(self, caller_role: str, user_id: int) -> None:
        require_role(caller_role, USER_MODERATION_ROLES)
        await self.credentials.set_ban(user_id, True)
        await self.sessions.disable_all_tokens_for(user_id)
        await self._commit()
        logger.info(f"User {user_id} banned")

    async def unban_user(self, caller_role: str, user_id: int) -> None:
        require_role(caller_role, USER_MODERATION_ROLES)
        await self.credentials.set_ban(user_id, False)
        await self._commit()
        logger.info(f"User {user_id} unbanned")

    # =========================================================================
    # Startup
    # =========================================================================

    async def bootstrap_super_admin(self, login: str, password: str, qr_path: str) -> bool:
        """
        Create the configured super_admin if it does not exist yet.

        The QR code is written to qr_path for the operator to scan; two-step
        enrollment then goes through enroll_two_step like any other admin.

        Returns:
            True if the admin was created
        """
        if not login or not password:
            logger.info("SUPER_ADMIN_LOGIN/PASSWORD not set, skipping super-admin bootstrap")
            return False
        if await self.admins.login_taken(login):
            return False

        validate_login(login)
        validate_password(password)
        secret = two_factor.generate_totp_secret()
        qr_png = two_factor.provisioning_qr(secret, login)
        await self.admins.create(login, password, SUPER_ADMIN_ROLE, secret)
        await self._commit()

        path = Path(qr_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(qr_png)
        logger.warning(f"Super-admin '{login}' created; provisioning QR written to {path}")
        return True
