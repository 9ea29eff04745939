"""
Auth Service

User-facing authentication flows composed from the credential store,
session store, confirmation broker, token service and email service.

Each operation validates its input first (ValidationFailed, no state
touched), then performs durable changes and commits before touching Redis,
except where consuming a code is itself the precondition. Errors from the
components pass through unchanged. Email delivery failures are logged and
not propagated: the code is already stored and can be re-sent.
"""
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    ConflictError,
    ErrorCode,
    InternalError,
    NotFoundError,
    ValidationFailed,
    MSG_ALREADY_VERIFIED,
    MSG_CODE_EXPIRED,
    MSG_EMAIL_BUSY,
    MSG_SAME_EMAIL,
)
from app.core.validation import (
    ERR_PASSWORD_IS_NIL,
    validate_code,
    validate_credentials_present,
    validate_email,
    validate_password,
)
from app.services.confirmation_broker import ConfirmationBroker
from app.services.credential_store import CredentialStore
from app.services.email_service import (
    EmailService,
    PURPOSE_EMAIL_CHANGE,
    PURPOSE_RECOVERY,
    PURPOSE_VERIFICATION,
)
from app.services.session_store import SessionStore
from app.services.token_service import TokenService

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(
        self,
        db: AsyncSession,
        credentials: CredentialStore,
        sessions: SessionStore,
        broker: ConfirmationBroker,
        tokens: TokenService,
        email: EmailService,
    ):
        self.db = db
        self.credentials = credentials
        self.sessions = sessions
        self.broker = broker
        self.tokens = tokens
        self.email = email

    async def _commit(self) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise InternalError(code=ErrorCode.COMMIT_FAILED, cause=e) from e

    async def _deliver(self, recipient: str, code: int, purpose: str) -> None:
        try:
            await self.email.send_code(recipient, code, purpose)
        except InternalError as e:
            logger.error(f"Code delivery ({purpose}) failed with {e.code}; user may request a resend")

    async def _issue_session(self, user_id: int, verified: bool) -> str:
        token = self.tokens.mint_user_token(user_id, verified)
        await self.sessions.store_token(user_id, token)
        return token

    # =========================================================================
    # Registration and sign-in
    # =========================================================================

    async def register(self, email: str, password: str) -> str:
        """Create an unverified account, send its code and return a session token."""
        email = validate_email(email)
        validate_password(password)

        user_id = await self.credentials.register_user(email, password)
        token = await self._issue_session(user_id, verified=False)
        await self._commit()

        code = await self.broker.issue_code(ConfirmationBroker.for_user(user_id))
        await self._deliver(email, code, PURPOSE_VERIFICATION)
        logger.info(f"User {user_id} registered")
        return token

    async def log_in(self, email: str, password: str) -> str:
        validate_credentials_present(email, password)

        user_id, verified = await self.credentials.sign_in(email.strip(), password)
        token = await self._issue_session(user_id, verified)
        await self._commit()
        logger.info(f"User {user_id} signed in")
        return token

    async def sign_out(self, token: str) -> None:
        await self.sessions.disable_token(token)
        await self._commit()

    # =========================================================================
    # Email verification
    # =========================================================================

    async def verify_email(self, code, user_id: int, current_token: str) -> str:
        """
        Confirm the account's email with its code.

        Returns:
            A fresh token with verified=true; the presented token is revoked.
        """
        code = validate_code(code)
        if await self.credentials.get_verification_status(user_id):
            raise ValidationFailed(MSG_ALREADY_VERIFIED, code=ErrorCode.ALREADY_VERIFIED)

        await self.broker.consume_code(ConfirmationBroker.for_user(user_id), code)
        await self.credentials.verify_user(user_id)
        await self.sessions.disable_token(current_token)
        token = await self._issue_session(user_id, verified=True)
        await self._commit()
        logger.info(f"User {user_id} verified email")
        return token

    async def resend_confirmation_code(self, user_id: int) -> None:
        if await self.credentials.get_verification_status(user_id):
            raise ValidationFailed(MSG_ALREADY_VERIFIED, code=ErrorCode.ALREADY_VERIFIED)

        email = await self.credentials.get_email(user_id)
        code = await self.broker.issue_code(ConfirmationBroker.for_user(user_id))
        await self._deliver(email, code, PURPOSE_VERIFICATION)

    # =========================================================================
    # Profile: password and email
    # =========================================================================

    async def change_password(self, old_password: str, new_password: str, user_id: int) -> None:
        """Replace the password and revoke every session of the user."""
        if not old_password:
            raise ValidationFailed(ERR_PASSWORD_IS_NIL)
        validate_password(new_password)

        await self.credentials.change_password(user_id, old_password, new_password)
        await self.sessions.disable_all_tokens_for(user_id)
        await self._commit()
        logger.info(f"User {user_id} changed password")

    async def request_email_change(self, new_email: str, user_id: int) -> None:
        new_email = validate_email(new_email)

        current = await self.credentials.get_email(user_id)
        if current.lower() == new_email.lower():
            raise ValidationFailed(MSG_SAME_EMAIL, code=ErrorCode.SAME_EMAIL)
        if await self.credentials.is_email_taken(new_email, exclude_user_id=user_id):
            raise ConflictError(MSG_EMAIL_BUSY, code=ErrorCode.EMAIL_BUSY)

        await self.broker.remember_email_change(user_id, new_email)
        code = await self.broker.issue_code(ConfirmationBroker.for_email_change(new_email))
        await self._deliver(new_email, code, PURPOSE_EMAIL_CHANGE)

    async def confirm_email_change(self, code, user_id: int, current_token: str) -> str:
        """Apply a pending email change and return a fresh token."""
        code = validate_code(code)

        target = await self.broker.pending_email_change(user_id)
        if target is None:
            raise NotFoundError(MSG_CODE_EXPIRED, code=ErrorCode.CONFIRM_CODE_EXPIRED)

        await self.broker.consume_code(ConfirmationBroker.for_email_change(target), code)
        await self.credentials.change_email(user_id, target)
        verified = await self.credentials.get_verification_status(user_id)
        await self.sessions.disable_token(current_token)
        token = await self._issue_session(user_id, verified)
        await self._commit()

        await self.broker.forget_email_change(user_id)
        logger.info(f"User {user_id} changed email")
        return token

    # =========================================================================
    # Password recovery
    # =========================================================================

    async def request_password_recovery(self, email: str) -> None:
        """Send a recovery code if the email is known. Silent otherwise."""
        email = validate_email(email)
        await self.broker.guard_recovery(email)

        user_id = await self.credentials.find_user_id_by_email(email)
        if user_id is None:
            logger.info("Recovery requested for an unknown email")
            return

        code = await self.broker.issue_code(ConfirmationBroker.for_recovery(email))
        await self._deliver(email, code, PURPOSE_RECOVERY)

    async def complete_password_recovery(self, email: str, password: str, code) -> None:
        email = validate_email(email)
        validate_password(password)
        code = validate_code(code)

        await self.broker.consume_code(ConfirmationBroker.for_recovery(email), code)
        user_id = await self.credentials.recover_password(email, password)
        await self.sessions.disable_all_tokens_for(user_id)
        await self._commit()
        logger.info(f"User {user_id} recovered password")
