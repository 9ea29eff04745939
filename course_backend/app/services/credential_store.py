"""
Credential Store

Registration, sign-in, verification and password/e-mail mutation of user
credentials. Methods flush but never commit: the caller owns the
transaction boundary.

Duplicate handling: any number of unverified credentials may share an
email. Verifying one of them (or moving a verified account onto that email)
deletes every other credential with the same email together with its user
and tokens, so at most one verified credential per email remains.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import select, update, delete, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    ConflictError,
    ErrorCode,
    ForbiddenError,
    InternalError,
    NotFoundError,
    ValidationFailed,
    MSG_BAD_OLD_PASSWORD,
    MSG_EMAIL_BUSY,
    MSG_PASSWORDS_EQUAL,
    MSG_USER_INACTIVE,
    MSG_USER_NOT_FOUND,
)
from app.core.security import PasswordHasher
from app.models.access_token import AccessToken
from app.models.credential import Credential
from app.models.user import User

logger = logging.getLogger(__name__)


def _not_found() -> NotFoundError:
    return NotFoundError(MSG_USER_NOT_FOUND, code=ErrorCode.USER_NOT_FOUND)


class CredentialStore:
    """
    Service for user credentials.

    Features:
    - Peppered bcrypt hashing off the event loop
    - Case-insensitive email look-ups
    - Enumeration-resistant sign-in (unknown email == wrong password)
    - Duplicate collapse on verification
    """

    # Password checks per sign-in are capped; each costs one bcrypt round trip
    MAX_SIGN_IN_CANDIDATES = 5

    def __init__(self, db: AsyncSession, hasher: PasswordHasher):
        self.db = db
        self.hasher = hasher

    # =========================================================================
    # Queries
    # =========================================================================

    async def _candidates(self, email: str, limit: Optional[int] = None) -> List[Credential]:
        """Live credentials for an email, verified first, then newest."""
        query = (
            select(Credential)
            .where(
                func.lower(Credential.email) == email.lower(),
                Credential.deleted_at.is_(None),
            )
            .order_by(Credential.verified.desc(), Credential.created_at.desc(), Credential.id.desc())
        )
        if limit:
            query = query.limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def _credential_for_user(self, user_id: int) -> Credential:
        result = await self.db.execute(
            select(Credential)
            .join(User, User.credential_id == Credential.id)
            .where(User.id == user_id, Credential.deleted_at.is_(None))
        )
        credential = result.scalar_one_or_none()
        if credential is None:
            raise _not_found()
        return credential

    async def _user_for_credential(self, credential_id: int) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.credential_id == credential_id))
        return result.scalar_one_or_none()

    async def get_verification_status(self, user_id: int) -> bool:
        credential = await self._credential_for_user(user_id)
        return bool(credential.verified)

    async def get_email(self, user_id: int) -> str:
        credential = await self._credential_for_user(user_id)
        return credential.email

    async def is_email_taken(self, email: str, exclude_user_id: Optional[int] = None) -> bool:
        """True when a verified credential owned by another user holds the email."""
        query = (
            select(Credential.id)
            .join(User, User.credential_id == Credential.id)
            .where(
                func.lower(Credential.email) == email.lower(),
                Credential.verified.is_(True),
                Credential.deleted_at.is_(None),
            )
        )
        if exclude_user_id is not None:
            query = query.where(User.id != exclude_user_id)
        result = await self.db.execute(query.limit(1))
        return result.scalar_one_or_none() is not None

    async def find_user_id_by_email(self, email: str) -> Optional[int]:
        candidates = await self._candidates(email, limit=1)
        if not candidates:
            return None
        user = await self._user_for_credential(candidates[0].id)
        return user.id if user else None

    # =========================================================================
    # Mutations
    # =========================================================================

    async def _flush(self, code: ErrorCode, statement=None) -> None:
        """Flush (after running statement, if given); unique violations become 11001."""
        try:
            if statement is not None:
                await self.db.execute(statement)
            await self.db.flush()
        except IntegrityError as e:
            await self.db.rollback()
            raise ConflictError(MSG_EMAIL_BUSY, code=ErrorCode.EMAIL_BUSY, cause=e) from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise InternalError(code=code, cause=e) from e

    async def register_user(self, email: str, password: str) -> int:
        """
        Create an unverified credential and its user.

        Args:
            email: Validated email (case preserved)
            password: Validated plaintext password

        Returns:
            New user id

        Raises:
            ConflictError: a verified credential already holds the email
        """
        password_hash = await self.hasher.hash(password)

        if await self.is_email_taken(email):
            raise ConflictError(MSG_EMAIL_BUSY, code=ErrorCode.EMAIL_BUSY)

        credential = Credential(email=email, password_hash=password_hash, verified=False)
        self.db.add(credential)
        await self._flush(ErrorCode.INSERT_FAILED)

        user = User(credential_id=credential.id)
        self.db.add(user)
        await self._flush(ErrorCode.INSERT_FAILED)

        logger.info(f"Registered credential {credential.id} for user {user.id}")
        return user.id

    async def sign_in(self, email: str, password: str) -> Tuple[int, bool]:
        """
        Authenticate by email and password.

        Returns:
            Tuple of (user_id, verified)

        Raises:
            NotFoundError: no credential matches (unknown email or wrong password)
            ForbiddenError: the matching user is inactive or banned
        """
        candidates = await self._candidates(email, limit=self.MAX_SIGN_IN_CANDIDATES)
        if not candidates:
            await self.hasher.verify_dummy(password)
            raise _not_found()

        for credential in candidates:
            if not await self.hasher.verify(password, credential.password_hash):
                continue
            user = await self._user_for_credential(credential.id)
            if user is None:
                continue
            if not user.can_sign_in:
                logger.info(f"Sign-in refused for inactive user {user.id}")
                raise ForbiddenError(MSG_USER_INACTIVE, code=ErrorCode.USER_INACTIVE)
            return user.id, bool(credential.verified)

        raise _not_found()

    async def _collapse_duplicates(self, credential_id: int, email: str) -> int:
        """Delete every other credential holding the email, with its user and tokens."""
        result = await self.db.execute(
            select(Credential.id).where(
                func.lower(Credential.email) == email.lower(),
                Credential.id != credential_id,
            )
        )
        duplicate_ids = list(result.scalars().all())
        if not duplicate_ids:
            return 0

        try:
            user_result = await self.db.execute(
                select(User.id).where(User.credential_id.in_(duplicate_ids))
            )
            user_ids = list(user_result.scalars().all())
            if user_ids:
                await self.db.execute(delete(AccessToken).where(AccessToken.user_id.in_(user_ids)))
                await self.db.execute(delete(User).where(User.id.in_(user_ids)))
            await self.db.execute(delete(Credential).where(Credential.id.in_(duplicate_ids)))
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise InternalError(code=ErrorCode.DELETE_FAILED, cause=e) from e

        logger.info(f"Collapsed {len(duplicate_ids)} duplicate credential(s) onto {credential_id}")
        return len(duplicate_ids)

    async def verify_user(self, user_id: int) -> None:
        """Mark the user's credential verified after removing its duplicates."""
        credential = await self._credential_for_user(user_id)
        credential_id = credential.id
        await self._collapse_duplicates(credential_id, credential.email)

        # The caller's own row must have survived the collapse
        result = await self.db.execute(
            select(Credential.id).where(Credential.id == credential_id, Credential.deleted_at.is_(None))
        )
        if result.scalar_one_or_none() is None:
            await self.db.rollback()
            raise _not_found()

        await self._flush(
            ErrorCode.UPDATE_FAILED,
            update(Credential)
            .where(Credential.id == credential_id)
            .values(verified=True, updated_at=datetime.now(timezone.utc)),
        )

    async def change_password(self, user_id: int, old_password: str, new_password: str) -> None:
        if old_password == new_password:
            raise ValidationFailed(MSG_PASSWORDS_EQUAL, code=ErrorCode.PASSWORDS_EQUAL)

        credential = await self._credential_for_user(user_id)
        if not await self.hasher.verify(old_password, credential.password_hash):
            raise ForbiddenError(MSG_BAD_OLD_PASSWORD, code=ErrorCode.BAD_OLD_PASSWORD)

        credential.password_hash = await self.hasher.hash(new_password)
        await self._flush(ErrorCode.UPDATE_FAILED)

    async def change_email(self, user_id: int, new_email: str) -> None:
        """Move the user's credential to new_email, keeping its verification status."""
        if await self.is_email_taken(new_email, exclude_user_id=user_id):
            raise ConflictError(MSG_EMAIL_BUSY, code=ErrorCode.EMAIL_BUSY)

        credential = await self._credential_for_user(user_id)
        await self._collapse_duplicates(credential.id, new_email)
        credential.email = new_email
        await self._flush(ErrorCode.UPDATE_FAILED)

    async def recover_password(self, email: str, new_password: str) -> int:
        """
        Overwrite the password of the credential owning email.

        The verified credential wins; otherwise the newest one.

        Returns:
            The owning user id
        """
        candidates = await self._candidates(email, limit=1)
        if not candidates:
            raise _not_found()
        credential = candidates[0]
        user = await self._user_for_credential(credential.id)
        if user is None:
            raise _not_found()

        credential.password_hash = await self.hasher.hash(new_password)
        await self._flush(ErrorCode.UPDATE_FAILED)
        return user.id

    async def set_ban(self, user_id: int, banned: bool) -> None:
        result = await self.db.execute(
            update(User).where(User.id == user_id).values(banned=banned)
        )
        if result.rowcount == 0:
            raise _not_found()
        await self._flush(ErrorCode.UPDATE_FAILED)
