"""
Token Service

Mints and parses HS256 session tokens for both namespaces. User tokens carry
{iat, exp, userId, verified}, admin tokens {iat, exp, adminId, role}; each
namespace has its own signing key. Liveness is delegated to the
SessionStore: a token must both verify and have an available row.
"""
import logging
from dataclasses import dataclass
from datetime import timedelta

from jose import ExpiredSignatureError, JWTError

from app.core.config import Settings
from app.core.exceptions import (
    ErrorCode,
    ForbiddenError,
    InternalError,
    MSG_TOKEN_EXPIRED,
    MSG_TOKEN_MALFORMED,
)
from app.core.security import create_token, decode_token
from app.services.session_store import SessionStore

logger = logging.getLogger(__name__)

TOKEN_TTL = timedelta(days=30)


@dataclass(frozen=True)
class UserClaims:
    user_id: int
    verified: bool
    issued_at: int
    expires_at: int


@dataclass(frozen=True)
class AdminClaims:
    admin_id: int
    role: str
    issued_at: int
    expires_at: int


def _expired() -> ForbiddenError:
    return ForbiddenError(MSG_TOKEN_EXPIRED, code=ErrorCode.TOKEN_EXPIRED)


def _malformed() -> ForbiddenError:
    return ForbiddenError(MSG_TOKEN_MALFORMED, code=ErrorCode.TOKEN_MALFORMED)


def _positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


class TokenService:
    def __init__(
        self,
        sessions: SessionStore,
        user_secret: str,
        admin_secret: str,
        ttl: timedelta = TOKEN_TTL,
    ):
        self.sessions = sessions
        self._user_secret = user_secret
        self._admin_secret = admin_secret
        self.ttl = ttl

    @classmethod
    def from_settings(cls, sessions: SessionStore, settings: Settings) -> "TokenService":
        return cls(
            sessions,
            user_secret=settings.user_token_secret,
            admin_secret=settings.ADMIN_SECRET,
            ttl=timedelta(days=settings.TOKEN_EXPIRE_DAYS),
        )

    def _sign(self, claims: dict, secret: str) -> str:
        try:
            return create_token(claims, secret, self.ttl)
        except (JWTError, TypeError, ValueError) as e:
            logger.error(f"Token signing failed: {type(e).__name__}")
            raise InternalError(code=ErrorCode.SIGN_FAILED, cause=e) from e

    def mint_user_token(self, user_id: int, verified: bool) -> str:
        return self._sign({"userId": user_id, "verified": verified}, self._user_secret)

    def mint_admin_token(self, admin_id: int, role: str) -> str:
        return self._sign({"adminId": admin_id, "role": role}, self._admin_secret)

    async def parse_user_token(self, token: str) -> UserClaims:
        """
        Verify signature and expiry of a user token.

        An expired token is disabled in the store (and committed) before
        the error is raised, so later presentations stop at the store.
        """
        try:
            payload = decode_token(token, self._user_secret)
        except ExpiredSignatureError:
            await self.sessions.disable_token(token, commit=True)
            raise _expired()
        except JWTError:
            raise _malformed()

        user_id = payload.get("userId")
        verified = payload.get("verified")
        if not _positive_int(user_id) or not isinstance(verified, bool):
            raise _malformed()
        return UserClaims(user_id, verified, payload.get("iat", 0), payload.get("exp", 0))

    async def parse_admin_token(self, token: str) -> AdminClaims:
        try:
            payload = decode_token(token, self._admin_secret)
        except ExpiredSignatureError:
            await self.sessions.disable_admin_token(token, commit=True)
            raise _expired()
        except JWTError:
            raise _malformed()

        admin_id = payload.get("adminId")
        role = payload.get("role")
        if not _positive_int(admin_id) or not isinstance(role, str) or not role:
            raise _malformed()
        return AdminClaims(admin_id, role, payload.get("iat", 0), payload.get("exp", 0))

    async def validate_access_token(self, token: str) -> None:
        await self.sessions.check_access_token(token)

    async def validate_admin_access_token(self, token: str) -> None:
        await self.sessions.check_admin_access_token(token)
