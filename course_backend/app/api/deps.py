"""
API dependencies

Service wiring for routes plus the cookie session guards. Everything a
component needs is passed in through its constructor here; only this
module reads the application settings.
"""
from dataclasses import dataclass

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

import redis.asyncio as redis

from app.core.config import Settings, settings as app_settings
from app.core.cookies import get_admin_token_from_cookie, get_user_token_from_cookie
from app.core.database import get_db
from app.core.exceptions import ErrorCode, ForbiddenError, MSG_NOT_AUTHORIZED
from app.core.security import PasswordHasher
from app.services.admin_auth_service import AdminAuthService
from app.services.admin_store import AdminStore
from app.services.auth_service import AuthService
from app.services.confirmation_broker import ConfirmationBroker
from app.services.credential_store import CredentialStore
from app.services.email_service import EmailService
from app.services.session_store import SessionStore
from app.services.token_service import TokenService


@dataclass(frozen=True)
class UserPrincipal:
    user_id: int
    verified: bool
    token: str


@dataclass(frozen=True)
class AdminPrincipal:
    admin_id: int
    role: str
    token: str


def get_settings() -> Settings:
    return app_settings


def get_redis_client(request: Request) -> redis.Redis:
    """Redis client opened in the application lifespan."""
    return request.app.state.redis


def get_hasher(settings: Settings = Depends(get_settings)) -> PasswordHasher:
    return PasswordHasher(settings.SECRET, settings.BCRYPT_ROUNDS)


def get_session_store(db: AsyncSession = Depends(get_db)) -> SessionStore:
    return SessionStore(db)


def get_credential_store(
    db: AsyncSession = Depends(get_db),
    hasher: PasswordHasher = Depends(get_hasher),
) -> CredentialStore:
    return CredentialStore(db, hasher)


def get_admin_store(
    db: AsyncSession = Depends(get_db),
    hasher: PasswordHasher = Depends(get_hasher),
) -> AdminStore:
    return AdminStore(db, hasher)


def get_token_service(
    sessions: SessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_settings),
) -> TokenService:
    return TokenService.from_settings(sessions, settings)


def get_confirmation_broker(
    client: redis.Redis = Depends(get_redis_client),
    settings: Settings = Depends(get_settings),
) -> ConfirmationBroker:
    return ConfirmationBroker(client, is_test=settings.IS_TEST)


def get_email_service(
    client: redis.Redis = Depends(get_redis_client),
    settings: Settings = Depends(get_settings),
) -> EmailService:
    return EmailService(client, settings.REDIS_EMAIL_CHANNEL_NAME)


def get_auth_service(
    db: AsyncSession = Depends(get_db),
    credentials: CredentialStore = Depends(get_credential_store),
    sessions: SessionStore = Depends(get_session_store),
    broker: ConfirmationBroker = Depends(get_confirmation_broker),
    tokens: TokenService = Depends(get_token_service),
    email: EmailService = Depends(get_email_service),
) -> AuthService:
    return AuthService(db, credentials, sessions, broker, tokens, email)


def get_admin_auth_service(
    db: AsyncSession = Depends(get_db),
    admins: AdminStore = Depends(get_admin_store),
    sessions: SessionStore = Depends(get_session_store),
    tokens: TokenService = Depends(get_token_service),
    credentials: CredentialStore = Depends(get_credential_store),
) -> AdminAuthService:
    return AdminAuthService(db, admins, sessions, tokens, credentials)


# =============================================================================
# Session guards
# =============================================================================

async def get_current_user(
    request: Request,
    tokens: TokenService = Depends(get_token_service),
) -> UserPrincipal:
    """
    Require a live user session cookie.

    Order: cookie present (11009), row available (11006), signature and
    expiry (11007 expired, 11011 malformed). All failures are 403.
    """
    token = get_user_token_from_cookie(request)
    if not token:
        raise ForbiddenError(MSG_NOT_AUTHORIZED, code=ErrorCode.COOKIE_MISSING)

    await tokens.validate_access_token(token)
    claims = await tokens.parse_user_token(token)

    request.state.user_id = claims.user_id
    request.state.verified = claims.verified
    return UserPrincipal(user_id=claims.user_id, verified=claims.verified, token=token)


async def get_current_admin(
    request: Request,
    tokens: TokenService = Depends(get_token_service),
) -> AdminPrincipal:
    """Require a live admin session cookie (same order as get_current_user)."""
    token = get_admin_token_from_cookie(request)
    if not token:
        raise ForbiddenError(MSG_NOT_AUTHORIZED, code=ErrorCode.COOKIE_MISSING)

    await tokens.validate_admin_access_token(token)
    claims = await tokens.parse_admin_token(token)

    request.state.admin_id = claims.admin_id
    request.state.role = claims.role
    return AdminPrincipal(admin_id=claims.admin_id, role=claims.role, token=token)
