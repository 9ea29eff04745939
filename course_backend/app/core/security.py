"""
Security utilities - password hashing, JWT encoding

Passwords are peppered with the deployment SECRET before bcrypt. The pepper
is folded in as base64(HMAC-SHA256(pepper, password)) so that the bcrypt
input stays under its 72-byte limit whatever the pepper length.

bcrypt is deliberately slow; every hash/verify runs in a worker thread so
the event loop keeps serving other requests.
"""
import asyncio
import base64
import hashlib
import hmac
import logging
import uuid
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional

import bcrypt
from jose import jwt

from app.core.exceptions import ErrorCode, InternalError

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


def _peppered(password: str, pepper: str) -> bytes:
    digest = hmac.new(pepper.encode("utf-8"), password.encode("utf-8"), hashlib.sha256).digest()
    return base64.b64encode(digest)


def verify_password(plain_password: str, hashed_password: str, pepper: str) -> bool:
    """Verify a password against its hash"""
    try:
        return bcrypt.checkpw(
            _peppered(plain_password, pepper),
            hashed_password.encode("utf-8")
        )
    except ValueError:
        # Corrupt or non-bcrypt hash in the row
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


def get_password_hash(password: str, pepper: str, rounds: int = 12) -> str:
    """Generate password hash"""
    return bcrypt.hashpw(
        _peppered(password, pepper),
        bcrypt.gensalt(rounds=rounds)
    ).decode("utf-8")


@lru_cache(maxsize=8)
def _dummy_hash(rounds: int) -> str:
    return bcrypt.hashpw(b"course-timing-equalizer", bcrypt.gensalt(rounds=rounds)).decode("utf-8")


class PasswordHasher:
    """
    Async facade over bcrypt bound to one pepper and cost.

    Injected into the credential and admin stores.
    """

    def __init__(self, pepper: str, rounds: int = 12):
        self._pepper = pepper
        self._rounds = rounds

    async def hash(self, password: str) -> str:
        try:
            return await asyncio.to_thread(get_password_hash, password, self._pepper, self._rounds)
        except (ValueError, TypeError) as e:
            raise InternalError(code=ErrorCode.HASH_FAILED, cause=e) from e

    async def verify(self, password: str, hashed: str) -> bool:
        return await asyncio.to_thread(verify_password, password, hashed, self._pepper)

    async def verify_dummy(self, password: str) -> bool:
        """Burn one verification so a miss costs as much as a hit."""
        await asyncio.to_thread(verify_password, password, _dummy_hash(self._rounds), self._pepper)
        return False


def create_token(claims: dict, secret: str, expires_delta: timedelta, now: Optional[datetime] = None) -> str:
    """Sign claims as an HS256 JWT with iat/exp/jti added."""
    to_encode = claims.copy()
    now = now or datetime.now(timezone.utc)
    expire = now + expires_delta
    # jti keeps two tokens minted in the same second distinct
    to_encode.update({
        "exp": expire,
        "jti": str(uuid.uuid4()),
        "iat": now,
    })
    return jwt.encode(to_encode, secret.encode("utf-8"), algorithm=ALGORITHM)


def decode_token(token: str, secret: str) -> dict:
    """Decode and validate a JWT. Raises jose.JWTError (ExpiredSignatureError on exp)."""
    return jwt.decode(
        token,
        secret.encode("utf-8"),
        algorithms=[ALGORITHM],
        options={"verify_sub": False},
    )
