"""
Confirmation Broker

Four-digit confirmation codes and the password-recovery rate gate, kept in
Redis with per-key TTLs. Every operation is a single-key command; no
in-process locking.

Keys:
    confirm:verify:{user_id}        e-mail verification code
    confirm:email-change:{email}    code bound to the target of an e-mail change
    confirm:recovery:{email}        password-recovery code
    email-change:{user_id}          pending target e-mail of a change
    recovery-gate:{email}           one recovery request per minute
"""
import logging
import secrets
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from app.core.exceptions import (
    ErrorCode,
    ForbiddenError,
    InternalError,
    NotFoundError,
    TooManyRequestsError,
    MSG_BAD_CODE,
    MSG_CODE_EXPIRED,
    MSG_RECOVERY_TOO_SOON,
)

logger = logging.getLogger(__name__)

CODE_KEY_PREFIX = "confirm:"
EMAIL_CHANGE_KEY_PREFIX = "email-change:"
RECOVERY_GATE_KEY_PREFIX = "recovery-gate:"

CODE_TTL_SECONDS = 15 * 60
RECOVERY_GATE_TTL_SECONDS = 60
TEST_CODE = 1111


class ConfirmationBroker:
    def __init__(self, client: redis.Redis, is_test: bool = False):
        self.redis = client
        self.is_test = is_test

    # ----- Subjects -----

    @staticmethod
    def for_user(user_id: int) -> str:
        return f"{CODE_KEY_PREFIX}verify:{user_id}"

    @staticmethod
    def for_email_change(email: str) -> str:
        return f"{CODE_KEY_PREFIX}email-change:{email.lower()}"

    @staticmethod
    def for_recovery(email: str) -> str:
        return f"{CODE_KEY_PREFIX}recovery:{email.lower()}"

    # ----- Codes -----

    def _new_code(self) -> int:
        if self.is_test:
            return TEST_CODE
        return secrets.randbelow(9000) + 1000

    async def issue_code(self, subject: str) -> int:
        """Store a fresh code for subject, replacing any previous one."""
        code = self._new_code()
        try:
            await self.redis.setex(subject, CODE_TTL_SECONDS, str(code))
        except RedisError as e:
            logger.error(f"Redis SET failed for {subject}: {e}")
            raise InternalError(code=ErrorCode.REDIS_SET_FAILED, cause=e) from e
        return code

    async def consume_code(self, subject: str, presented: int) -> None:
        """
        Accept the code once.

        A wrong code leaves the stored one in place so the user can retry
        within the TTL. Two simultaneous correct presentations may both pass.

        Raises:
            NotFoundError: no code stored (never issued or expired)
            ForbiddenError: code differs from the stored one
        """
        try:
            stored = await self.redis.get(subject)
        except RedisError as e:
            logger.error(f"Redis GET failed for {subject}: {e}")
            raise InternalError(code=ErrorCode.REDIS_GET_FAILED, cause=e) from e

        if stored is None:
            raise NotFoundError(MSG_CODE_EXPIRED, code=ErrorCode.CONFIRM_CODE_EXPIRED)
        if str(stored) != str(int(presented)):
            raise ForbiddenError(MSG_BAD_CODE, code=ErrorCode.BAD_CONFIRM_CODE)

        try:
            await self.redis.delete(subject)
        except RedisError as e:
            logger.error(f"Redis DEL failed for {subject}: {e}")
            raise InternalError(code=ErrorCode.REDIS_DELETE_FAILED, cause=e) from e

    # ----- Recovery gate -----

    async def guard_recovery(self, email: str) -> None:
        """Let one recovery request per email through every 60 seconds."""
        try:
            acquired = await self.redis.set(
                f"{RECOVERY_GATE_KEY_PREFIX}{email.lower()}",
                "1",
                nx=True,
                ex=RECOVERY_GATE_TTL_SECONDS,
            )
        except RedisError as e:
            logger.error(f"Redis SET NX failed for recovery gate: {e}")
            raise InternalError(code=ErrorCode.REDIS_SET_FAILED, cause=e) from e

        if not acquired:
            raise TooManyRequestsError(MSG_RECOVERY_TOO_SOON, code=ErrorCode.RECOVERY_TOO_SOON)

    # ----- Pending e-mail change -----

    async def remember_email_change(self, user_id: int, email: str) -> None:
        try:
            await self.redis.setex(f"{EMAIL_CHANGE_KEY_PREFIX}{user_id}", CODE_TTL_SECONDS, email)
        except RedisError as e:
            raise InternalError(code=ErrorCode.REDIS_SET_FAILED, cause=e) from e

    async def pending_email_change(self, user_id: int) -> Optional[str]:
        try:
            return await self.redis.get(f"{EMAIL_CHANGE_KEY_PREFIX}{user_id}")
        except RedisError as e:
            raise InternalError(code=ErrorCode.REDIS_GET_FAILED, cause=e) from e

    async def forget_email_change(self, user_id: int) -> None:
        try:
            await self.redis.delete(f"{EMAIL_CHANGE_KEY_PREFIX}{user_id}")
        except RedisError as e:
            raise InternalError(code=ErrorCode.REDIS_DELETE_FAILED, cause=e) from e
