"""
Email Service

Hands confirmation codes to the mail worker. Jobs are published as JSON on
the Redis channel REDIS_EMAIL_CHANNEL_NAME; rendering and SMTP delivery
happen in the worker, outside this service.
"""
import json
import logging
from dataclasses import dataclass, asdict

import redis.asyncio as redis
from redis.exceptions import RedisError

from app.core.exceptions import ErrorCode, InternalError

logger = logging.getLogger(__name__)

PURPOSE_VERIFICATION = "verification"
PURPOSE_EMAIL_CHANGE = "email_change"
PURPOSE_RECOVERY = "recovery"

SUBJECTS = {
    PURPOSE_VERIFICATION: "Подтверждение почты",
    PURPOSE_EMAIL_CHANGE: "Смена почты",
    PURPOSE_RECOVERY: "Восстановление пароля",
}


@dataclass
class EmailJob:
    to: str
    subject: str
    code: int


class EmailService:
    """Redis pub/sub email fan-out."""

    def __init__(self, client: redis.Redis, channel: str):
        self.redis = client
        self.channel = channel

    async def send_code(self, recipient: str, code: int, purpose: str = PURPOSE_VERIFICATION) -> int:
        """
        Publish one code e-mail job.

        Returns:
            Number of subscribers that received the job

        Raises:
            InternalError: publishing failed (17001)
        """
        job = EmailJob(to=recipient, subject=SUBJECTS.get(purpose, SUBJECTS[PURPOSE_VERIFICATION]), code=code)
        try:
            receivers = await self.redis.publish(self.channel, json.dumps(asdict(job), ensure_ascii=False))
        except RedisError as e:
            logger.error(f"Email job publish failed on channel {self.channel}: {e}")
            raise InternalError(
                "не удалось отправить письмо",
                code=ErrorCode.EMAIL_DELIVERY_FAILED,
                cause=e,
            ) from e

        if not receivers:
            logger.warning(f"Email job published on {self.channel} but no worker is subscribed")
        return receivers
