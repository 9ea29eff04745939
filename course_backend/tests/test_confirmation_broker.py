"""
Tests for the confirmation broker (codes and recovery gate) on fakeredis.
"""
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from app.core.exceptions import (
    ErrorCode,
    ForbiddenError,
    InternalError,
    NotFoundError,
    TooManyRequestsError,
)
from app.services.confirmation_broker import (
    CODE_TTL_SECONDS,
    RECOVERY_GATE_TTL_SECONDS,
    ConfirmationBroker,
)


class TestCodes:
    """Issue / consume semantics."""

    @pytest.mark.asyncio
    async def test_issue_then_consume_once(self, broker):
        subject = ConfirmationBroker.for_user(1)
        code = await broker.issue_code(subject)
        assert code == 1111

        await broker.consume_code(subject, code)

        with pytest.raises(NotFoundError) as exc:
            await broker.consume_code(subject, code)
        assert exc.value.code == ErrorCode.CONFIRM_CODE_EXPIRED

    @pytest.mark.asyncio
    async def test_mismatch_keeps_code(self, broker, redis_client):
        subject = ConfirmationBroker.for_user(2)
        await broker.issue_code(subject)

        with pytest.raises(ForbiddenError) as exc:
            await broker.consume_code(subject, 2222)
        assert exc.value.code == ErrorCode.BAD_CONFIRM_CODE
        assert await redis_client.get(subject) == "1111"

        await broker.consume_code(subject, 1111)

    @pytest.mark.asyncio
    async def test_issue_sets_ttl_and_overwrites(self, redis_client):
        broker = ConfirmationBroker(redis_client, is_test=False)
        subject = ConfirmationBroker.for_recovery("Alice@X.io")
        first = await broker.issue_code(subject)
        second = await broker.issue_code(subject)

        assert 1000 <= first <= 9999
        assert await redis_client.get(subject) == str(second)
        ttl = await redis_client.ttl(subject)
        assert 0 < ttl <= CODE_TTL_SECONDS

    @pytest.mark.asyncio
    async def test_random_codes_stay_four_digits(self, redis_client):
        broker = ConfirmationBroker(redis_client)
        codes = {broker._new_code() for _ in range(500)}
        assert all(1000 <= c <= 9999 for c in codes)
        assert len(codes) > 1

    def test_subjects_are_case_insensitive_for_emails(self):
        assert ConfirmationBroker.for_recovery("Alice@X.io") == ConfirmationBroker.for_recovery("alice@x.io")
        assert ConfirmationBroker.for_email_change("A@b.cd") == "confirm:email-change:a@b.cd"
        assert ConfirmationBroker.for_user(5) == "confirm:verify:5"

    @pytest.mark.asyncio
    async def test_redis_failure_is_internal_error(self):
        client = AsyncMock()
        client.setex = AsyncMock(side_effect=RedisConnectionError("down"))
        broker = ConfirmationBroker(client)

        with pytest.raises(InternalError) as exc:
            await broker.issue_code("confirm:verify:1")
        assert exc.value.code == ErrorCode.REDIS_SET_FAILED


class TestRecoveryGate:
    @pytest.mark.asyncio
    async def test_second_request_within_a_minute_is_rejected(self, broker, redis_client):
        await broker.guard_recovery("alice@x.io")

        with pytest.raises(TooManyRequestsError) as exc:
            await broker.guard_recovery("ALICE@x.io")
        assert exc.value.code == ErrorCode.RECOVERY_TOO_SOON

        ttl = await redis_client.ttl("recovery-gate:alice@x.io")
        assert 0 < ttl <= RECOVERY_GATE_TTL_SECONDS

    @pytest.mark.asyncio
    async def test_gate_is_per_email(self, broker):
        await broker.guard_recovery("alice@x.io")
        await broker.guard_recovery("bob@x.io")


class TestPendingEmailChange:
    @pytest.mark.asyncio
    async def test_remember_and_forget(self, broker):
        assert await broker.pending_email_change(3) is None
        await broker.remember_email_change(3, "new@x.io")
        assert await broker.pending_email_change(3) == "new@x.io"
        await broker.forget_email_change(3)
        assert await broker.pending_email_change(3) is None
